# petpro/repositories/audit_repo.py
from __future__ import annotations

from psycopg2.extras import Json

from petpro.domain.models import AuditEntry


class AuditRepository:
    def __init__(self, cur):
        self.cur = cur

    def insert(self, e: AuditEntry) -> None:
        self.cur.execute(
            """
            INSERT INTO audit_logs
              (actor_user_id, company_id, action, entity_type, entity_id, ip_address, user_agent, metadata)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                e.actor_user_id,
                e.company_id,
                e.action,
                e.entity_type,
                e.entity_id,
                e.ip_address,
                e.user_agent,
                Json(e.metadata) if e.metadata is not None else None,
            ),
        )
