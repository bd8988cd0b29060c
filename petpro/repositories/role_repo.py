# petpro/repositories/role_repo.py
from __future__ import annotations
from typing import Optional

from petpro.domain.models import ADMIN_ROLES


class RoleRepository:
    def __init__(self, cur):
        self.cur = cur

    def has_superadmin(self, user_id: str) -> bool:
        self.cur.execute(
            """
            SELECT 1 FROM user_roles
            WHERE user_id = %s AND role = 'superadmin' AND company_id IS NULL
            LIMIT 1
            """,
            (user_id,),
        )
        return self.cur.fetchone() is not None

    def has_tenant_admin(self, user_id: str, company_id: str) -> bool:
        self.cur.execute(
            """
            SELECT 1 FROM user_roles
            WHERE user_id = %s AND company_id = %s AND role = ANY(%s)
            LIMIT 1
            """,
            (user_id, company_id, sorted(ADMIN_ROLES)),
        )
        return self.cur.fetchone() is not None

    def assign(self, user_id: str, role: str, company_id: Optional[str]) -> None:
        self.cur.execute(
            """
            INSERT INTO user_roles (user_id, role, company_id) VALUES (%s, %s, %s)
            ON CONFLICT (user_id, role, company_id) DO NOTHING
            """,
            (user_id, role, company_id),
        )

    def replace_company_role(self, user_id: str, company_id: str, role: str) -> None:
        self.cur.execute(
            "DELETE FROM user_roles WHERE user_id = %s AND company_id = %s",
            (user_id, company_id),
        )
        self.assign(user_id, role, company_id)
