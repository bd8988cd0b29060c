"""
Audit trail writer.

- Runs on its own unit of work after the caller's transaction has committed
- A failing insert is logged and swallowed: audit never fails the operation it records
- Metadata must not contain passwords, hashes or tokens
"""
from __future__ import annotations

from petpro.core.logger import logger
from petpro.domain.models import AuditEntry
from petpro.repositories.unit_of_work import UnitOfWork


class AuditService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def write(self, entry: AuditEntry) -> bool:
        """Returns False when the entry could not be stored."""
        try:
            with self.uow() as repos:
                repos.audit.insert(entry)
        except Exception:
            logger.error(
                "Audit log write failed",
                exc_info=True,
                extra={
                    "action": entry.action,
                    "tenant_id": entry.company_id,
                    "user_id": entry.actor_user_id,
                    "result": "failure",
                },
            )
            return False
        return True
