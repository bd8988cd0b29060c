"""Super-admin plan catalog maintenance."""
from __future__ import annotations
from typing import List

from petpro.core.auth import Authed, RequestMeta
from petpro.core.errors import ErrorCode, http_error
from petpro.core.logger import log_security_event
from petpro.domain.models import AuditEntry, Plan, PlanChanges
from petpro.repositories.unit_of_work import UnitOfWork
from petpro.services.audit_service import AuditService


class PlanAdminService:
    def __init__(self, uow: UnitOfWork, audit: AuditService):
        self.uow = uow
        self.audit = audit

    def list_plans(self) -> List[Plan]:
        with self.uow() as repos:
            return repos.plans.list_plans()

    def update_plan(self, auth: Authed, plan_id: str, changes: PlanChanges, meta: RequestMeta) -> Plan:
        """
        Overwrite a plan's editable columns. New caps apply to the next limit check of every
        company on the plan.

        Raises:
            ApiError: 404 unknown plan
        """
        with self.uow() as repos:
            plan = repos.plans.update(plan_id, changes)
        if plan is None:
            raise http_error(code=ErrorCode.NOT_FOUND, message="Plano não encontrado.")

        self.audit.write(
            AuditEntry(
                action="plan.updated",
                entity_type="plan",
                entity_id=plan.id,
                actor_user_id=auth.user_id,
                ip_address=meta.ip,
                user_agent=meta.user_agent,
                metadata={
                    "name": plan.name,
                    "price": plan.price,
                    "trial_days": plan.trial_days,
                    "max_users": plan.max_users,
                    "max_pets": plan.max_pets,
                    "is_active": plan.is_active,
                },
            )
        )
        log_security_event(
            action="plan_update",
            result="success",
            user_id=auth.user_id,
            meta={"plan_id": plan.id},
        )
        return plan
