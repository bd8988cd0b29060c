"""
Team settings: members of the caller's tenant and their roles.

Every query is scoped to the caller's tenant from the resolved identity; a member id from
another tenant is reported as not found rather than forbidden.
"""
from __future__ import annotations
from typing import Dict, List

from petpro.core.auth import Authed, RequestMeta
from petpro.core.errors import ErrorCode, http_error
from petpro.core.logger import log_security_event
from petpro.core.roles import NO_TENANT_MESSAGE, is_valid_role
from petpro.domain.models import AuditEntry, Member
from petpro.repositories.unit_of_work import UnitOfWork
from petpro.services.audit_service import AuditService


class TeamService:
    def __init__(self, uow: UnitOfWork, audit: AuditService):
        self.uow = uow
        self.audit = audit

    def list_members(self, auth: Authed) -> List[Member]:
        if not auth.tenant_id:
            return []
        with self.uow() as repos:
            return repos.profiles.list_members(auth.tenant_id)

    def update_member_role(self, auth: Authed, member_id: str, role: str, meta: RequestMeta) -> Dict[str, bool]:
        """
        Replace the member's role in the caller's tenant.

        Raises:
            ApiError: 400 unknown role, 403 superadmin grant or no tenant, 404 member not in tenant
        """
        if not is_valid_role(role):
            raise http_error(code=ErrorCode.VALIDATION_ERROR, message="Perfil inválido.", field="role")
        if role == "superadmin":
            raise http_error(
                code=ErrorCode.FORBIDDEN,
                message="Não é possível conceder superadmin a partir de uma empresa.",
            )
        company_id = auth.tenant_id
        if not company_id:
            raise http_error(code=ErrorCode.FORBIDDEN, message=NO_TENANT_MESSAGE)

        with self.uow() as repos:
            if not repos.profiles.belongs_to(member_id, company_id):
                raise http_error(code=ErrorCode.NOT_FOUND, message="Usuário não encontrado.")
            repos.roles.replace_company_role(member_id, company_id, role)

        self.audit.write(
            AuditEntry(
                action="user.role.updated",
                entity_type="user",
                entity_id=member_id,
                actor_user_id=auth.user_id,
                company_id=company_id,
                ip_address=meta.ip,
                user_agent=meta.user_agent,
                metadata={"role": role},
            )
        )
        log_security_event(
            action="role_update",
            result="success",
            user_id=auth.user_id,
            tenant_id=company_id,
            meta={"member_id": member_id, "role": role},
        )
        return {"ok": True}
