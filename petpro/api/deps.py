"""FastAPI dependency providers for services."""
from fastapi import Depends

from petpro.repositories.unit_of_work import UnitOfWork, get_uow
from petpro.services.audit_service import AuditService
from petpro.services.auth_service import AuthService
from petpro.services.plan_admin_service import PlanAdminService
from petpro.services.team_service import TeamService


def get_audit_service(uow: UnitOfWork = Depends(get_uow)) -> AuditService:
    return AuditService(uow)


def get_auth_service(
    uow: UnitOfWork = Depends(get_uow),
    audit: AuditService = Depends(get_audit_service),
) -> AuthService:
    return AuthService(uow, audit)


def get_team_service(
    uow: UnitOfWork = Depends(get_uow),
    audit: AuditService = Depends(get_audit_service),
) -> TeamService:
    return TeamService(uow, audit)


def get_plan_admin_service(
    uow: UnitOfWork = Depends(get_uow),
    audit: AuditService = Depends(get_audit_service),
) -> PlanAdminService:
    return PlanAdminService(uow, audit)
