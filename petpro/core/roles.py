"""
RBAC (Role-Based Access Control) module for the PetPro API.

- Roles are: superadmin, admin, supervisor, atendente, usuario (lowercase)
- superadmin is granted with a NULL tenant and has cross-tenant authority
- admin and superadmin are the only roles that bypass per-module permission checks
- Guards run strictly after authentication: no token is 401, a wrong role is 403
- Never trust role or tenant information from the client; it comes from the resolver
"""
from __future__ import annotations
from fastapi import Depends

from petpro.core.auth import Authed, auth_required
from petpro.core.errors import ErrorCode, http_error
from petpro.domain.models import ADMIN_ROLES, BASE_ROLE, ROLES

__all__ = ["ROLES", "ADMIN_ROLES", "BASE_ROLE", "is_valid_role", "require_tenant", "require_admin", "require_superadmin"]

NO_TENANT_MESSAGE = "Usuário não está vinculado a nenhuma empresa. Entre em contato com o suporte."
ADMIN_NEEDS_TENANT_MESSAGE = "Você precisa estar vinculado a uma empresa para convidar."


def is_valid_role(role: str) -> bool:
    return role in ROLES


def require_tenant(auth: Authed = Depends(auth_required)) -> Authed:
    """
    Guard that ensures the caller is bound to a tenant.

    Super-admins may act without one. A tenant-less non-super-admin is an inconsistent
    account and must never silently proceed.
    """
    if auth.is_superadmin:
        return auth
    if not auth.tenant_id:
        raise http_error(code=ErrorCode.FORBIDDEN, message=NO_TENANT_MESSAGE)
    return auth


def require_admin(auth: Authed = Depends(auth_required)) -> Authed:
    """
    Guard that ensures the caller is an admin with a tenant to scope the action to.

    Example:
        @router.get("/api/logs")
        def logs(auth: Authed = Depends(require_admin)):
            ...
    """
    if not auth.is_admin:
        raise http_error(
            code=ErrorCode.FORBIDDEN,
            message="Acesso restrito a administradores.",
        )
    if not auth.tenant_id and not auth.is_superadmin:
        raise http_error(code=ErrorCode.FORBIDDEN, message=ADMIN_NEEDS_TENANT_MESSAGE)
    return auth


def require_superadmin(auth: Authed = Depends(auth_required)) -> Authed:
    if not auth.is_superadmin:
        raise http_error(code=ErrorCode.FORBIDDEN, message="Acesso restrito a superadmin.")
    return auth
