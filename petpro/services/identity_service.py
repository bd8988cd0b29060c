"""
Identity and tenancy resolution for authenticated requests.

The token only carries the user id. Tenant and role flags are looked up on every request,
so removing a role or moving a user to another tenant takes effect immediately without
any token blacklist. Each lookup is a named step so a cached resolver can replace it.
"""
from __future__ import annotations
from typing import Optional

from petpro.domain.models import Authed
from petpro.repositories.unit_of_work import Repositories, UnitOfWork


class IdentityResolver:
    def __init__(self, repos: Repositories):
        self.repos = repos

    def tenant_of(self, user_id: str) -> Optional[str]:
        """profiles.company_id is the only tenant signal; headers, query and body never are."""
        return self.repos.profiles.company_id_of(user_id)

    def is_superadmin(self, user_id: str) -> bool:
        return self.repos.roles.has_superadmin(user_id)

    def is_tenant_admin(self, user_id: str, tenant_id: Optional[str]) -> bool:
        if not tenant_id:
            return False
        return self.repos.roles.has_tenant_admin(user_id, tenant_id)

    def resolve(self, user_id: str) -> Authed:
        tenant_id = self.tenant_of(user_id)
        is_superadmin = self.is_superadmin(user_id)
        is_admin = is_superadmin or self.is_tenant_admin(user_id, tenant_id)
        return Authed(
            user_id=user_id,
            tenant_id=tenant_id,
            is_admin=is_admin,
            is_superadmin=is_superadmin,
        )


def resolve_identity(uow: UnitOfWork, user_id: str) -> Authed:
    with uow() as repos:
        return IdentityResolver(repos).resolve(user_id)
