"""
Unit of work: one connection, one transaction, all repositories bound to the same cursor.

Services receive a factory (`UnitOfWork`) instead of opening connections themselves, so the
whole API can be pointed at another store through the `get_uow` dependency.
"""
from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterator

from petpro.core.db import get_conn
from petpro.repositories.audit_repo import AuditRepository
from petpro.repositories.company_repository import CompanyRepository
from petpro.repositories.plan_repo import PlanRepository
from petpro.repositories.role_repo import RoleRepository
from petpro.repositories.user_repo import ProfileRepository, UserRepository


@dataclass
class Repositories:
    users: UserRepository
    profiles: ProfileRepository
    companies: CompanyRepository
    roles: RoleRepository
    plans: PlanRepository
    audit: AuditRepository

    @classmethod
    def from_cursor(cls, cur) -> "Repositories":
        return cls(
            users=UserRepository(cur),
            profiles=ProfileRepository(cur),
            companies=CompanyRepository(cur),
            roles=RoleRepository(cur),
            plans=PlanRepository(cur),
            audit=AuditRepository(cur),
        )


UnitOfWork = Callable[[], ContextManager[Repositories]]


@contextmanager
def pg_unit_of_work() -> Iterator[Repositories]:
    with get_conn() as conn, conn.cursor() as cur:
        yield Repositories.from_cursor(cur)


def get_uow() -> UnitOfWork:
    """FastAPI dependency; tests override it with an in-memory store."""
    return pg_unit_of_work
