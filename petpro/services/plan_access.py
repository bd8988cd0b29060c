"""
Plan-based access control for tenant-scoped resources.

Two checks against the tenant's current plan:

- Module gate: a feature key missing from plans.features is ENABLED; only an explicit
  false / 0 / falsey string disables it, so plans without flags keep base functionality.
- Numeric cap: plan column (max_users, max_pets) wins, then features[entity], otherwise
  unlimited. A new row is allowed only while current < limit.

Both fail CLOSED when the tenant itself (or the plan it points to) cannot be resolved:
that is a data-integrity problem, not a missing flag. A tenant with no plan reference at
all runs as "Sem plano" with no caps.
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Literal, Optional

from fastapi import Depends

from petpro.core.auth import Authed
from petpro.core.errors import ErrorCode, http_error
from petpro.core.logger import log_security_event
from petpro.core.roles import require_tenant
from petpro.domain.models import CompanyPlanRow
from petpro.repositories.unit_of_work import Repositories, UnitOfWork, get_uow

Entity = Literal["users", "pets"]

NO_PLAN_NAME = "Sem plano"

# entity -> (table counted, label used in messages)
ENTITIES: Dict[str, tuple] = {
    "users": ("profiles", "usuários"),
    "pets": ("pets", "pets"),
}

_TRUTHY_STRINGS = ("true", "1", "yes", "on")


@dataclass
class PlanContext:
    plan_id: Optional[str]
    plan_name: str
    company_status: str
    max_users: Optional[int]
    max_pets: Optional[int]
    features: Dict[str, Any] = field(default_factory=dict)

    def limit_for(self, entity: str) -> Optional[int]:
        return self.max_users if entity == "users" else self.max_pets


def normalize_limit(value: Any) -> Optional[int]:
    """None, non-numeric, non-finite or negative -> unlimited (None); otherwise floored."""
    if value is None:
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(n) or n < 0:
        return None
    return math.floor(n)


def normalize_features(features: Any) -> Dict[str, Any]:
    if not isinstance(features, dict):
        return {}
    return features


def build_plan_context(row: CompanyPlanRow) -> Optional[PlanContext]:
    """None when the company points at a plan that no longer exists."""
    if row.current_plan_id and not row.plan_id:
        return None
    features = normalize_features(row.features)
    max_users = normalize_limit(row.max_users)
    max_pets = normalize_limit(row.max_pets)
    return PlanContext(
        plan_id=row.plan_id,
        plan_name=row.plan_name or NO_PLAN_NAME,
        company_status=row.company_status or "trial",
        max_users=max_users if max_users is not None else normalize_limit(features.get("users")),
        max_pets=max_pets if max_pets is not None else normalize_limit(features.get("pets")),
        features=features,
    )


def get_plan_context(repos: Repositories, company_id: str, for_update: bool = False) -> Optional[PlanContext]:
    row = repos.plans.company_plan(company_id, for_update=for_update)
    if row is None:
        return None
    return build_plan_context(row)


def is_module_enabled(ctx: PlanContext, module_key: str) -> bool:
    value = ctx.features.get(module_key)
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return bool(value)


def _require_context(repos: Repositories, company_id: str, for_update: bool = False) -> PlanContext:
    ctx = get_plan_context(repos, company_id, for_update=for_update)
    if ctx is None:
        raise http_error(
            code=ErrorCode.FORBIDDEN,
            message="Empresa não encontrada para validar plano.",
        )
    return ctx


def assert_plan_module_access(
    repos: Repositories,
    company_id: str,
    module_key: str,
    module_label: str,
) -> PlanContext:
    """
    Raise PLAN_LIMIT unless `module_key` is enabled in the tenant's plan.

    Raises:
        ApiError: 403 FORBIDDEN if the plan context is unresolvable, 403 PLAN_LIMIT if disabled
    """
    ctx = _require_context(repos, company_id)
    if is_module_enabled(ctx, module_key):
        return ctx

    log_security_event(
        action="plan_module",
        result="denied",
        tenant_id=company_id,
        meta={"module": module_key, "plan": ctx.plan_name},
    )
    raise http_error(
        code=ErrorCode.PLAN_LIMIT,
        message=f"{module_label} não está disponível no plano {ctx.plan_name}. Faça upgrade para liberar esse recurso.",
        meta={"plan": ctx.plan_name, "module": module_key},
    )


def assert_plan_limit(
    repos: Repositories,
    company_id: str,
    entity: Entity,
    for_update: bool = False,
) -> PlanContext:
    """
    Raise PLAN_LIMIT unless one more `entity` row fits under the tenant's cap.

    With for_update=True the company row stays locked until the surrounding transaction
    ends, so two concurrent creations cannot both pass the check.

    Raises:
        ApiError: 403 FORBIDDEN if the plan context is unresolvable, 403 PLAN_LIMIT at the cap
    """
    if entity not in ENTITIES:
        raise ValueError(f"Unknown plan entity: {entity}")
    table, label = ENTITIES[entity]

    ctx = _require_context(repos, company_id, for_update=for_update)
    limit = ctx.limit_for(entity)
    if limit is None:
        return ctx

    current = repos.plans.count_for_company(table, company_id)
    if current < limit:
        return ctx

    log_security_event(
        action="plan_limit",
        result="denied",
        tenant_id=company_id,
        meta={"entity": entity, "limit": limit, "current": current, "plan": ctx.plan_name},
    )
    raise http_error(
        code=ErrorCode.PLAN_LIMIT,
        message=f"Limite do plano {ctx.plan_name} atingido: {limit} {label}. Faça upgrade para continuar.",
        meta={"plan": ctx.plan_name, "entity": entity, "limit": limit, "current": current},
    )


def require_plan_module(module_key: str, module_label: str) -> Callable[..., Authed]:
    """
    Dependency factory gating a route on a plan module.

    Example:
        @router.get("/api/medical-records")
        def records(auth: Authed = Depends(require_plan_module("medical_records", "Prontuários"))):
            ...
    """
    def _inner(
        auth: Authed = Depends(require_tenant),
        uow: UnitOfWork = Depends(get_uow),
    ) -> Authed:
        if not auth.tenant_id:
            # super-admin without a tenant: nothing to gate
            return auth
        with uow() as repos:
            assert_plan_module_access(repos, auth.tenant_id, module_key, module_label)
        return auth
    return _inner
