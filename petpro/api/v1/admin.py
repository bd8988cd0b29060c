# petpro/api/v1/admin.py
from typing import List

from fastapi import APIRouter, Depends, Request

from petpro.api.deps import get_plan_admin_service
from petpro.core.auth import Authed, request_meta
from petpro.core.logger import get_log_lines
from petpro.core.roles import require_admin, require_superadmin
from petpro.domain.models import PlanChanges
from petpro.schemas.team import LogsOut, PlanIn, PlanOut
from petpro.services.plan_admin_service import PlanAdminService

router = APIRouter(prefix="/api", tags=["admin"])


@router.get("/logs", response_model=LogsOut)
def logs(auth: Authed = Depends(require_admin)):
    return {"logs": get_log_lines()}


@router.get("/admin/plans", response_model=List[PlanOut])
def list_plans(
    auth: Authed = Depends(require_superadmin),
    svc: PlanAdminService = Depends(get_plan_admin_service),
):
    return svc.list_plans()


@router.put("/admin/plans/{plan_id}", response_model=PlanOut)
def update_plan(
    plan_id: str,
    body: PlanIn,
    req: Request,
    auth: Authed = Depends(require_superadmin),
    svc: PlanAdminService = Depends(get_plan_admin_service),
):
    return svc.update_plan(auth, plan_id, PlanChanges(**body.model_dump()), request_meta(req))
