# petpro/api/v1/team.py
from typing import List

from fastapi import APIRouter, Depends, Request, status

from petpro.api.deps import get_auth_service, get_team_service
from petpro.core.auth import Authed, request_meta
from petpro.core.roles import require_admin, require_tenant
from petpro.schemas.auth import InviteIn, InviteOut, OkOut
from petpro.schemas.team import MemberOut, RoleUpdateIn
from petpro.services.auth_service import AuthService
from petpro.services.team_service import TeamService

router = APIRouter(prefix="/api", tags=["team"])


@router.post("/invite", response_model=InviteOut, status_code=status.HTTP_201_CREATED)
def invite(
    body: InviteIn,
    req: Request,
    auth: Authed = Depends(require_admin),
    svc: AuthService = Depends(get_auth_service),
):
    return svc.invite(auth, body, request_meta(req))


@router.get("/settings/users", response_model=List[MemberOut])
def list_members(
    auth: Authed = Depends(require_tenant),
    svc: TeamService = Depends(get_team_service),
):
    return svc.list_members(auth)


@router.put("/settings/users/{user_id}", response_model=OkOut)
def update_member_role(
    user_id: str,
    body: RoleUpdateIn,
    req: Request,
    auth: Authed = Depends(require_admin),
    svc: TeamService = Depends(get_team_service),
):
    return svc.update_member_role(auth, user_id, body.role, request_meta(req))
