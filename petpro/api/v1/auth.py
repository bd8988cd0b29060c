"""
Authentication endpoints.

- Validate input with Pydantic schemas
- Return minimal information on failure
- Login is rate limited per client address before any credential check
"""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from petpro.api.deps import get_auth_service
from petpro.core.auth import Authed, auth_required, request_meta
from petpro.core.rate_limit import login_rate_limit
from petpro.schemas.auth import (
    ChangePasswordIn,
    CheckEmailOut,
    LoginIn,
    MeOut,
    OkOut,
    RegisterIn,
    SessionOut,
)
from petpro.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=SessionOut, dependencies=[Depends(login_rate_limit)])
def login(body: LoginIn, svc: AuthService = Depends(get_auth_service)) -> dict:
    """
    Authenticate user and issue JWT token.

    Returns:
        Dict with token, user and company
    """
    return svc.login(body.email, body.password)


@router.post("/register", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def register(body: RegisterIn, req: Request, svc: AuthService = Depends(get_auth_service)) -> dict:
    """Self-service sign-up: new company in trial plus its admin user."""
    return svc.register(body, request_meta(req))


@router.get("/me", response_model=MeOut)
def me(auth: Authed = Depends(auth_required), svc: AuthService = Depends(get_auth_service)) -> dict:
    return svc.me(auth)


@router.get("/check-email", response_model=CheckEmailOut)
def check_email(
    email: Optional[str] = Query(None),
    svc: AuthService = Depends(get_auth_service),
) -> dict:
    return svc.check_email(email)


@router.post("/change-password", response_model=OkOut)
def change_password(
    body: ChangePasswordIn,
    auth: Authed = Depends(auth_required),
    svc: AuthService = Depends(get_auth_service),
) -> dict:
    return svc.change_password(auth.user_id, body.current_password, body.new_password)
