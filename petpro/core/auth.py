"""
Authentication and JWT token management module.

- Sign tokens with the private signing key from settings (never hardcoded in production)
- Tokens carry only the user id (sub) and a 7-day expiry; tenant and roles are
  resolved from the database on every request
- No refresh and no revocation list: logging in again is the only renewal path,
  rotating JWT_SECRET invalidates every outstanding token
- Only accept tokens via the Authorization: Bearer <token> header
"""
from __future__ import annotations
import datetime
from typing import Optional

import jwt
from fastapi import Depends, Request
from pydantic import BaseModel

from petpro.core.config import settings
from petpro.core.errors import ErrorCode, http_error
from petpro.core.rate_limit import client_ip
from petpro.domain.models import Authed
from petpro.repositories.unit_of_work import UnitOfWork, get_uow
from petpro.services.identity_service import resolve_identity

__all__ = ["Authed", "TokenClaims", "issue_token", "verify_token", "auth_required", "RequestMeta", "request_meta"]


class TokenClaims(BaseModel):
    subject: str
    expires_at: datetime.datetime


class RequestMeta(BaseModel):
    """Caller details recorded in audit logs."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None


def issue_token(user_id: str) -> str:
    """
    Sign a JWT for `user_id`.

    Args:
        user_id: User identifier (stored in the 'sub' claim)

    Returns:
        Encoded JWT token string
    """
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + datetime.timedelta(minutes=settings.JWT_EXP_MIN),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> TokenClaims:
    """
    Decode and validate a token.

    Raises:
        ApiError: 401 if the token is malformed, badly signed, missing claims or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise http_error(code=ErrorCode.UNAUTHORIZED, message="Token expirado.")
    except jwt.InvalidTokenError:
        raise http_error(code=ErrorCode.UNAUTHORIZED, message="Token inválido ou expirado.")

    subject = str(payload.get("sub") or "")
    if not subject:
        raise http_error(code=ErrorCode.UNAUTHORIZED, message="Token inválido ou expirado.")
    return TokenClaims(
        subject=subject,
        expires_at=datetime.datetime.fromtimestamp(int(payload["exp"]), tz=datetime.timezone.utc),
    )


def bearer_token(req: Request) -> Optional[str]:
    auth = req.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def auth_required(req: Request, uow: UnitOfWork = Depends(get_uow)) -> Authed:
    """
    FastAPI dependency: bearer token -> verified subject -> tenant and role flags.

    Returns:
        Authed: Authenticated user context

    Raises:
        ApiError: 401 if the token is missing, invalid, or expired
    """
    token = bearer_token(req)
    if not token:
        raise http_error(code=ErrorCode.UNAUTHORIZED, message="Token ausente.")

    claims = verify_token(token)
    return resolve_identity(uow, claims.subject)


def request_meta(req: Request) -> RequestMeta:
    return RequestMeta(ip=client_ip(req), user_agent=req.headers.get("user-agent"))
