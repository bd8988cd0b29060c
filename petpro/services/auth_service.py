"""
Authentication service: self-service registration, login, invites and account flows.

- Returns minimal information on failure (no "user not found vs wrong password" distinction)
- Every multi-row write runs in a single unit of work; any error rolls all of it back
- Unique-constraint races surface as 409, never as 500
- Audit entries are written only after the transaction committed
- NEVER logs plaintext passwords, hashes or tokens
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from petpro.core.auth import Authed, RequestMeta, issue_token
from petpro.core.config import settings
from petpro.core.db import UniqueViolationError
from petpro.core.errors import ApiError, ErrorCode, http_error
from petpro.core.logger import log_security_event, logger
from petpro.core.roles import ADMIN_NEEDS_TENANT_MESSAGE, BASE_ROLE
from petpro.core.security import dummy_hash, hash_password, verify_password
from petpro.domain.models import AuditEntry, Company, NewCompany
from petpro.repositories.unit_of_work import Repositories, UnitOfWork
from petpro.schemas.auth import InviteIn, RegisterIn
from petpro.services.audit_service import AuditService
from petpro.services.plan_access import assert_plan_limit
from petpro.utils.normalize import cnpj_ok, is_valid_email, normalize_email, only_digits, phone_ok

INVALID_CREDENTIALS = "E-mail ou senha incorretos."
USER_NOT_FOUND = "Usuário não encontrado."

_CONFLICT_MESSAGES = {
    "email": "Este e-mail já está em uso.",
    "company_cnpj": "Este CNPJ já está em uso.",
}


def conflict_error(field: Optional[str]) -> ApiError:
    """409 for a uniqueness violation, naming the field when it is known."""
    return http_error(
        code=ErrorCode.CONFLICT,
        message=_CONFLICT_MESSAGES.get(field or "", "E-mail ou CNPJ já em uso."),
        field=field if field in _CONFLICT_MESSAGES else None,
    )


def _company_of(repos: Repositories, user_id: str) -> Optional[Company]:
    company_id = repos.profiles.company_id_of(user_id)
    if not company_id:
        return None
    return repos.companies.get(company_id)


def _public(company: Optional[Company]) -> Optional[Dict[str, str]]:
    return company.public() if company else None


class AuthService:
    def __init__(self, uow: UnitOfWork, audit: AuditService):
        self.uow = uow
        self.audit = audit

    # ---- login ----

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate by email and password and issue a token.

        Unknown email and wrong password produce the same 401: the unknown-email branch
        still runs a bcrypt comparison so both cost the same time.

        Returns:
            Dict with token, user and company (None when the user has no tenant)

        Raises:
            ApiError: 401 for invalid credentials
        """
        email_norm = normalize_email(email)
        with self.uow() as repos:
            user = repos.users.find_by_email(email_norm)
            hashed = user.password_hash if user and user.password_hash else dummy_hash(settings.BCRYPT_ROUNDS)
            password_ok = verify_password(password, hashed)

            if not user or not password_ok:
                log_security_event(
                    action="login",
                    result="failure",
                    user_id=user.id if user else None,
                    meta={"reason": "invalid_password" if user else "user_not_found"},
                )
                raise http_error(code=ErrorCode.UNAUTHORIZED, message=INVALID_CREDENTIALS)

            company = _company_of(repos, user.id)

        token = issue_token(user.id)
        log_security_event(
            action="login",
            result="success",
            user_id=user.id,
            tenant_id=company.id if company else None,
        )
        return {"token": token, "user": user.public(), "company": _public(company)}

    # ---- registration ----

    def register(self, body: RegisterIn, meta: RequestMeta) -> Dict[str, Any]:
        """
        Create a tenant in trial, its first user and the admin role binding.

        Validation happens before any write. Everything from the uniqueness checks to the
        role assignment is one transaction; the audit entry follows the commit.

        Raises:
            ApiError: 400 for invalid phones or CNPJ, 409 for an email or CNPJ already in use,
                500 for any other failure (nothing is persisted)
        """
        user_phone = only_digits(body.user_phone)
        if not phone_ok(user_phone):
            raise http_error(
                code=ErrorCode.VALIDATION_ERROR,
                message="Telefone do responsável inválido.",
                field="user_phone",
            )
        company_phone = only_digits(body.company_phone)
        if not phone_ok(company_phone):
            raise http_error(
                code=ErrorCode.VALIDATION_ERROR,
                message="Telefone da empresa inválido.",
                field="company_phone",
            )
        cnpj = only_digits(body.company_cnpj) or None
        if body.company_cnpj and body.company_cnpj.strip() and not (cnpj and cnpj_ok(cnpj)):
            raise http_error(code=ErrorCode.VALIDATION_ERROR, message="CNPJ inválido.", field="company_cnpj")

        email_norm = normalize_email(body.email)
        address = (body.company_address or "").strip() or None

        try:
            with self.uow() as repos:
                if repos.users.email_exists(email_norm):
                    raise conflict_error("email")
                if cnpj and repos.companies.cnpj_exists(cnpj):
                    raise conflict_error("company_cnpj")

                trial = repos.plans.find_trial_plan()
                trial_days = trial.trial_days if trial else settings.DEFAULT_TRIAL_DAYS
                company = repos.companies.create(
                    NewCompany(
                        name=body.company_name,
                        cnpj=cnpj,
                        phone=company_phone,
                        address=address,
                        status="trial",
                        current_plan_id=trial.id if trial else None,
                        trial_ends_at=datetime.now(timezone.utc) + timedelta(days=trial_days),
                    )
                )

                user = repos.users.create(
                    email=email_norm,
                    full_name=body.full_name,
                    phone=user_phone,
                    password_hash=hash_password(body.password),
                )
                repos.profiles.upsert(user.id, body.full_name, user.email, company.id)
                repos.roles.assign(user.id, "admin", company.id)
        except ApiError as e:
            if e.code == ErrorCode.CONFLICT:
                log_security_event(
                    action="register",
                    result="conflict",
                    meta={"field": e.field},
                    level="warning",
                )
            raise
        except UniqueViolationError as e:
            log_security_event(
                action="register",
                result="conflict",
                meta={"field": e.field, "constraint": e.constraint},
                level="warning",
            )
            raise conflict_error(e.field)
        except Exception:
            logger.error("Registration failed; transaction rolled back", exc_info=True)
            raise http_error(code=ErrorCode.INTERNAL_ERROR, message="Erro ao criar conta.")

        self.audit.write(
            AuditEntry(
                action="company.created",
                entity_type="company",
                entity_id=company.id,
                actor_user_id=user.id,
                company_id=company.id,
                ip_address=meta.ip,
                user_agent=meta.user_agent,
                metadata={"created_by": "self_register", "email": user.email},
            )
        )
        log_security_event(action="register", result="success", user_id=user.id, tenant_id=company.id)
        return {"token": issue_token(user.id), "user": user.public(), "company": company.public()}

    # ---- account ----

    def me(self, auth: Authed) -> Dict[str, Any]:
        with self.uow() as repos:
            user = repos.users.find_by_id(auth.user_id)
            if not user:
                raise http_error(code=ErrorCode.UNAUTHORIZED, message=USER_NOT_FOUND)
            company = repos.companies.get(auth.tenant_id) if auth.tenant_id else None
        return {
            "user": user.public(),
            "company": _public(company),
            "is_admin": auth.is_admin,
            "is_superadmin": auth.is_superadmin,
        }

    def check_email(self, email: Optional[str]) -> Dict[str, bool]:
        email = (email or "").strip()
        if not email:
            raise http_error(code=ErrorCode.VALIDATION_ERROR, message="E-mail é obrigatório.", field="email")
        if not is_valid_email(email):
            raise http_error(code=ErrorCode.VALIDATION_ERROR, message="E-mail inválido.", field="email")
        with self.uow() as repos:
            return {"available": not repos.users.email_exists(normalize_email(email))}

    def change_password(self, user_id: str, current_password: str, new_password: str) -> Dict[str, bool]:
        """
        Raises:
            ApiError: 401 when the user vanished or the current password does not match
        """
        with self.uow() as repos:
            user = repos.users.find_by_id(user_id)
            if not user:
                raise http_error(code=ErrorCode.UNAUTHORIZED, message=USER_NOT_FOUND)
            if not verify_password(current_password, user.password_hash):
                log_security_event(
                    action="password_change",
                    result="failure",
                    user_id=user_id,
                    meta={"reason": "invalid_password"},
                )
                raise http_error(code=ErrorCode.UNAUTHORIZED, message="Senha atual incorreta.")
            repos.users.update_password(user_id, hash_password(new_password))

        log_security_event(action="password_change", result="success", user_id=user_id)
        return {"ok": True}

    # ---- invite ----

    def invite(self, auth: Authed, body: InviteIn, meta: RequestMeta) -> Dict[str, Any]:
        """
        Create a user with the base role inside the inviter's tenant.

        The company row is locked before counting, so two concurrent invites cannot both
        take the last seat of the plan.

        Raises:
            ApiError: 403 without a tenant, 403 PLAN_LIMIT at the user cap, 409 for a used email
        """
        company_id = auth.tenant_id
        if not company_id:
            raise http_error(code=ErrorCode.FORBIDDEN, message=ADMIN_NEEDS_TENANT_MESSAGE)

        email_norm = normalize_email(body.email)
        full_name = (body.full_name or "").strip()
        phone = only_digits(body.phone) or None

        try:
            with self.uow() as repos:
                assert_plan_limit(repos, company_id, "users", for_update=True)
                if repos.users.email_exists(email_norm):
                    raise conflict_error("email")

                user = repos.users.create(
                    email=email_norm,
                    full_name=full_name,
                    phone=phone,
                    password_hash=hash_password(body.password),
                )
                repos.profiles.upsert(user.id, full_name, user.email, company_id)
                repos.roles.assign(user.id, BASE_ROLE, company_id)
        except ApiError:
            raise
        except UniqueViolationError as e:
            raise conflict_error(e.field)
        except Exception:
            logger.error("Invite failed; transaction rolled back", exc_info=True, extra={"tenant_id": company_id})
            raise http_error(code=ErrorCode.INTERNAL_ERROR, message="Erro ao convidar usuário.")

        self.audit.write(
            AuditEntry(
                action="user.invited",
                entity_type="user",
                entity_id=user.id,
                actor_user_id=auth.user_id,
                company_id=company_id,
                ip_address=meta.ip,
                user_agent=meta.user_agent,
                metadata={"invited_email": user.email, "invited_role": BASE_ROLE},
            )
        )
        log_security_event(
            action="invite",
            result="success",
            user_id=auth.user_id,
            tenant_id=company_id,
            meta={"invited_user_id": user.id},
        )
        return {"user": user.public()}
