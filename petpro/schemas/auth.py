"""
Pydantic schemas for authentication endpoints.

- Text fields are trimmed; passwords are taken verbatim
- Validators raise ValueError with the pt-BR message returned to the client
- Emails are checked by shape only and lowercased by the services
"""
from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from petpro.utils.normalize import is_valid_email

MIN_PASSWORD_LENGTH = 6


def _email(v: str) -> str:
    v = v.strip()
    if not is_valid_email(v):
        raise ValueError("E-mail inválido.")
    return v


def _required(v: str, label: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{label} é obrigatório.")
    return v


def _password(v: str, message: str) -> str:
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(message)
    return v


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LoginIn(_Payload):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        return _email(v)

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Senha é obrigatória.")
        return v


class RegisterIn(_Payload):
    email: str
    password: str
    full_name: str
    user_phone: str
    company_name: str
    company_phone: str
    company_cnpj: Optional[str] = None
    company_address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        return _email(v)

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        return _password(v, "A senha deve ter no mínimo 6 caracteres.")

    @field_validator("full_name")
    @classmethod
    def _check_full_name(cls, v: str) -> str:
        return _required(v, "Nome completo")

    @field_validator("user_phone")
    @classmethod
    def _check_user_phone(cls, v: str) -> str:
        return _required(v, "Telefone do responsável")

    @field_validator("company_name")
    @classmethod
    def _check_company_name(cls, v: str) -> str:
        return _required(v, "Nome da empresa")

    @field_validator("company_phone")
    @classmethod
    def _check_company_phone(cls, v: str) -> str:
        return _required(v, "Telefone da empresa")


class ChangePasswordIn(_Payload):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def _check_current(cls, v: str) -> str:
        if not v:
            raise ValueError("Senha atual é obrigatória.")
        return v

    @field_validator("new_password")
    @classmethod
    def _check_new(cls, v: str) -> str:
        return _password(v, "A nova senha deve ter no mínimo 6 caracteres.")


class InviteIn(_Payload):
    email: str
    password: str
    full_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        return _email(v)

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        return _password(v, "A senha deve ter no mínimo 6 caracteres.")


class PublicUser(BaseModel):
    id: str
    email: str
    full_name: str = ""


class PublicCompany(BaseModel):
    id: str
    name: str


class SessionOut(BaseModel):
    """Response of login and register."""
    token: str
    user: PublicUser
    company: Optional[PublicCompany] = None


class MeOut(BaseModel):
    user: PublicUser
    company: Optional[PublicCompany] = None
    is_admin: bool
    is_superadmin: bool


class CheckEmailOut(BaseModel):
    available: bool


class InviteOut(BaseModel):
    user: PublicUser


class OkOut(BaseModel):
    ok: bool = True
