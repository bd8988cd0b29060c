"""Pydantic schemas for team settings and admin endpoints."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator


class MemberOut(BaseModel):
    id: str
    name: str
    email: str
    role: str


class RoleUpdateIn(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def _normalize(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Perfil é obrigatório.")
        return v


class LogsOut(BaseModel):
    logs: List[str]


class PlanOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    trial_days: int
    max_users: Optional[int] = None
    max_pets: Optional[int] = None
    features: Dict[str, Any]
    is_active: bool


class PlanIn(BaseModel):
    name: str
    description: Optional[str] = None
    price: float
    trial_days: int
    max_users: Optional[int] = None
    max_pets: Optional[int] = None
    is_active: bool

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Nome é obrigatório.")
        return v

    @field_validator("price")
    @classmethod
    def _check_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Preço inválido.")
        return v

    @field_validator("trial_days")
    @classmethod
    def _check_trial_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Período de trial inválido.")
        return v

    @field_validator("max_users")
    @classmethod
    def _check_max_users(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Máximo de usuários inválido.")
        return v

    @field_validator("max_pets")
    @classmethod
    def _check_max_pets(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("Máximo de pets inválido.")
        return v
