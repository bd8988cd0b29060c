from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

ROLES = ("superadmin", "admin", "supervisor", "atendente", "usuario")
ADMIN_ROLES = frozenset({"superadmin", "admin"})
BASE_ROLE = "usuario"

CompanyStatus = Literal["trial", "active", "suspended", "past_due", "cancelled"]


class Authed(BaseModel):
    """Request-scoped identity: who is calling, which tenant they belong to, and their flags."""
    user_id: str
    tenant_id: Optional[str] = None
    is_admin: bool = False
    is_superadmin: bool = False


class User(BaseModel):
    id: str
    email: str
    full_name: str = ""
    phone: Optional[str] = None
    password_hash: Optional[str] = None

    def public(self) -> Dict[str, str]:
        return {"id": self.id, "email": self.email, "full_name": self.full_name or ""}


class Company(BaseModel):
    id: str
    name: str

    def public(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}


class NewCompany(BaseModel):
    name: str
    cnpj: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: CompanyStatus = "trial"
    current_plan_id: Optional[str] = None
    trial_ends_at: Optional[datetime] = None


class CompanyPlanRow(BaseModel):
    """A company joined with its current plan; plan columns are None when unresolved."""
    company_status: str = "trial"
    current_plan_id: Optional[str] = None
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    max_users: Any = None
    max_pets: Any = None
    features: Any = None


class TrialPlan(BaseModel):
    id: str
    trial_days: int


class Plan(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float = 0
    trial_days: int = 0
    max_users: Optional[int] = None
    max_pets: Optional[int] = None
    features: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class PlanChanges(BaseModel):
    """Columns a super-admin may edit on a plan (features are not among them)."""
    name: str
    description: Optional[str] = None
    price: float
    trial_days: int
    max_users: Optional[int] = None
    max_pets: Optional[int] = None
    is_active: bool


class Member(BaseModel):
    id: str
    name: str = ""
    email: str = ""
    role: str = "usuario"


class AuditEntry(BaseModel):
    action: Literal["company.created", "user.invited", "user.role.updated", "plan.updated"]
    entity_type: str
    entity_id: Optional[str] = None
    actor_user_id: Optional[str] = None
    company_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
