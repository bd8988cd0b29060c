import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from helpers import bearer
from petpro.core.auth import Authed, auth_required, issue_token
from petpro.core.errors import install_error_handlers
from petpro.core.roles import require_admin, require_superadmin, require_tenant
from petpro.repositories.unit_of_work import get_uow
from petpro.services.identity_service import IdentityResolver
from petpro.services.plan_access import require_plan_module


@pytest.fixture
def guarded(store):
    app = FastAPI()
    install_error_handlers(app)

    @app.get("/whoami")
    def whoami(auth: Authed = Depends(auth_required)):
        return auth.model_dump()

    @app.get("/tenant")
    def tenant(auth: Authed = Depends(require_tenant)):
        return {"ok": True}

    @app.get("/admin")
    def admin(auth: Authed = Depends(require_admin)):
        return {"ok": True}

    @app.get("/root")
    def root(auth: Authed = Depends(require_superadmin)):
        return {"ok": True}

    @app.get("/reports")
    def reports(auth: Authed = Depends(require_plan_module("reports", "Relatórios"))):
        return {"ok": True}

    app.dependency_overrides[get_uow] = lambda: store.uow
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def tenant_setup(store):
    plan = store.add_plan("Basic", features={"reports": False})
    company_id = store.add_company("Pet Shop", plan_id=plan.id)
    admin = store.add_user("admin@shop.local", company_id=company_id, role="admin")
    staff = store.add_user("staff@shop.local", company_id=company_id, role="atendente")
    root = store.add_user("root@petpro.local", role="superadmin")
    orphan = store.add_user("orphan@petpro.local")
    return {"company_id": company_id, "admin": admin, "staff": staff, "root": root, "orphan": orphan}


def test_resolver_composes_tenant_and_role_flags(store, tenant_setup):
    with store.uow() as repos:
        resolver = IdentityResolver(repos)
        admin = resolver.resolve(tenant_setup["admin"].id)
        staff = resolver.resolve(tenant_setup["staff"].id)
        root = resolver.resolve(tenant_setup["root"].id)

    assert (admin.tenant_id, admin.is_admin, admin.is_superadmin) == (tenant_setup["company_id"], True, False)
    assert (staff.tenant_id, staff.is_admin) == (tenant_setup["company_id"], False)
    assert (root.tenant_id, root.is_admin, root.is_superadmin) == (None, True, True)


def test_admin_role_in_other_tenant_does_not_count(store, tenant_setup):
    other = store.add_company("Other")
    store.roles.add((tenant_setup["staff"].id, "admin", other))
    with store.uow() as repos:
        assert IdentityResolver(repos).resolve(tenant_setup["staff"].id).is_admin is False


def test_superadmin_bound_to_a_tenant_is_not_global(store, tenant_setup):
    store.roles.add((tenant_setup["staff"].id, "superadmin", tenant_setup["company_id"]))
    with store.uow() as repos:
        resolved = IdentityResolver(repos).resolve(tenant_setup["staff"].id)
    assert resolved.is_superadmin is False
    assert resolved.is_admin is True


def test_missing_token_is_401(guarded):
    res = guarded.get("/whoami")
    assert res.status_code == 401
    assert res.json() == {"error": "Token ausente.", "code": "UNAUTHORIZED"}


@pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer    ", "Basic dXNlcjpwYXNz"])
def test_malformed_authorization_header_is_401(guarded, header):
    assert guarded.get("/whoami", headers={"Authorization": header}).status_code == 401


def test_bearer_scheme_is_case_insensitive(guarded, tenant_setup):
    token = issue_token(tenant_setup["admin"].id)
    res = guarded.get("/whoami", headers={"Authorization": f"bearer {token}"})
    assert res.status_code == 200
    assert res.json()["tenant_id"] == tenant_setup["company_id"]


def test_role_changes_apply_without_new_token(guarded, store, tenant_setup):
    token = issue_token(tenant_setup["admin"].id)
    assert guarded.get("/admin", headers=bearer(token)).status_code == 200
    store.roles.discard((tenant_setup["admin"].id, "admin", tenant_setup["company_id"]))
    assert guarded.get("/admin", headers=bearer(token)).status_code == 403


def test_tenant_guard(guarded, tenant_setup):
    assert guarded.get("/tenant", headers=bearer(issue_token(tenant_setup["staff"].id))).status_code == 200
    assert guarded.get("/tenant", headers=bearer(issue_token(tenant_setup["root"].id))).status_code == 200
    res = guarded.get("/tenant", headers=bearer(issue_token(tenant_setup["orphan"].id)))
    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"


def test_admin_guard(guarded, tenant_setup):
    assert guarded.get("/admin").status_code == 401
    assert guarded.get("/admin", headers=bearer(issue_token(tenant_setup["staff"].id))).status_code == 403
    assert guarded.get("/admin", headers=bearer(issue_token(tenant_setup["admin"].id))).status_code == 200
    assert guarded.get("/admin", headers=bearer(issue_token(tenant_setup["root"].id))).status_code == 200


def test_superadmin_guard(guarded, tenant_setup):
    assert guarded.get("/root", headers=bearer(issue_token(tenant_setup["admin"].id))).status_code == 403
    assert guarded.get("/root", headers=bearer(issue_token(tenant_setup["root"].id))).status_code == 200


def test_plan_module_dependency(guarded, store, tenant_setup):
    res = guarded.get("/reports", headers=bearer(issue_token(tenant_setup["staff"].id)))
    assert res.status_code == 403
    assert res.json()["code"] == "PLAN_LIMIT"
    assert res.json()["meta"]["module"] == "reports"

    plan_id = store.companies[tenant_setup["company_id"]]["current_plan_id"]
    store.plans[plan_id] = store.plans[plan_id].model_copy(update={"features": {}})
    assert guarded.get("/reports", headers=bearer(issue_token(tenant_setup["staff"].id))).status_code == 200


def test_plan_module_dependency_skips_superadmin_without_tenant(guarded, tenant_setup):
    assert guarded.get("/reports", headers=bearer(issue_token(tenant_setup["root"].id))).status_code == 200
