import pytest

from helpers import bearer
from petpro.core.auth import issue_token

INVITE = {"email": "user@test.local", "password": "Senha123!", "full_name": "Bruno Banho"}


@pytest.fixture
def tenant(store):
    plan = store.add_plan("Basic", max_users=3)
    company_id = store.add_company("Pet Pro Test", plan_id=plan.id)
    admin = store.add_user("admin@test.local", company_id=company_id, role="admin", full_name="Ana Admin")
    staff = store.add_user("staff@test.local", company_id=company_id, role="atendente", full_name="Carla Caixa")
    return {
        "plan": plan,
        "company_id": company_id,
        "admin": admin,
        "staff": staff,
        "admin_headers": bearer(issue_token(admin.id)),
        "staff_headers": bearer(issue_token(staff.id)),
    }


# ---- invite ----

def test_invite_creates_base_user_in_inviter_tenant(client, store, tenant):
    res = client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"])
    assert res.status_code == 201
    user = res.json()["user"]
    assert user["email"] == "user@test.local"
    assert user["full_name"] == "Bruno Banho"
    assert store.profiles[user["id"]]["company_id"] == tenant["company_id"]
    assert (user["id"], "usuario", tenant["company_id"]) in store.roles
    assert store.locked_companies == [tenant["company_id"]]

    entry = store.audit[-1]
    assert entry.action == "user.invited"
    assert entry.actor_user_id == tenant["admin"].id
    assert entry.metadata == {"invited_email": "user@test.local", "invited_role": "usuario"}


def test_invited_user_can_log_in_but_is_not_admin(client, tenant, login):
    client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"])
    token = login(email="USER@test.local").json()["token"]
    me = client.get("/auth/me", headers=bearer(token)).json()
    assert me["is_admin"] is False
    assert me["company"]["id"] == tenant["company_id"]


def test_invite_at_user_cap_is_plan_limit_then_succeeds_after_raise(client, store, tenant):
    store.add_user("third@test.local", company_id=tenant["company_id"])
    res = client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"])
    assert res.status_code == 403
    body = res.json()
    assert body["code"] == "PLAN_LIMIT"
    assert body["meta"]["limit"] == 3
    assert body["meta"]["current"] == 3
    assert store.profiles_in(tenant["company_id"]) == 3
    assert store.audit == []

    root = store.add_user("root@petpro.local", role="superadmin")
    plan = tenant["plan"]
    res = client.put(
        f"/api/admin/plans/{plan.id}",
        json={"name": plan.name, "price": plan.price, "trial_days": 0, "max_users": 10, "is_active": True},
        headers=bearer(issue_token(root.id)),
    )
    assert res.status_code == 200
    assert res.json()["max_users"] == 10
    res = client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"])
    assert res.status_code == 201
    assert store.profiles_in(tenant["company_id"]) == 4


def test_invite_below_cap_reaches_cap(client, store, tenant):
    assert client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"]).status_code == 201
    assert store.profiles_in(tenant["company_id"]) == 3


def test_invite_existing_email_is_conflict(client, tenant):
    res = client.post("/api/invite", json={**INVITE, "email": "Staff@Test.local"}, headers=tenant["admin_headers"])
    assert res.status_code == 409
    assert res.json()["field"] == "email"


def test_invite_race_is_conflict_and_rolls_back(client, store, tenant):
    store.race_on_user_create = True
    res = client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"])
    assert res.status_code == 409
    assert store.profiles_in(tenant["company_id"]) == 2


def test_invite_unexpected_failure_is_500_without_partial_user(client, store, tenant):
    store.fail_on_role_assign = True
    res = client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"])
    assert res.status_code == 500
    assert res.json()["code"] == "INTERNAL_ERROR"
    assert len(store.users) == 2


def test_invite_guards(client, store, tenant):
    assert client.post("/api/invite", json=INVITE).status_code == 401
    res = client.post("/api/invite", json=INVITE, headers=tenant["staff_headers"])
    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"


def test_invite_by_superadmin_without_tenant_is_forbidden(client, store, tenant):
    root = store.add_user("root@petpro.local", role="superadmin")
    res = client.post("/api/invite", json=INVITE, headers=bearer(issue_token(root.id)))
    assert res.status_code == 403
    assert res.json()["error"] == "Você precisa estar vinculado a uma empresa para convidar."


def test_invite_auth_is_checked_before_payload(client, tenant):
    assert client.post("/api/invite", json={}, headers=tenant["staff_headers"]).status_code == 403


def test_invite_validation(client, tenant):
    res = client.post("/api/invite", json={**INVITE, "password": "123"}, headers=tenant["admin_headers"])
    assert res.status_code == 400
    assert res.json()["field"] == "password"


def test_invite_succeeds_when_audit_fails(client, store, tenant):
    store.fail_audit = True
    assert client.post("/api/invite", json=INVITE, headers=tenant["admin_headers"]).status_code == 201


# ---- settings/users ----

def test_list_members_of_own_tenant_only(client, store, tenant):
    other = store.add_company("Other Shop")
    store.add_user("outsider@other.local", company_id=other, role="admin")
    store.add_user("norole@test.local", company_id=tenant["company_id"], full_name="Davi Sem Perfil")

    res = client.get("/api/settings/users", headers=tenant["staff_headers"])
    assert res.status_code == 200
    members = {m["email"]: m for m in res.json()}
    assert set(members) == {"admin@test.local", "staff@test.local", "norole@test.local"}
    assert members["admin@test.local"]["role"] == "admin"
    assert members["norole@test.local"]["role"] == "usuario"
    assert members["admin@test.local"]["name"] == "Ana Admin"


def test_member_with_several_roles_is_listed_once_with_highest(client, store, tenant):
    store.roles.add((tenant["staff"].id, "supervisor", tenant["company_id"]))
    store.roles.add((tenant["admin"].id, "supervisor", tenant["company_id"]))

    members = client.get("/api/settings/users", headers=tenant["staff_headers"]).json()
    assert [m["email"] for m in members] == ["admin@test.local", "staff@test.local"]
    assert [m["role"] for m in members] == ["admin", "supervisor"]


def test_list_members_requires_tenant(client, store):
    orphan = store.add_user("orphan@test.local")
    assert client.get("/api/settings/users").status_code == 401
    assert client.get("/api/settings/users", headers=bearer(issue_token(orphan.id))).status_code == 403


def test_update_member_role(client, store, tenant):
    staff_id = tenant["staff"].id
    res = client.put(f"/api/settings/users/{staff_id}", json={"role": "Supervisor"}, headers=tenant["admin_headers"])
    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert (staff_id, "supervisor", tenant["company_id"]) in store.roles
    assert (staff_id, "atendente", tenant["company_id"]) not in store.roles
    assert store.audit[-1].action == "user.role.updated"


def test_promoted_member_becomes_admin_on_next_request(client, tenant):
    staff_id = tenant["staff"].id
    assert client.get("/api/logs", headers=tenant["staff_headers"]).status_code == 403
    client.put(f"/api/settings/users/{staff_id}", json={"role": "admin"}, headers=tenant["admin_headers"])
    assert client.get("/api/logs", headers=tenant["staff_headers"]).status_code == 200


def test_update_member_role_rejections(client, store, tenant):
    staff_id = tenant["staff"].id
    headers = tenant["admin_headers"]

    res = client.put(f"/api/settings/users/{staff_id}", json={"role": "owner"}, headers=headers)
    assert (res.status_code, res.json()["field"]) == (400, "role")

    res = client.put(f"/api/settings/users/{staff_id}", json={"role": "superadmin"}, headers=headers)
    assert res.status_code == 403

    outsider = store.add_user("outsider@other.local", company_id=store.add_company("Other"))
    res = client.put(f"/api/settings/users/{outsider.id}", json={"role": "admin"}, headers=headers)
    assert res.status_code == 404
    assert res.json()["code"] == "NOT_FOUND"

    res = client.put(f"/api/settings/users/{staff_id}", json={"role": "admin"}, headers=tenant["staff_headers"])
    assert res.status_code == 403
