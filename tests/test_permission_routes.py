"""Tests for permission and role management routes."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.features.permissions.dependencies import fetch_role_names


def stored_roles(engine, user_id):
    async def fetch():
        async with async_sessionmaker(engine)() as session:
            return sorted(await fetch_role_names(session, user_id))
    return asyncio.run(fetch())


class TestMyPermissions:
    def test_member_permissions(self, client, caller, primary_engine):
        caller.login("user-1", "member", engine=primary_engine)

        resp = client.get("/permissions/me")

        assert resp.status_code == 200
        assert resp.json() == {
            "user_id": "user-1",
            "role": "member",
            "display_name": "Member",
            "capabilities": ["view_member_directory", "view_public_content"],
        }

    def test_highest_role_wins(self, client, caller, primary_engine):
        caller.login("user-1", "member", "administrator", engine=primary_engine)

        resp = client.get("/permissions/me")

        assert resp.json()["role"] == "administrator"
        assert "manage_roles" in resp.json()["capabilities"]

    def test_legacy_admin_permissions(self, client, caller, primary_engine):
        caller.login("user-1", "admin", engine=primary_engine)

        body = client.get("/permissions/me").json()

        assert body["role"] == "admin"
        assert body["display_name"] == "Administrator"
        assert "manage_roles" in body["capabilities"]

    def test_no_role(self, client, caller):
        caller.login("user-1")

        resp = client.get("/permissions/me")

        assert resp.status_code == 200
        assert resp.json()["role"] is None
        assert resp.json()["capabilities"] == []

    def test_unauthenticated(self, client):
        resp = client.get("/permissions/me")
        assert resp.status_code == 401


class TestCheckPermissions:
    def test_check_reports_each_capability(self, client, caller, primary_engine):
        caller.login("user-1", "teacher", engine=primary_engine)

        resp = client.post(
            "/permissions/check",
            json={"capabilities": ["take_attendance", "manage_members"]},
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "role": "teacher",
            "results": {"take_attendance": True, "manage_members": False},
            "any_granted": True,
        }

    def test_no_role_grants_nothing(self, client, caller):
        caller.login("user-1")

        resp = client.post("/permissions/check", json={"capabilities": ["view_public_content"]})

        assert resp.json()["any_granted"] is False

    def test_unknown_capability_rejected(self, client, caller):
        caller.login("user-1")

        resp = client.post("/permissions/check", json={"capabilities": ["launch_rockets"]})

        assert resp.status_code == 400

    def test_empty_list_rejected(self, client, caller):
        caller.login("user-1")

        resp = client.post("/permissions/check", json={"capabilities": []})

        assert resp.status_code == 400


class TestRoleDefinitions:
    def test_lists_assignable_roles(self, client, caller):
        caller.login("user-1")

        resp = client.get("/permissions/roles")

        assert resp.status_code == 200
        roles = {role["role"]: role for role in resp.json()}
        assert set(roles) == {"member", "editor", "teacher", "staff", "administrator"}
        assert roles["editor"]["display_name"] == "Editor"
        assert "manage_albums" in roles["editor"]["capabilities"]


class TestRoleAssignment:
    def test_administrator_replaces_roles(self, client, caller, primary_engine):
        caller.login("admin-1", "administrator", engine=primary_engine)
        caller.login("user-2", "member", "viewer", engine=primary_engine)
        caller.login("admin-1")

        resp = client.put("/permissions/users/user-2/role", json={"role": "staff"})

        assert resp.status_code == 200
        assert resp.json()["user_id"] == "user-2"
        assert resp.json()["role"] == "staff"
        assert stored_roles(primary_engine, "user-2") == ["staff"]

    def test_cannot_change_own_role(self, client, caller, primary_engine):
        caller.login("admin-1", "administrator", engine=primary_engine)

        resp = client.put("/permissions/users/admin-1/role", json={"role": "member"})

        assert resp.status_code == 400
        assert stored_roles(primary_engine, "admin-1") == ["administrator"]

    def test_staff_cannot_assign(self, client, caller, primary_engine):
        caller.login("staff-1", "staff", engine=primary_engine)

        resp = client.put("/permissions/users/user-2/role", json={"role": "administrator"})

        assert resp.status_code == 403
        assert stored_roles(primary_engine, "user-2") == []

    def test_unknown_role_rejected(self, client, caller, primary_engine):
        caller.login("admin-1", "administrator", engine=primary_engine)

        resp = client.put("/permissions/users/user-2/role", json={"role": "superuser"})

        assert resp.status_code == 400
        assert stored_roles(primary_engine, "user-2") == []

    @pytest.mark.parametrize("role", ["viewer", "admin"])
    def test_unassignable_role_rejected(self, client, caller, primary_engine, role):
        caller.login("user-2", "member", engine=primary_engine)
        caller.login("admin-1", "administrator", engine=primary_engine)

        resp = client.put("/permissions/users/user-2/role", json={"role": role})

        assert resp.status_code == 400
        assert "cannot be assigned" in resp.json()["role"]
        assert stored_roles(primary_engine, "user-2") == ["member"]

    def test_legacy_admin_cannot_assign(self, client, caller, primary_engine):
        caller.login("admin-1", "admin", engine=primary_engine)

        resp = client.put("/permissions/users/user-2/role", json={"role": "member"})

        assert resp.status_code == 403
        assert stored_roles(primary_engine, "user-2") == []

    def test_get_user_roles(self, client, caller, primary_engine):
        caller.login("user-2", "member", "admin", engine=primary_engine)
        caller.login("admin-1", "administrator", engine=primary_engine)

        resp = client.get("/permissions/users/user-2/roles")

        assert resp.status_code == 200
        body = resp.json()
        assert sorted(a["role"] for a in body["assignments"]) == ["admin", "member"]
        assert body["resolved_role"] == "member"

    def test_legacy_admin_reads_user_roles(self, client, caller, primary_engine):
        caller.login("user-2", "staff", engine=primary_engine)
        caller.login("admin-1", "admin", engine=primary_engine)

        resp = client.get("/permissions/users/user-2/roles")

        assert resp.status_code == 200
        assert resp.json()["resolved_role"] == "staff"

    def test_get_user_roles_requires_role_management(self, client, caller, primary_engine):
        caller.login("editor-1", "editor", engine=primary_engine)

        resp = client.get("/permissions/users/user-2/roles")

        assert resp.status_code == 403

    def test_remove_role(self, client, caller, primary_engine):
        caller.login("user-2", "member", "admin", engine=primary_engine)
        caller.login("admin-1", "administrator", engine=primary_engine)

        resp = client.delete("/permissions/users/user-2/roles/admin")

        assert resp.status_code == 204
        assert stored_roles(primary_engine, "user-2") == ["member"]

    def test_remove_missing_role(self, client, caller, primary_engine):
        caller.login("admin-1", "administrator", engine=primary_engine)

        resp = client.delete("/permissions/users/user-2/roles/staff")

        assert resp.status_code == 404
