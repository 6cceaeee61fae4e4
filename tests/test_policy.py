"""Tests for the static role and capability policy."""

import itertools

import pytest

from app.features.permissions.policy import (
    ASSIGNABLE_ROLES,
    ROLE_CAPABILITIES,
    AppRole,
    Capability,
    PermissionResolver,
    parse_role,
    resolve_role,
)


class TestParseRole:
    def test_known_role(self):
        assert parse_role("staff") is AppRole.STAFF

    def test_case_and_whitespace_ignored(self):
        assert parse_role("  Teacher ") is AppRole.TEACHER

    def test_legacy_admin_is_its_own_role(self):
        assert parse_role("admin") is AppRole.ADMIN
        assert parse_role(" Admin ") is AppRole.ADMIN

    @pytest.mark.parametrize("value", [None, "", "superuser", "owner"])
    def test_unknown_values_are_no_role(self, value):
        assert parse_role(value) is None


class TestResolveRole:
    @pytest.mark.parametrize("rows", itertools.permutations(["administrator", "member"]))
    def test_priority_ignores_row_order(self, rows):
        assert resolve_role(rows) is AppRole.ADMINISTRATOR

    def test_priority_chain(self):
        assert resolve_role(["viewer", "teacher", "editor"]) is AppRole.EDITOR
        assert resolve_role(["member", "staff", "teacher"]) is AppRole.STAFF
        assert resolve_role(["viewer", "member"]) is AppRole.MEMBER

    def test_no_rows_is_no_role(self):
        assert resolve_role([]) is None

    def test_unknown_rows_are_skipped(self):
        assert resolve_role(["superuser", "member"]) is AppRole.MEMBER
        assert resolve_role(["superuser"]) is None

    def test_legacy_admin_resolves_last(self):
        assert resolve_role(["admin", "staff"]) is AppRole.STAFF
        assert resolve_role(["admin", "viewer"]) is AppRole.VIEWER
        assert resolve_role(["admin", "administrator"]) is AppRole.ADMINISTRATOR
        assert resolve_role(["admin"]) is AppRole.ADMIN


class TestPermissionResolver:
    def test_administrator_has_every_capability(self):
        resolver = PermissionResolver(AppRole.ADMINISTRATOR)
        assert all(resolver.can(capability) for capability in Capability)
        assert resolver.is_administrator

    def test_legacy_admin_keeps_capabilities_but_is_not_administrator(self):
        resolver = PermissionResolver.from_stored_roles(["admin"])
        assert resolver.role is AppRole.ADMIN
        assert all(resolver.can(capability) for capability in Capability)
        assert not resolver.is_administrator

    def test_no_role_grants_nothing(self):
        resolver = PermissionResolver(None)
        assert resolver.capabilities == []
        assert not any(resolver.can(capability) for capability in Capability)
        assert not resolver.can_any(list(Capability))
        assert not resolver.is_administrator

    def test_role_without_table_entry_grants_nothing(self):
        resolver = PermissionResolver(AppRole.EDITOR, table={AppRole.MEMBER: frozenset(Capability)})
        assert not any(resolver.can(capability) for capability in Capability)
        assert not resolver.can_any(list(Capability))

    def test_from_stored_roles_with_zero_rows(self):
        resolver = PermissionResolver.from_stored_roles([])
        assert resolver.role is None
        assert not resolver.can_any([Capability.VIEW_PUBLIC_CONTENT, Capability.MANAGE_MEMBERS])

    def test_member_capabilities(self):
        resolver = PermissionResolver(AppRole.MEMBER)
        assert resolver.capabilities == [
            Capability.VIEW_MEMBER_DIRECTORY,
            Capability.VIEW_PUBLIC_CONTENT,
        ]
        assert not resolver.can(Capability.VIEW_ADMIN_PANEL)

    def test_viewer_sees_public_content_only(self):
        resolver = PermissionResolver(AppRole.VIEWER)
        assert resolver.capabilities == [Capability.VIEW_PUBLIC_CONTENT]

    def test_staff_manages_members_but_not_roles(self):
        resolver = PermissionResolver(AppRole.STAFF)
        assert resolver.can(Capability.MANAGE_MEMBERS)
        assert not resolver.can(Capability.MANAGE_ROLES)
        assert resolver.can_any([Capability.MANAGE_ROLES, Capability.MANAGE_STAFF])

    def test_accepts_capability_strings(self):
        resolver = PermissionResolver(AppRole.TEACHER)
        assert resolver.can("take_attendance")
        assert not resolver.can("launch_rockets")

    def test_empty_can_any_is_false(self):
        assert not PermissionResolver(AppRole.ADMINISTRATOR).can_any([])


def test_every_assignable_role_has_a_table_entry():
    assert set(ASSIGNABLE_ROLES) <= set(ROLE_CAPABILITIES)
    assert AppRole.VIEWER not in ASSIGNABLE_ROLES
    assert AppRole.ADMIN not in ASSIGNABLE_ROLES
    assert AppRole.ADMIN in ROLE_CAPABILITIES
