"""
Static role and capability policy.

Roles and capabilities are closed enumerations. The role → capability table is
hardcoded; nothing here touches the database. Stored role strings are parsed
through ``parse_role``: legacy values keep their capabilities through
``LEGACY_ROLE_MIGRATIONS`` and unknown values resolve to "no role" instead of
raising.
"""
import enum
from collections.abc import Iterable, Mapping
from typing import Optional

from app.utils import get_logger


log = get_logger(__name__)


class AppRole(str, enum.Enum):
    """Roles an identity can hold, in resolution order."""
    ADMINISTRATOR = "administrator"
    STAFF = "staff"
    EDITOR = "editor"
    TEACHER = "teacher"
    MEMBER = "member"
    VIEWER = "viewer"
    # Legacy, no longer assigned
    ADMIN = "admin"


class Capability(str, enum.Enum):
    """Named permissions gating admin features."""
    VIEW_PUBLIC_CONTENT = "view_public_content"
    VIEW_MEMBER_DIRECTORY = "view_member_directory"
    MANAGE_ALBUMS = "manage_albums"
    MANAGE_EVENTS = "manage_events"
    MANAGE_TESTIMONIES = "manage_testimonies"
    MANAGE_STUDENTS = "manage_students"
    MANAGE_CLASSES = "manage_classes"
    TAKE_ATTENDANCE = "take_attendance"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_DEPARTMENTS = "manage_departments"
    MANAGE_STAFF = "manage_staff"
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_PRAYER_REQUESTS = "manage_prayer_requests"
    VIEW_ADMIN_PANEL = "view_admin_panel"


# Legacy roles, mapped to the current role whose capabilities they keep.
# They resolve after every current role and are never assigned.
LEGACY_ROLE_MIGRATIONS: dict[AppRole, AppRole] = {
    AppRole.ADMIN: AppRole.ADMINISTRATOR,
}

# Resolution order when an identity holds several role rows; first match wins
ROLE_PRIORITY: tuple[AppRole, ...] = (
    AppRole.ADMINISTRATOR,
    AppRole.STAFF,
    AppRole.EDITOR,
    AppRole.TEACHER,
    AppRole.MEMBER,
    AppRole.VIEWER,
    AppRole.ADMIN,
)

# Roles offered by the role management screen
ASSIGNABLE_ROLES: tuple[AppRole, ...] = (
    AppRole.MEMBER,
    AppRole.EDITOR,
    AppRole.TEACHER,
    AppRole.STAFF,
    AppRole.ADMINISTRATOR,
)

ROLE_DISPLAY_NAMES: dict[AppRole, str] = {
    AppRole.ADMINISTRATOR: "Administrator",
    AppRole.STAFF: "Staff",
    AppRole.EDITOR: "Editor",
    AppRole.TEACHER: "Teacher",
    AppRole.MEMBER: "Member",
    AppRole.VIEWER: "Viewer",
    AppRole.ADMIN: "Administrator",
}

_MEMBER = frozenset({
    Capability.VIEW_PUBLIC_CONTENT,
    Capability.VIEW_MEMBER_DIRECTORY,
})

ROLE_CAPABILITIES: dict[AppRole, frozenset[Capability]] = {
    AppRole.MEMBER: _MEMBER,
    AppRole.EDITOR: _MEMBER | {
        Capability.VIEW_ADMIN_PANEL,
        Capability.MANAGE_ALBUMS,
        Capability.MANAGE_EVENTS,
        Capability.MANAGE_TESTIMONIES,
    },
    AppRole.TEACHER: _MEMBER | {
        Capability.VIEW_ADMIN_PANEL,
        Capability.MANAGE_STUDENTS,
        Capability.MANAGE_CLASSES,
        Capability.TAKE_ATTENDANCE,
    },
    AppRole.STAFF: _MEMBER | {
        Capability.VIEW_ADMIN_PANEL,
        Capability.MANAGE_MEMBERS,
        Capability.MANAGE_DEPARTMENTS,
        Capability.MANAGE_STAFF,
        Capability.MANAGE_PRAYER_REQUESTS,
    },
    AppRole.ADMINISTRATOR: frozenset(Capability),
    AppRole.VIEWER: frozenset({Capability.VIEW_PUBLIC_CONTENT}),
}
ROLE_CAPABILITIES.update({
    legacy: ROLE_CAPABILITIES[current] for legacy, current in LEGACY_ROLE_MIGRATIONS.items()
})


def parse_role(value: str | None) -> Optional[AppRole]:
    """
    Parse a stored role string.

    Returns the matching role (legacy roles included) or None for anything
    unrecognised.
    """
    if not value:
        return None
    normalized = value.strip().lower()
    try:
        return AppRole(normalized)
    except ValueError:
        log.warning("Ignoring unknown role value %r", value)
        return None


def resolve_role(stored_values: Iterable[str | None]) -> Optional[AppRole]:
    """
    Pick the single highest-priority role from an identity's stored role rows.

    Row order does not matter. Returns None when no row parses to a role.
    """
    held = {role for role in map(parse_role, stored_values) if role is not None}
    for role in ROLE_PRIORITY:
        if role in held:
            return role
    return None


def role_display_name(role: AppRole) -> str:
    return ROLE_DISPLAY_NAMES.get(role, role.value)


class PermissionResolver:
    """
    Answers capability questions for one resolved role.

    A missing role, or a role without a table entry, grants nothing. No method
    raises; callers hide functionality instead of failing.
    """

    def __init__(
        self,
        role: Optional[AppRole],
        table: Mapping[AppRole, frozenset[Capability]] = ROLE_CAPABILITIES,
    ) -> None:
        self.role = role
        self._granted = frozenset(table.get(role, frozenset())) if role else frozenset()

    @classmethod
    def from_stored_roles(cls, stored_values: Iterable[str | None]) -> "PermissionResolver":
        return cls(resolve_role(stored_values))

    @property
    def capabilities(self) -> list[Capability]:
        return sorted(self._granted, key=lambda capability: capability.value)

    @property
    def is_administrator(self) -> bool:
        """True only for the current administrator role, never for legacy ``admin``."""
        return self.role is AppRole.ADMINISTRATOR

    def can(self, capability: Capability | str) -> bool:
        try:
            return Capability(capability) in self._granted
        except ValueError:
            return False

    def can_any(self, capabilities: Iterable[Capability | str]) -> bool:
        return any(self.can(capability) for capability in capabilities)

    def __repr__(self) -> str:
        return f"<PermissionResolver(role={self.role.value if self.role else None})>"
