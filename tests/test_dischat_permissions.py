"""Permission bitmask resolution."""

from aliice.core.permissions import (
    ALL_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
    Permission,
    compute_effective,
    granted_names,
    has_permission,
)


def test_has_permission_requires_every_bit():
    combined = Permission.SEND_MESSAGES | Permission.VIEW_CHANNEL
    assert has_permission(int(combined), Permission.SEND_MESSAGES)
    assert not has_permission(int(Permission.SEND_MESSAGES), combined)


def test_roles_are_or_combined():
    effective = compute_effective([int(Permission.KICK_MEMBERS), int(DEFAULT_ROLE_PERMISSIONS)])
    assert has_permission(effective, Permission.KICK_MEMBERS)
    assert has_permission(effective, Permission.SEND_MESSAGES)
    assert not has_permission(effective, Permission.MANAGE_ROLES)


def test_administrator_role_grants_everything():
    assert compute_effective([int(Permission.ADMINISTRATOR)]) == ALL_PERMISSIONS


def test_owner_and_admin_flag_override_roles():
    assert compute_effective([], is_owner=True) == ALL_PERMISSIONS
    assert compute_effective([0], is_admin=True) == ALL_PERMISSIONS


def test_no_roles_means_no_permissions():
    assert compute_effective([]) == 0
    assert granted_names(0) == []


def test_moderate_members_bit_survives_large_values():
    assert int(Permission.MODERATE_MEMBERS) == 1 << 40
    assert has_permission(ALL_PERMISSIONS, Permission.MODERATE_MEMBERS)
    assert granted_names(int(Permission.MODERATE_MEMBERS)) == ["MODERATE_MEMBERS"]
