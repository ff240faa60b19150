"""
Tests for the last-admin and self-action guards.
"""

import pytest

from app.modules.users.guards import (
    AdminGuardError, check_can_delete, check_can_change_role, check_can_set_active
)
from tests.factories import make_profile

ADMIN = make_profile("admin-1", role="admin")
USER = make_profile("alice")


class TestDeleteGuard:
    def test_refuses_self_deletion(self):
        with pytest.raises(AdminGuardError, match="your own account"):
            check_can_delete("alice", USER, admin_count=2)

    def test_refuses_last_admin(self):
        with pytest.raises(AdminGuardError, match="last administrator"):
            check_can_delete("someone-else", ADMIN, admin_count=1)

    def test_allows_admin_when_another_exists(self):
        check_can_delete("admin-2", ADMIN, admin_count=2)

    def test_allows_regular_user(self):
        check_can_delete("admin-1", USER, admin_count=1)

    def test_inactive_admin_is_not_counted_as_last(self):
        check_can_delete("admin-2", make_profile("old", role="admin", is_active=False), admin_count=1)


class TestRoleGuard:
    def test_refuses_self_demotion(self):
        with pytest.raises(AdminGuardError, match="own administrator role"):
            check_can_change_role("admin-1", ADMIN, "user", admin_count=2)

    def test_refuses_demoting_last_admin(self):
        with pytest.raises(AdminGuardError, match="last administrator"):
            check_can_change_role("someone-else", ADMIN, "user", admin_count=1)

    def test_allows_demotion_with_second_admin(self):
        check_can_change_role("admin-2", ADMIN, "user", admin_count=2)

    def test_promotion_is_never_guarded(self):
        check_can_change_role("alice", USER, "admin", admin_count=0)


class TestActiveGuard:
    def test_activation_is_never_guarded(self):
        check_can_set_active("admin-1", ADMIN, True, admin_count=1)

    def test_refuses_self_deactivation(self):
        with pytest.raises(AdminGuardError, match="deactivate your own account"):
            check_can_set_active("alice", USER, False, admin_count=2)

    def test_refuses_deactivating_last_admin(self):
        with pytest.raises(AdminGuardError, match="last administrator"):
            check_can_set_active("someone-else", ADMIN, False, admin_count=1)
