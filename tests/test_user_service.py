"""
Tests for UserService: guarded delete / role change, profile bootstrap.
"""

import pytest
from fastapi import HTTPException

from app.core.retry import RetryPolicy
from app.modules.preferences.store import InMemoryKeyValueStore
from app.modules.users.schemas import ProfileUpdate, UserRole
from app.modules.users.service import UserService
from tests.factories import make_profile


def _install_admin_procedures(db):
    def delete_user(params):
        db.tables["profiles"] = [p for p in db.rows("profiles") if p["id"] != params["target_user_id"]]
        return None

    def update_user_role(params):
        for profile in db.rows("profiles"):
            if profile["id"] == params["target_user_id"]:
                profile["role"] = params["new_role"]
        return None

    db.rpc_handlers["delete_user"] = delete_user
    db.rpc_handlers["update_user_role"] = update_user_role


@pytest.fixture
def single_admin_db(fake_db):
    fake_db.seed("profiles", make_profile("root", role="admin"), make_profile("alice"))
    _install_admin_procedures(fake_db)
    return fake_db


class TestLastAdmin:
    def test_delete_sole_admin_rejected_then_accepted_with_second_admin(self, single_admin_db):
        service = UserService(single_admin_db)

        with pytest.raises(HTTPException) as exc:
            service.delete_user("alice", "root")
        assert exc.value.status_code == 400
        assert exc.value.detail == "Cannot delete the last administrator"
        assert single_admin_db.rpc_calls == []

        single_admin_db.seed("profiles", make_profile("second", role="admin"))
        assert service.delete_user("second", "root") is True
        assert service.get_user_by_id("root") is None

    def test_demote_sole_admin_rejected_then_accepted_with_second_admin(self, single_admin_db):
        service = UserService(single_admin_db)

        with pytest.raises(HTTPException) as exc:
            service.update_user_role("alice", "root", UserRole.USER)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Cannot demote the last administrator"

        single_admin_db.seed("profiles", make_profile("second", role="admin"))
        updated = service.update_user_role("second", "root", UserRole.USER)
        assert updated.role == UserRole.USER
        assert single_admin_db.rpc_calls[-1] == (
            "update_user_role", {"target_user_id": "root", "new_role": "user", "actor_id": "second"}
        )

    def test_self_deletion_rejected(self, single_admin_db):
        with pytest.raises(HTTPException) as exc:
            UserService(single_admin_db).delete_user("alice", "alice")
        assert exc.value.status_code == 400

    def test_unchanged_role_skips_the_procedure(self, single_admin_db):
        user = UserService(single_admin_db).update_user_role("root", "root", UserRole.ADMIN)
        assert user.role == UserRole.ADMIN
        assert single_admin_db.rpc_calls == []

    def test_deactivating_sole_admin_rejected(self, single_admin_db):
        with pytest.raises(HTTPException) as exc:
            UserService(single_admin_db).set_user_active("alice", "root", False)
        assert exc.value.status_code == 400


class TestDeleteUser:
    def test_missing_user_is_not_found(self, hub_db):
        _install_admin_procedures(hub_db)
        with pytest.raises(HTTPException) as exc:
            UserService(hub_db).delete_user("admin-1", "ghost")
        assert exc.value.status_code == 404

    def test_cascades_memberships_permissions_and_settings(self, hub_db):
        _install_admin_procedures(hub_db)
        hub_db.seed("group_members", {"group_id": "sales", "user_id": "alice"})
        hub_db.seed("permissions", {"user_id": "alice", "app_id": "crm", "access_level": "editor"})
        hub_db.seed("user_settings", {"user_id": "alice", "key": "language", "value": "en-US"})

        assert UserService(hub_db).delete_user("admin-1", "alice") is True
        for table in ("group_members", "permissions", "user_settings"):
            assert [r for r in hub_db.rows(table) if r["user_id"] == "alice"] == []

    def test_settings_are_cleared_through_the_settings_store(self, hub_db):
        _install_admin_procedures(hub_db)
        store = InMemoryKeyValueStore()
        store.set_many("alice", {"language": "en-US", "theme": "dark"})
        store.set_many("bob", {"theme": "light"})

        UserService(hub_db, settings_store=store).delete_user("admin-1", "alice")
        assert store.get_all("alice") == {}
        assert store.get_all("bob") == {"theme": "light"}

    def test_procedure_failure_surfaces_named_error(self, hub_db):
        def refuse(params):
            raise RuntimeError("permission denied for function delete_user")

        hub_db.rpc_handlers["delete_user"] = refuse
        with pytest.raises(HTTPException) as exc:
            UserService(hub_db).delete_user("admin-1", "bob")
        assert exc.value.status_code == 502
        assert exc.value.detail.startswith("Failed to delete user")
        assert UserService(hub_db).get_user_by_id("bob") is not None


class TestEnsureProfile:
    def test_existing_profile_is_returned(self, hub_db):
        profile = UserService(hub_db).ensure_profile("alice", "alice@example.com")
        assert profile["role"] == "user"

    def test_late_trigger_row_is_picked_up_by_retry(self, fake_db):
        def trigger_catches_up(delay):
            fake_db.seed("profiles", make_profile("newbie"))

        policy = RetryPolicy(max_attempts=3, base_delay=0.01, sleep=trigger_catches_up)
        profile = UserService(fake_db).ensure_profile("newbie", "newbie@example.com", retry_policy=policy)

        assert profile["id"] == "newbie"
        assert len(fake_db.rows("profiles")) == 1

    def test_profile_created_when_trigger_never_runs(self, fake_db):
        policy = RetryPolicy(max_attempts=2, base_delay=0.01, sleep=lambda delay: None)
        profile = UserService(fake_db).ensure_profile("late", "late@example.com", retry_policy=policy)

        assert profile["role"] == "user"
        assert profile["full_name"] == "late"
        assert profile["is_active"] is True


class TestProfiles:
    def test_update_profile_trims_name(self, hub_db):
        user = UserService(hub_db).update_profile("alice", ProfileUpdate(full_name="  Alice Doe "))
        assert user.full_name == "Alice Doe"

    def test_update_missing_profile_is_not_found(self, hub_db):
        with pytest.raises(HTTPException) as exc:
            UserService(hub_db).update_profile("ghost", ProfileUpdate(full_name="Ghost"))
        assert exc.value.status_code == 404

    def test_user_with_groups(self, hub_db):
        hub_db.seed("group_members", {"group_id": "sales", "user_id": "alice"})
        user = UserService(hub_db).get_user_with_groups("alice")
        assert [g["name"] for g in user.groups] == ["Sales"]

    def test_count_active_admins_ignores_inactive(self, hub_db):
        hub_db.seed("profiles", make_profile("retired", role="admin", is_active=False))
        assert UserService(hub_db).count_active_admins() == 2
