"""
Tests for GroupService: membership idempotence, unique names, group grants.
"""

import pytest
from fastapi import HTTPException

from app.modules.groups.schemas import GroupCreate, GroupUpdate
from app.modules.groups.service import GroupService
from app.modules.permissions.schemas import AccessLevel


@pytest.fixture
def service(hub_db):
    return GroupService(hub_db)


class TestMembership:
    def test_add_member_twice_keeps_one_record(self, service, hub_db):
        first = service.add_member("sales", "alice")
        second = service.add_member("sales", "alice")

        assert first.id == second.id
        rows = [r for r in hub_db.rows("group_members") if r["group_id"] == "sales" and r["user_id"] == "alice"]
        assert len(rows) == 1

    def test_concurrent_insert_race_returns_existing_membership(self, service, hub_db, monkeypatch):
        # Another request inserts between the existence check and our insert
        original = service._find_membership
        calls = []

        def racing_find(group_id, user_id):
            calls.append(1)
            if len(calls) == 1:
                hub_db.seed("group_members", {"group_id": group_id, "user_id": user_id})
                return None
            return original(group_id, user_id)

        monkeypatch.setattr(service, "_find_membership", racing_find)
        member = service.add_member("sales", "alice")

        assert member.user_id == "alice"
        assert len(hub_db.rows("group_members")) == 1

    def test_remove_non_member_is_noop(self, service):
        assert service.remove_member("sales", "bob") is False

    def test_remove_member(self, service, hub_db):
        service.add_member("sales", "alice")
        assert service.remove_member("sales", "alice") is True
        assert hub_db.rows("group_members") == []

    def test_add_to_missing_group_is_not_found(self, service):
        with pytest.raises(HTTPException) as exc:
            service.add_member("nope", "alice")
        assert exc.value.status_code == 404

    def test_add_missing_user_is_not_found(self, service):
        with pytest.raises(HTTPException) as exc:
            service.add_member("sales", "ghost")
        assert exc.value.status_code == 404
        assert exc.value.detail == "User not found"

    def test_list_members_includes_profiles(self, service):
        service.add_member("sales", "alice")
        members = service.list_members("sales")
        assert [m.profile["email"] for m in members] == ["alice@example.com"]


class TestGroups:
    def test_duplicate_name_conflicts(self, service):
        with pytest.raises(HTTPException) as exc:
            service.create_group(GroupCreate(name="Sales"))
        assert exc.value.status_code == 409

    def test_rename_to_existing_name_conflicts(self, service):
        ops = service.create_group(GroupCreate(name="Ops"))
        with pytest.raises(HTTPException) as exc:
            service.update_group(ops.id, GroupUpdate(name="Sales"))
        assert exc.value.status_code == 409

    def test_update_missing_group_is_not_found(self, service):
        with pytest.raises(HTTPException) as exc:
            service.update_group("nope", GroupUpdate(description="x"))
        assert exc.value.status_code == 404

    def test_delete_group_removes_members_and_grants(self, service, hub_db):
        service.add_member("sales", "alice")
        service.set_group_permission("sales", "crm", AccessLevel.EDITOR)

        assert service.delete_group("sales") is True
        assert hub_db.rows("group_members") == []
        assert hub_db.rows("group_permissions") == []
        assert service.get_group_by_id("sales") is None


class TestGroupPermissions:
    def test_set_replaces_existing_level(self, service, hub_db):
        service.set_group_permission("sales", "crm", AccessLevel.VIEWER, granted_by="admin-1")
        updated = service.set_group_permission("sales", "crm", AccessLevel.EDITOR, granted_by="admin-1")

        assert updated.access_level == AccessLevel.EDITOR
        assert updated.granted_by == "admin-1"
        assert len(hub_db.rows("group_permissions")) == 1

    def test_remove_absent_grant_is_noop(self, service):
        assert service.remove_group_permission("sales", "crm") is False

    def test_group_details(self, service):
        service.add_member("sales", "alice")
        service.set_group_permission("sales", "crm", AccessLevel.VIEWER)
        details = service.get_group_details("sales")

        assert details.name == "Sales"
        assert [m.user_id for m in details.members] == ["alice"]
        assert [p.app_id for p in details.permissions] == ["crm"]

    def test_backend_failure_names_the_operation(self, service, hub_db):
        hub_db.failing_tables.add("group_permissions")
        with pytest.raises(HTTPException) as exc:
            service.list_group_permissions("sales")
        assert exc.value.status_code == 502
        assert exc.value.detail.startswith("Failed to list group permissions")
