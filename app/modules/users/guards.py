"""
Last-admin and self-action guards.

These checks run before a mutation is sent to Supabase so the admin gets an
immediate, readable refusal. The delete_user / update_user_role procedures
enforce the same rules server-side.

``admin_count`` is the number of active admins, the target included.
"""

from typing import Any, Dict

ADMIN = "admin"


class AdminGuardError(Exception):
    """Mutation refused because it would lock the hub out of administration."""


def _is_active_admin(profile: Dict[str, Any]) -> bool:
    return profile.get("role") == ADMIN and profile.get("is_active", True)


def check_can_delete(actor_id: str, target: Dict[str, Any], admin_count: int) -> None:
    if target["id"] == actor_id:
        raise AdminGuardError("You cannot delete your own account")
    if _is_active_admin(target) and admin_count <= 1:
        raise AdminGuardError("Cannot delete the last administrator")


def check_can_change_role(actor_id: str, target: Dict[str, Any], new_role: str, admin_count: int) -> None:
    if target.get("role") != ADMIN or new_role == ADMIN:
        return
    if target["id"] == actor_id:
        raise AdminGuardError("You cannot remove your own administrator role")
    if _is_active_admin(target) and admin_count <= 1:
        raise AdminGuardError("Cannot demote the last administrator")


def check_can_set_active(actor_id: str, target: Dict[str, Any], is_active: bool, admin_count: int) -> None:
    if is_active:
        return
    if target["id"] == actor_id:
        raise AdminGuardError("You cannot deactivate your own account")
    if _is_active_admin(target) and admin_count <= 1:
        raise AdminGuardError("Cannot deactivate the last administrator")
