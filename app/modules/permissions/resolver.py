"""
Permission resolution rules.

Pure functions over table snapshots (lists of row dicts as returned by
Supabase). The authoritative computation is the ``get_user_apps`` stored
procedure; these functions implement the same contract for the fallback
path, the admin preview and access statistics.

Precedence for a (user, application) pair:

1. inactive application -> locked (hard gate, beats any grant)
2. individual permission -> its level, including an explicit ``locked``
3. group permissions -> the most permissive level among the user's groups;
   a public application never drops below viewer here
4. public application -> viewer
5. nothing on file -> locked (default deny)
"""

import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from app.modules.permissions.schemas import AccessLevel, PermissionSource, ResolvedApp

logger = logging.getLogger(__name__)

_RANK = {
    AccessLevel.LOCKED: 0,
    AccessLevel.VIEWER: 1,
    AccessLevel.EDITOR: 2,
}

UI_ACTIONS = {
    AccessLevel.EDITOR: "access",
    AccessLevel.VIEWER: "view_only",
    AccessLevel.LOCKED: "no_access",
}


class ResolvedAccess(NamedTuple):
    access_level: AccessLevel
    permission_source: PermissionSource


def rank(level: AccessLevel) -> int:
    return _RANK[level]


def parse_access_level(value: Any) -> Optional[AccessLevel]:
    """AccessLevel for a raw column value, None when it is not one of the three levels."""
    if isinstance(value, AccessLevel):
        return value
    try:
        return AccessLevel(value)
    except ValueError:
        return None


def most_permissive(levels: Iterable[AccessLevel]) -> Optional[AccessLevel]:
    best = None
    for level in levels:
        if best is None or rank(level) > rank(best):
            best = level
    return best


def ui_action(level: AccessLevel) -> str:
    return UI_ACTIONS[level]


def resolve_access(
    application: Dict[str, Any],
    individual_level: Optional[AccessLevel] = None,
    group_levels: Iterable[AccessLevel] = (),
) -> ResolvedAccess:
    """Effective access for one application given the user's individual and group grants."""
    if not application.get("is_active", True):
        return ResolvedAccess(AccessLevel.LOCKED, PermissionSource.DEFAULT)

    if individual_level is not None:
        return ResolvedAccess(individual_level, PermissionSource.INDIVIDUAL)

    is_public = bool(application.get("is_public", False))
    group_level = most_permissive(group_levels)
    if group_level is not None:
        if is_public and rank(group_level) < rank(AccessLevel.VIEWER):
            return ResolvedAccess(AccessLevel.VIEWER, PermissionSource.DEFAULT)
        return ResolvedAccess(group_level, PermissionSource.GROUP)

    if is_public:
        return ResolvedAccess(AccessLevel.VIEWER, PermissionSource.DEFAULT)
    return ResolvedAccess(AccessLevel.LOCKED, PermissionSource.DEFAULT)


def to_resolved_app(application: Dict[str, Any], access: ResolvedAccess) -> ResolvedApp:
    return ResolvedApp(
        app_id=application["id"],
        app_name=application["name"],
        app_url=application.get("url"),
        app_description=application.get("description"),
        app_icon=application.get("icon"),
        app_color=application.get("color"),
        app_category=application.get("category"),
        app_is_active=bool(application.get("is_active", True)),
        app_is_public=bool(application.get("is_public", False)),
        app_display_order=application.get("display_order") or 0,
        access_level=access.access_level,
        permission_source=access.permission_source,
    )


def _ordered(applications: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(applications, key=lambda a: (a.get("display_order") or 0, a.get("name") or ""))


def resolve_user_apps(
    user_id: str,
    applications: Iterable[Dict[str, Any]],
    permissions: Iterable[Dict[str, Any]],
    memberships: Iterable[Dict[str, Any]],
    group_permissions: Iterable[Dict[str, Any]],
) -> List[ResolvedApp]:
    """Resolve every application for one user.

    Rows that belong to other users or to groups the user is not a member
    of are ignored, so callers may pass unfiltered snapshots. Rows holding
    an unknown access level never grant anything.
    """
    individual: Dict[str, AccessLevel] = {}
    for row in permissions:
        if row.get("user_id") != user_id:
            continue
        level = parse_access_level(row.get("access_level"))
        if level is None:
            logger.warning(f"Ignoring permission {row.get('id')} with invalid access level {row.get('access_level')!r}")
            continue
        individual[row["app_id"]] = level

    group_ids = {m["group_id"] for m in memberships if m.get("user_id") == user_id}
    by_app: Dict[str, List[AccessLevel]] = {}
    for row in group_permissions:
        if row.get("group_id") not in group_ids:
            continue
        level = parse_access_level(row.get("access_level"))
        if level is None:
            logger.warning(f"Ignoring group permission {row.get('id')} with invalid access level {row.get('access_level')!r}")
            continue
        by_app.setdefault(row["app_id"], []).append(level)

    resolved = []
    for application in _ordered(applications):
        app_id = application["id"]
        access = resolve_access(application, individual.get(app_id), by_app.get(app_id, []))
        resolved.append(to_resolved_app(application, access))
    return resolved


def safe_deny(applications: Iterable[Dict[str, Any]]) -> List[ResolvedApp]:
    """Every application locked: the result used when the authoritative resolver is unreachable."""
    denied = ResolvedAccess(AccessLevel.LOCKED, PermissionSource.DEFAULT)
    return [to_resolved_app(a, denied) for a in _ordered(applications)]


def open_access(applications: Iterable[Dict[str, Any]]) -> List[ResolvedApp]:
    """Every active application fully accessible. Only for deployments without a backend."""
    granted = ResolvedAccess(AccessLevel.EDITOR, PermissionSource.DEFAULT)
    denied = ResolvedAccess(AccessLevel.LOCKED, PermissionSource.DEFAULT)
    return [
        to_resolved_app(a, granted if a.get("is_active", True) else denied)
        for a in _ordered(applications)
    ]
