"""Role-based navigation menu and route gating.

The menu mirrors the planner UI sidebar. Planning and export sections
are for planners and admins; administration is admin-only.
"""
from __future__ import annotations

from typing import Iterable, Union

from berthboard.models.base import UserRoleEnum
from berthboard.schemas.auth import NavigationItem

RoleLike = Union[UserRoleEnum, str]

PLANNING_ROLES = (UserRoleEnum.PLANNER, UserRoleEnum.ADMIN)

ROLE_PERMISSIONS: dict[UserRoleEnum, tuple[str, ...]] = {
    UserRoleEnum.ADMIN: ("*",),
    UserRoleEnum.PLANNER: ("vessels.create", "vessels.edit", "vessels.delete", "berths.manage"),
    UserRoleEnum.VIEWER: ("vessels.view", "reports.view"),
    UserRoleEnum.AGENT: ("vessels.view_own", "vessels.edit_own"),
}

# Path prefix -> role required to open it (admin passes everything)
ROUTE_ROLES: dict[str, UserRoleEnum] = {
    "/planning": UserRoleEnum.PLANNER,
    "/admin": UserRoleEnum.ADMIN,
}


def _role(value: RoleLike) -> UserRoleEnum:
    return value if isinstance(value, UserRoleEnum) else UserRoleEnum(value)


def has_required_role(user_role: RoleLike, required: RoleLike | Iterable[RoleLike]) -> bool:
    """Admin can access everything; otherwise the role must match."""
    role = _role(user_role)
    if role == UserRoleEnum.ADMIN:
        return True
    if isinstance(required, (str, UserRoleEnum)):
        required = [required]
    return role in {_role(r) for r in required}


def has_permission(user_role: RoleLike, permission: str) -> bool:
    granted = ROLE_PERMISSIONS.get(_role(user_role), ())
    return "*" in granted or permission in granted


def can_access(user_role: RoleLike, path: str) -> bool:
    for prefix, required in ROUTE_ROLES.items():
        if path == prefix or path.startswith(prefix + "/"):
            return has_required_role(user_role, required)
    return True


def _item(key: str, label: str, path: str | None = None, children=None) -> NavigationItem:
    return NavigationItem(key=key, label=label, path=path, children=children or [])


def build_navigation(user_role: RoleLike) -> list[NavigationItem]:
    """Menu items visible to the given role, in sidebar order."""
    role = _role(user_role)
    is_planner = has_required_role(role, PLANNING_ROLES)
    menu = [_item("dashboard", "Dashboard", "/dashboard")]

    vessels = [_item("vessels-list", "All Vessels", "/vessels/list")]
    if is_planner:
        vessels += [
            _item("vessels-schedule", "Schedule View", "/vessels/schedule"),
            _item("vessels-add", "Add Vessel", "/vessels/add"),
        ]
    menu.append(_item("vessels", "Vessel Management", children=vessels))

    if is_planner:
        planning = [
            _item("planning-gantt", "Timeline View", "/planning/gantt"),
            _item("planning-conflicts", "Conflict Resolution", "/planning/conflicts"),
        ]
        if role == UserRoleEnum.ADMIN:
            planning.append(_item("planning-optimization", "Auto Scheduling", "/planning/optimization"))
        menu.append(_item("planning", "Berth Planning", children=planning))

    analytics = [_item("analytics-overview", "Performance Overview", "/analytics/overview")]
    if is_planner:
        analytics += [
            _item("analytics-utilization", "Berth Utilization", "/analytics/utilization"),
            _item("analytics-trends", "Historical Trends", "/analytics/trends"),
        ]
    menu.append(_item("analytics", "Analytics & Reports", children=analytics))

    if is_planner:
        menu.append(_item("exports", "Export & Sharing", children=[
            _item("exports-reports", "Generate Reports", "/exports/reports"),
            _item("exports-schedules", "Export Schedules", "/exports/schedules"),
            _item("exports-sharing", "Share Links", "/exports/sharing"),
        ]))

    menu += [
        _item("profile", "My Profile", "/profile"),
        _item("settings", "Settings", "/settings"),
    ]

    if role == UserRoleEnum.ADMIN:
        menu.append(_item("administration", "Administration", children=[
            _item("admin-users", "User Management", "/admin/users"),
            _item("admin-terminals", "Terminal & Berths", "/admin/terminals"),
            _item("admin-settings", "System Settings", "/admin/settings"),
            _item("admin-audit", "Audit Logs", "/admin/audit"),
        ]))
    return menu
