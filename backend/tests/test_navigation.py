"""Tests for role-based menus and route gating."""
import pytest

from berthboard.models.base import UserRoleEnum
from berthboard.modules.navigation import (
    build_navigation,
    can_access,
    has_permission,
    has_required_role,
)


def _keys(items):
    keys = []
    for item in items:
        keys.append(item.key)
        keys.extend(_keys(item.children))
    return keys


class TestHasRequiredRole:
    def test_admin_passes_everything(self):
        assert has_required_role("admin", "planner")
        assert has_required_role(UserRoleEnum.ADMIN, ["viewer"])

    def test_exact_match(self):
        assert has_required_role("planner", "planner")
        assert not has_required_role("viewer", "planner")

    def test_any_of(self):
        assert has_required_role("planner", ["planner", "admin"])
        assert not has_required_role("agent", ["planner", "admin"])


class TestPermissions:
    def test_admin_wildcard(self):
        assert has_permission("admin", "anything.at.all")

    def test_role_lists(self):
        assert has_permission("planner", "vessels.create")
        assert not has_permission("viewer", "vessels.create")
        assert has_permission("agent", "vessels.view_own")


class TestCanAccess:
    @pytest.mark.parametrize("role,path,allowed", [
        ("viewer", "/dashboard", True),
        ("viewer", "/vessels/list", True),
        ("viewer", "/planning/gantt", False),
        ("planner", "/planning/gantt", True),
        ("planner", "/admin/users", False),
        ("admin", "/admin/users", True),
        ("viewer", "/planningish", True),
    ])
    def test_routes(self, role, path, allowed):
        assert can_access(role, path) is allowed


class TestBuildNavigation:
    def test_viewer_menu(self):
        keys = _keys(build_navigation("viewer"))
        assert keys == [
            "dashboard",
            "vessels", "vessels-list",
            "analytics", "analytics-overview",
            "profile", "settings",
        ]

    def test_planner_menu(self):
        keys = _keys(build_navigation("planner"))
        assert "planning-gantt" in keys
        assert "vessels-add" in keys
        assert "exports-schedules" in keys
        assert "planning-optimization" not in keys
        assert "administration" not in keys

    def test_admin_menu(self):
        keys = _keys(build_navigation(UserRoleEnum.ADMIN))
        assert "planning-optimization" in keys
        assert "administration" in keys
        assert keys[0] == "dashboard"

    def test_leaf_items_have_paths(self):
        def leaves(items):
            for item in items:
                if item.children:
                    yield from leaves(item.children)
                else:
                    yield item
        assert all(item.path for item in leaves(build_navigation("admin")))
