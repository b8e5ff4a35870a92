"""
Tests for the role-management overlay.
"""
import pytest

from app.features.permissions.engine import (
    DenialReason,
    ManagementAction,
    Principal,
    authorize_management,
)
from app.features.permissions.registry import Role


OWNER = Principal(id="owner", role=Role.OWNER, organization_id="o1")
ADMIN = Principal(id="admin", role=Role.ADMIN, organization_id="o1")
VIEWER = Principal(id="viewer", role=Role.VIEWER, organization_id="o1")
OTHER_ADMIN = Principal(id="admin2", role=Role.ADMIN, organization_id="o1")
FOREIGN_VIEWER = Principal(id="foreign", role=Role.VIEWER, organization_id="o2")


class TestSelfProtection:
    def test_owner_cannot_change_own_role(self):
        decision = authorize_management(OWNER, ManagementAction.CHANGE_ROLE, OWNER, new_role=Role.ADMIN)
        assert decision.reason == DenialReason.SELF_TARGET_FORBIDDEN

    @pytest.mark.parametrize("actor", [OWNER, ADMIN, VIEWER])
    @pytest.mark.parametrize("action", list(ManagementAction))
    def test_self_target_always_denied(self, actor, action):
        decision = authorize_management(actor, action, actor)
        assert decision.reason == DenialReason.SELF_TARGET_FORBIDDEN


class TestHierarchy:
    @pytest.mark.parametrize("actor, target", [(OWNER, ADMIN), (OWNER, VIEWER), (ADMIN, VIEWER)])
    def test_higher_role_removes_lower(self, actor, target):
        assert authorize_management(actor, ManagementAction.REMOVE_MEMBER, target).allow

    @pytest.mark.parametrize("actor, target", [(ADMIN, OTHER_ADMIN), (ADMIN, OWNER), (VIEWER, ADMIN)])
    def test_equal_or_higher_target_denied(self, actor, target):
        decision = authorize_management(actor, ManagementAction.DELETE_USER, target)
        assert decision.reason == DenialReason.INSUFFICIENT_HIERARCHY

    def test_owner_promotes_viewer_to_admin(self):
        assert authorize_management(OWNER, ManagementAction.CHANGE_ROLE, VIEWER, new_role=Role.ADMIN).allow

    def test_admin_cannot_promote_viewer_above_themselves(self):
        decision = authorize_management(ADMIN, ManagementAction.CHANGE_ROLE, VIEWER, new_role=Role.OWNER)
        assert decision.reason == DenialReason.INSUFFICIENT_HIERARCHY

    def test_admin_may_promote_viewer_to_admin(self):
        assert authorize_management(ADMIN, ManagementAction.CHANGE_ROLE, VIEWER, new_role="ADMIN").allow

    def test_cross_organization_target_denied(self):
        decision = authorize_management(OWNER, ManagementAction.REMOVE_MEMBER, FOREIGN_VIEWER)
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS

    def test_actor_without_organization_denied(self):
        actor = Principal(id="loner", role=Role.OWNER, organization_id=None)
        target = Principal(id="other", role=Role.VIEWER, organization_id=None)
        decision = authorize_management(actor, ManagementAction.REMOVE_MEMBER, target)
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS


class TestGrantRole:
    def test_owner_grants_owner(self):
        target = Principal(id="new", role=Role.OWNER, organization_id="o1")
        assert authorize_management(OWNER, ManagementAction.GRANT_ROLE, target).allow

    def test_admin_grants_viewer(self):
        target = Principal(id="new", role=Role.VIEWER, organization_id="o1")
        assert authorize_management(ADMIN, ManagementAction.GRANT_ROLE, target).allow

    def test_admin_cannot_grant_owner(self):
        target = Principal(id="new", role=Role.OWNER, organization_id="o1")
        decision = authorize_management(ADMIN, ManagementAction.GRANT_ROLE, target)
        assert decision.reason == DenialReason.INSUFFICIENT_HIERARCHY

    def test_viewer_lacks_user_create(self):
        target = Principal(id="new", role=Role.VIEWER, organization_id="o1")
        decision = authorize_management(VIEWER, ManagementAction.GRANT_ROLE, target)
        assert decision.reason == DenialReason.MISSING_PERMISSION
