"""
Tests for authorize() and filter_visible().
"""
import pytest
from pydantic import ValidationError

from app.features.permissions.engine import (
    Decision,
    DenialReason,
    Principal,
    ResourceDescriptor,
    authorize,
    filter_visible,
)
from app.features.permissions.exceptions import InvalidPermissionError
from app.features.permissions.registry import Permission, Role


def principal(role: Role, id: str = "u1", org: str | None = "o1") -> Principal:
    return Principal(id=id, role=role, organization_id=org)


def resource(org: str | None = "o1", owner: str | None = None, assignee: str | None = None) -> ResourceDescriptor:
    return ResourceDescriptor(organization_id=org, owner_id=owner, assigned_to_id=assignee)


class TestScenarios:
    def test_viewer_cannot_delete_someone_elses_task(self):
        decision = authorize(principal(Role.VIEWER), "task:delete:own", resource(owner="u2"))
        assert decision == Decision(allow=False, reason=DenialReason.NOT_OWNER)

    def test_admin_never_holds_user_delete(self):
        decision = authorize(principal(Role.ADMIN), Permission.USER_DELETE)
        assert not decision
        assert decision.reason == DenialReason.MISSING_PERMISSION

    def test_owner_cannot_manage_another_organization(self):
        decision = authorize(principal(Role.OWNER), Permission.ORG_MANAGE, resource(org="o2"))
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS

    def test_admin_updates_any_task_in_organization(self):
        decision = authorize(principal(Role.ADMIN), Permission.TASK_UPDATE_ALL, resource(owner="u9"))
        assert decision.allow
        assert decision.reason is None

    def test_viewer_sees_only_owned_tasks(self):
        tasks = [
            resource(owner="u1"),
            resource(owner="u2"),
            resource(owner="u1"),
            resource(owner="u3"),
            resource(owner="u4"),
        ]
        visible = filter_visible(principal(Role.VIEWER), tasks, Permission.TASK_READ_OWN)
        assert visible == [tasks[0], tasks[2]]


class TestPossessionGate:
    def test_checked_before_organization(self):
        decision = authorize(principal(Role.VIEWER), Permission.USER_READ, resource(org="o2"))
        assert decision.reason == DenialReason.MISSING_PERMISSION

    def test_without_resource_only_possession_is_checked(self):
        assert authorize(principal(Role.VIEWER, org=None), Permission.TASK_CREATE).allow

    def test_unknown_permission_raises(self):
        with pytest.raises(InvalidPermissionError):
            authorize(principal(Role.OWNER), "task:archive", resource())


class TestOrganizationGate:
    @pytest.mark.parametrize("role", list(Role))
    def test_no_role_crosses_organizations(self, role):
        decision = authorize(principal(role), Permission.TASK_READ_OWN, resource(org="o2", owner="u1"))
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS

    def test_resource_without_organization_is_out_of_scope(self):
        decision = authorize(principal(Role.OWNER), Permission.TASK_READ_ALL, resource(org=None, owner="u1"))
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS

    def test_principal_without_organization_is_denied(self):
        decision = authorize(principal(Role.VIEWER, org=None), Permission.TASK_READ_OWN, resource(owner="u1"))
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS

    def test_checked_before_ownership(self):
        decision = authorize(principal(Role.VIEWER), Permission.TASK_UPDATE_OWN, resource(org="o2", owner="u2"))
        assert decision.reason == DenialReason.CROSS_ORGANIZATION_ACCESS


class TestOwnershipGate:
    @pytest.mark.parametrize("role", [Role.OWNER, Role.ADMIN])
    @pytest.mark.parametrize("permission", [
        Permission.TASK_READ_OWN, Permission.TASK_UPDATE_OWN, Permission.TASK_DELETE_OWN,
    ])
    def test_all_scope_holders_pass_on_any_task(self, role, permission):
        assert authorize(principal(role), permission, resource(owner="u9")).allow

    @pytest.mark.parametrize("permission", [
        Permission.TASK_READ_OWN, Permission.TASK_UPDATE_OWN, Permission.TASK_DELETE_OWN,
    ])
    def test_owner_of_resource_passes(self, permission):
        assert authorize(principal(Role.VIEWER), permission, resource(owner="u1")).allow

    def test_assignee_may_read(self):
        decision = authorize(principal(Role.VIEWER), Permission.TASK_READ_OWN, resource(owner="u2", assignee="u1"))
        assert decision.allow

    @pytest.mark.parametrize("permission", [Permission.TASK_UPDATE_OWN, Permission.TASK_DELETE_OWN])
    def test_assignee_may_not_mutate(self, permission):
        decision = authorize(principal(Role.VIEWER), permission, resource(owner="u2", assignee="u1"))
        assert decision.reason == DenialReason.NOT_OWNER

    def test_ownerless_resource_is_not_owned(self):
        decision = authorize(principal(Role.VIEWER), Permission.TASK_READ_OWN, resource(owner=None))
        assert decision.reason == DenialReason.NOT_OWNER

    def test_unscoped_permission_skips_ownership(self):
        assert authorize(principal(Role.ADMIN), Permission.USER_READ, resource(owner="u9")).allow

    def test_viewer_lacks_all_scope(self):
        decision = authorize(principal(Role.VIEWER), Permission.TASK_READ_ALL, resource(owner="u1"))
        assert decision.reason == DenialReason.MISSING_PERMISSION


class TestFilterVisible:
    def test_admin_sees_every_task_in_organization(self):
        tasks = [resource(owner="u2"), resource(org="o2", owner="u2"), resource(owner="u3")]
        assert filter_visible(principal(Role.ADMIN), tasks, Permission.TASK_READ_OWN) == [tasks[0], tasks[2]]

    def test_viewer_sees_owned_and_assigned(self):
        tasks = [resource(owner="u2", assignee="u1"), resource(owner="u2"), resource(owner="u1")]
        assert filter_visible(principal(Role.VIEWER), tasks, "task:read:own") == [tasks[0], tasks[2]]

    def test_missing_permission_yields_empty_list(self):
        assert filter_visible(principal(Role.VIEWER), [resource(owner="u1")], Permission.AUDIT_READ) == []

    def test_empty_input(self):
        assert filter_visible(principal(Role.OWNER), [], Permission.TASK_READ_ALL) == []

    def test_custom_describe(self):
        rows = [{"org": "o1", "owner": "u1"}, {"org": "o1", "owner": "u2"}]
        visible = filter_visible(
            principal(Role.VIEWER),
            rows,
            Permission.TASK_READ_OWN,
            describe=lambda row: resource(org=row["org"], owner=row["owner"]),
        )
        assert visible == [rows[0]]

    def test_attribute_objects_are_described(self):
        class Row:
            def __init__(self, owner_id):
                self.organization_id = "o1"
                self.owner_id = owner_id
                self.assigned_to_id = None

        rows = [Row("u2"), Row("u1")]
        assert filter_visible(principal(Role.VIEWER), rows, Permission.TASK_READ_OWN) == [rows[1]]


class TestValueTypes:
    def test_principal_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            Principal(id="u1", role="SUPERUSER", organization_id="o1")

    def test_decision_truthiness(self):
        assert Decision.allowed()
        assert not Decision.denied(DenialReason.NOT_OWNER)

    def test_principal_is_immutable(self):
        p = principal(Role.VIEWER)
        with pytest.raises(ValidationError):
            p.role = Role.OWNER
