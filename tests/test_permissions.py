import pytest

from leaveflow.core.config import PermissionMode
from leaveflow.models.leave_request import LeaveStatus
from leaveflow.models.user import UserRole
from leaveflow.schemas.approval import (
    ActorContext,
    ApprovalAction,
    ApprovalHistoryEntry,
    ApprovalMetadata,
    HistoryAction,
    LeaveRequestSnapshot,
)
from leaveflow.schemas.workflow import ApprovalStepSchema
from leaveflow.services.permissions import (
    PermissionEvaluator,
    approval_level_for,
    final_approval_level,
)

APPROVE = ApprovalAction.APPROVE


def _actor(id, role, department_id=1, permissions=None):
    return ActorContext(id=id, name=f"user-{id}", role=role, department_id=department_id,
                        custom_permissions=permissions or [])


def _steps(*fields):
    return [ApprovalStepSchema(level=i + 1, **step) for i, step in enumerate(fields)]


def _request(status=LeaveStatus.PENDING, author_role=UserRole.EMPLOYEE, current=0, steps=None,
             department_id=1, history=None):
    steps = steps if steps is not None else _steps(
        {"approver_type": "team_lead", "department_specific": True},
        {"approver_type": "manager", "fallback_roles": ["hr"]},
    )
    return LeaveRequestSnapshot(
        id=100,
        employee_id=1,
        author_role=author_role,
        department_id=department_id,
        days_count=3,
        status=status,
        version=1,
        metadata=ApprovalMetadata(
            current_approval_level=current,
            required_approval_levels=[s.level for s in steps if s.required],
            approval_steps=steps,
            approval_history=history or [],
        ),
    )


@pytest.fixture(params=[PermissionMode.ROLE_LEVEL, PermissionMode.STEP_BINDING])
def evaluator(request):
    return PermissionEvaluator(request.param)


@pytest.mark.parametrize("role,level", [
    (UserRole.EMPLOYEE, 0),
    (UserRole.TEAM_LEAD, 1),
    (UserRole.MANAGER, 2),
    (UserRole.HR, 3),
    (UserRole.ADMIN, 4),
    (UserRole.SUPER_ADMIN, 5),
])
def test_role_ranking(role, level):
    assert approval_level_for(_actor(2, role)) == level


def test_admin_permission_ranks_as_admin():
    assert approval_level_for(_actor(2, UserRole.EMPLOYEE, permissions=["admin"])) == 4


def test_nobody_acts_on_their_own_request(evaluator):
    assert not evaluator.can_act(_actor(1, UserRole.SUPER_ADMIN), _request(), APPROVE)


def test_level_zero_is_denied(evaluator):
    assert not evaluator.can_act(_actor(2, UserRole.EMPLOYEE), _request(), APPROVE)


@pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.SUPER_ADMIN])
def test_admins_bypass_step_matching(evaluator, role):
    assert evaluator.can_act(_actor(2, role, department_id=None), _request(), APPROVE)
    assert evaluator.can_act(_actor(2, role, department_id=None),
                             _request(status=LeaveStatus.PARTIALLY_APPROVED, current=1), APPROVE)


def test_admin_permission_bypasses_step_matching(evaluator):
    assert evaluator.can_act(_actor(2, UserRole.EMPLOYEE, permissions=["admin"]), _request(), APPROVE)


@pytest.mark.parametrize("status", [
    LeaveStatus.NOT_SUBMITTED,
    LeaveStatus.APPROVED,
    LeaveStatus.REJECTED,
    LeaveStatus.CANCELLED,
    LeaveStatus.PENDING_DELETION,
    LeaveStatus.DELETED,
])
def test_outside_approval_nobody_acts(evaluator, status):
    assert not evaluator.can_act(_actor(2, UserRole.SUPER_ADMIN), _request(status=status), APPROVE)


def test_team_lead_acts_at_first_step(evaluator):
    assert evaluator.can_act(_actor(2, UserRole.TEAM_LEAD), _request(), APPROVE)


def test_team_lead_cannot_act_at_second_step(evaluator):
    request = _request(status=LeaveStatus.PARTIALLY_APPROVED, current=1)
    assert not evaluator.can_act(_actor(2, UserRole.TEAM_LEAD), request, APPROVE)


def test_manager_acts_at_second_step(evaluator):
    request = _request(status=LeaveStatus.PARTIALLY_APPROVED, current=1)
    assert evaluator.can_act(_actor(2, UserRole.MANAGER), request, APPROVE)


def test_escalation_shortcut_for_team_lead_author():
    """A manager may take a team lead's first step even though their rung is 2."""
    steps = _steps({"approver_type": "team_lead"}, {"approver_type": "hr"})
    request = _request(author_role=UserRole.TEAM_LEAD, steps=steps)
    for mode in PermissionMode:
        assert PermissionEvaluator(mode).can_act(_actor(2, UserRole.MANAGER), request, APPROVE)


@pytest.mark.parametrize("author,actor_role", [
    (UserRole.MANAGER, UserRole.HR),
    (UserRole.HR, UserRole.ADMIN),
    (UserRole.HR, UserRole.SUPER_ADMIN),
])
def test_other_escalation_shortcuts(evaluator, author, actor_role):
    steps = _steps({"approver_type": "team_lead"})
    request = _request(author_role=author, steps=steps)
    assert evaluator.can_act(_actor(2, actor_role), request, APPROVE)


def test_escalation_only_at_first_pending_step():
    steps = _steps({"approver_type": "team_lead"}, {"approver_type": "super_admin"})
    request = _request(status=LeaveStatus.PARTIALLY_APPROVED, author_role=UserRole.TEAM_LEAD, current=1, steps=steps)
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert not evaluator.can_act(_actor(2, UserRole.MANAGER), request, APPROVE)


def test_role_level_ignores_step_definition():
    steps = _steps({"approver_type": "hr"})
    request = _request(steps=steps)
    evaluator = PermissionEvaluator(PermissionMode.ROLE_LEVEL)
    assert evaluator.can_act(_actor(2, UserRole.TEAM_LEAD), request, APPROVE)
    assert not evaluator.can_act(_actor(3, UserRole.HR), request, APPROVE)


def test_step_binding_follows_step_definition():
    steps = _steps({"approver_type": "hr"})
    request = _request(steps=steps)
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert not evaluator.can_act(_actor(2, UserRole.TEAM_LEAD), request, APPROVE)
    assert evaluator.can_act(_actor(3, UserRole.HR), request, APPROVE)


def test_step_binding_accepts_fallback_roles():
    request = _request(status=LeaveStatus.PARTIALLY_APPROVED, current=1)
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert evaluator.can_act(_actor(2, UserRole.HR, department_id=None), request, APPROVE)


def test_step_binding_accepts_explicit_roles():
    steps = _steps({"approver_type": "hr", "roles": ["manager"]})
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert evaluator.can_act(_actor(2, UserRole.MANAGER), _request(steps=steps), APPROVE)


def test_step_binding_department_scope():
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert evaluator.can_act(_actor(2, UserRole.TEAM_LEAD, department_id=1), _request(), APPROVE)
    assert not evaluator.can_act(_actor(3, UserRole.TEAM_LEAD, department_id=2), _request(), APPROVE)


def test_department_scope_does_not_bind_hr():
    steps = _steps({"approver_type": "hr", "department_specific": True})
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert evaluator.can_act(_actor(2, UserRole.HR, department_id=9), _request(steps=steps), APPROVE)


def test_specific_user_step_binds_to_that_user():
    steps = _steps({"approver_type": "specificUser", "roles": ["42"]})
    request = _request(steps=steps)
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert evaluator.can_act(_actor(42, UserRole.TEAM_LEAD), request, APPROVE)
    assert not evaluator.can_act(_actor(43, UserRole.TEAM_LEAD), request, APPROVE)


def test_no_required_levels_denies_non_admins():
    request = _request(steps=[])
    evaluator = PermissionEvaluator(PermissionMode.STEP_BINDING)
    assert not evaluator.can_act(_actor(2, UserRole.TEAM_LEAD), request, ApprovalAction.REJECT)


def _approved_history(*levels):
    return [
        ApprovalHistoryEntry(level=lvl, approver_id=10 + lvl, approver_name="x",
                             approved_at="2026-01-01T00:00:00Z", action=HistoryAction.APPROVE)
        for lvl in levels
    ]


def test_final_approval_level():
    assert final_approval_level(ApprovalMetadata()) == 1
    assert final_approval_level(ApprovalMetadata(approval_history=_approved_history(1, 2))) == 2


def test_deletion_requires_rank_of_final_approver(evaluator):
    request = _request(status=LeaveStatus.PENDING_DELETION, current=2, history=_approved_history(1, 2))
    assert not evaluator.can_act_on_deletion(_actor(2, UserRole.TEAM_LEAD), request, APPROVE)
    assert evaluator.can_act_on_deletion(_actor(3, UserRole.MANAGER), request, APPROVE)
    assert evaluator.can_act_on_deletion(_actor(4, UserRole.HR), request, APPROVE)
    assert evaluator.can_act_on_deletion(_actor(5, UserRole.ADMIN), request, APPROVE)


def test_deletion_denies_author_and_employees(evaluator):
    request = _request(status=LeaveStatus.PENDING_DELETION, current=1, history=_approved_history(1))
    assert not evaluator.can_act_on_deletion(_actor(1, UserRole.SUPER_ADMIN), request, APPROVE)
    assert not evaluator.can_act_on_deletion(_actor(2, UserRole.EMPLOYEE), request, APPROVE)


def test_deletion_only_while_pending_deletion(evaluator):
    request = _request(status=LeaveStatus.APPROVED, current=1, history=_approved_history(1))
    assert not evaluator.can_act_on_deletion(_actor(2, UserRole.SUPER_ADMIN), request, APPROVE)
