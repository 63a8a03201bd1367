"""
Permission Evaluator.

Decides whether an actor may approve or reject a leave request right now.
Rules are applied in order:

    0. nobody acts on their own request
    1. the actor's role maps to an approval rung; rung 0 never acts
    2. super admins, admins and holders of the "admin" permission always may
    3. escalation shortcuts while the request sits at its first pending step:
       a team lead's request goes to a manager, a manager's to HR and an HR
       member's to an admin, since nobody approves their own rung
    4. the actor must be entitled to the next required level, either by
       rung (ROLE_LEVEL) or by matching the frozen step definition
       (STEP_BINDING)
"""
import logging
from typing import Dict, FrozenSet, Optional

from leaveflow.core.config import PermissionMode, settings
from leaveflow.models.leave_request import LeaveStatus
from leaveflow.models.user import UserRole
from leaveflow.schemas.approval import (
    ActorContext,
    ApprovalAction,
    ApprovalMetadata,
    HistoryAction,
    LeaveRequestSnapshot,
)
from leaveflow.schemas.workflow import ApprovalStepSchema

logger = logging.getLogger(__name__)

ADMIN_PERMISSION = "admin"

ROLE_APPROVAL_LEVELS: Dict[UserRole, int] = {
    UserRole.TEAM_LEAD: 1,
    UserRole.MANAGER: 2,
    UserRole.HR: 3,
    UserRole.ADMIN: 4,
    UserRole.SUPER_ADMIN: 5,
}

# Author role -> roles allowed to take the author's first step directly
ESCALATION_SHORTCUTS: Dict[UserRole, FrozenSet[UserRole]] = {
    UserRole.TEAM_LEAD: frozenset({UserRole.MANAGER}),
    UserRole.MANAGER: frozenset({UserRole.HR}),
    UserRole.HR: frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN}),
}

# Roles a built-in approver type stands for
APPROVER_TYPE_ROLES: Dict[str, FrozenSet[UserRole]] = {
    "team_lead": frozenset({UserRole.TEAM_LEAD}),
    "manager": frozenset({UserRole.MANAGER}),
    "department_head": frozenset({UserRole.MANAGER}),
    "hr": frozenset({UserRole.HR}),
    "super_admin": frozenset({UserRole.SUPER_ADMIN}),
}

# HR serves the whole organisation; only these roles are bound to a department
DEPARTMENT_SCOPED_ROLES = frozenset({UserRole.TEAM_LEAD, UserRole.MANAGER})


def has_admin_permission(actor: ActorContext) -> bool:
    return ADMIN_PERMISSION in (actor.custom_permissions or [])


def approval_level_for(actor: ActorContext) -> int:
    """Fixed role ranking; unrecognised roles rank 0."""
    if actor.role == UserRole.SUPER_ADMIN:
        return 5
    if actor.role == UserRole.ADMIN or has_admin_permission(actor):
        return 4
    return ROLE_APPROVAL_LEVELS.get(actor.role, 0)


def is_admin(actor: ActorContext) -> bool:
    return actor.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN) or has_admin_permission(actor)


def escalation_applies(actor: ActorContext, request: LeaveRequestSnapshot) -> bool:
    at_first_step = request.status == LeaveStatus.PENDING and request.metadata.current_approval_level == 0
    return at_first_step and actor.role in ESCALATION_SHORTCUTS.get(request.author_role, frozenset())


class RoleLevelStrategy:
    """Compatibility mode: the actor's rung must equal the next required level."""

    def allows(self, actor: ActorContext, request: LeaveRequestSnapshot, next_level: int) -> bool:
        return approval_level_for(actor) == next_level


class StepBindingStrategy:
    """The actor must match the frozen step at the next required level."""

    def allows(self, actor: ActorContext, request: LeaveRequestSnapshot, next_level: int) -> bool:
        step = request.metadata.step_for_level(next_level)
        if step is None:
            logger.warning(f"Request {request.id} has no step snapshot for level {next_level}")
            return False
        return self.matches(actor, request, step)

    def matches(self, actor: ActorContext, request: LeaveRequestSnapshot, step: ApprovalStepSchema) -> bool:
        if step.is_specific_user:
            return str(actor.id) in step.roles

        eligible = set(APPROVER_TYPE_ROLES.get(step.approver_type, frozenset()))
        eligible.update(UserRole(r) for r in step.roles)
        eligible.update(UserRole(r) for r in step.fallback_roles)
        if actor.role not in eligible:
            return False

        if step.department_specific and actor.role in DEPARTMENT_SCOPED_ROLES:
            if request.department_id is not None and actor.department_id != request.department_id:
                return False
        return True


class PermissionEvaluator:
    def __init__(self, mode: PermissionMode = PermissionMode.STEP_BINDING):
        self.mode = mode
        self.strategy = RoleLevelStrategy() if mode == PermissionMode.ROLE_LEVEL else StepBindingStrategy()

    def can_act(self, actor: ActorContext, request: LeaveRequestSnapshot, action: ApprovalAction) -> bool:
        """May the actor approve or reject the request at its current step?"""
        if actor.id == request.employee_id:
            return False

        if approval_level_for(actor) == 0:
            return False

        if request.status not in (LeaveStatus.PENDING, LeaveStatus.PARTIALLY_APPROVED):
            return False

        if is_admin(actor):
            return True

        if escalation_applies(actor, request):
            return True

        next_level = request.metadata.next_required_level()
        if next_level is None:
            return False
        return self.strategy.allows(actor, request, next_level)

    def can_act_on_deletion(self, actor: ActorContext, request: LeaveRequestSnapshot, action: ApprovalAction) -> bool:
        """
        Deletion decisions follow the role hierarchy, not the workflow steps:
        the actor must rank at least as high as the final approver did.
        """
        if request.status != LeaveStatus.PENDING_DELETION:
            return False
        if actor.id == request.employee_id:
            return False

        actor_level = approval_level_for(actor)
        if actor_level == 0:
            return False
        if is_admin(actor):
            return True
        return actor_level >= final_approval_level(request.metadata)


def final_approval_level(metadata: ApprovalMetadata) -> int:
    levels = [e.level for e in metadata.approval_history if e.action == HistoryAction.APPROVE]
    return max(levels) if levels else 1


def evaluator_for(mode: Optional[PermissionMode] = None) -> PermissionEvaluator:
    return PermissionEvaluator(mode or settings.permission_mode)
