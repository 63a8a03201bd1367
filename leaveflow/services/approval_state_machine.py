"""
Approval state machine.

    not_submitted -> pending -> partially_approved* -> approved | rejected
    pending | partially_approved -> cancelled
    approved -> pending_deletion -> deleted | approved (deletion rejected)

Every transition works on a deep copy of the metadata and returns the new
status and metadata; nothing is mutated when a transition raises. Persisting
the result (with the optimistic version check) is the caller's job.
"""
import logging
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from leaveflow.core.config import NoWorkflowPolicy
from leaveflow.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    OutOfOrderApprovalError,
    TerminalStateError,
    ValidationError,
)
from leaveflow.models.leave_request import LeaveStatus
from leaveflow.schemas.approval import (
    ActorContext,
    ApprovalHistoryEntry,
    ApprovalMetadata,
    HistoryAction,
)
from leaveflow.schemas.workflow import ApprovalWorkflowResponse

logger = logging.getLogger(__name__)

IN_APPROVAL = (LeaveStatus.PENDING, LeaveStatus.PARTIALLY_APPROVED)


class Transition(NamedTuple):
    status: LeaveStatus
    metadata: ApprovalMetadata


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_in_approval(status: LeaveStatus) -> None:
    if status not in IN_APPROVAL:
        raise TerminalStateError(status.value)


def submit(
    status: LeaveStatus,
    workflow: Optional[ApprovalWorkflowResponse],
    no_workflow_policy: Optional[NoWorkflowPolicy],
) -> Transition:
    """Freeze the resolved workflow into a fresh metadata snapshot."""
    if status != LeaveStatus.NOT_SUBMITTED:
        raise TerminalStateError(status.value, "Leave request has already been submitted")

    if workflow is None:
        if no_workflow_policy is None:
            raise ConfigurationError("No approval workflow matches this request and NO_WORKFLOW_POLICY is not configured")
        if no_workflow_policy == NoWorkflowPolicy.ERROR:
            raise NotFoundError("No active approval workflow matches the requested duration")
        if no_workflow_policy == NoWorkflowPolicy.AUTO_APPROVE:
            return Transition(LeaveStatus.APPROVED, ApprovalMetadata())
        # BLOCK: waits with no approvable level until rejected or cancelled
        return Transition(LeaveStatus.PENDING, ApprovalMetadata())

    steps = [step.model_copy(deep=True) for step in sorted(workflow.approval_levels, key=lambda s: s.level)]
    metadata = ApprovalMetadata(
        current_approval_level=0,
        required_approval_levels=[step.level for step in steps if step.required],
        approval_history=[],
        approval_steps=steps,
        workflow_id=workflow.id,
        workflow_name=workflow.name,
    )
    if not metadata.required_approval_levels:
        # Only optional steps (or a zero-step auto-approve category)
        return Transition(LeaveStatus.APPROVED, metadata)
    return Transition(LeaveStatus.PENDING, metadata)


def expected_level(status: LeaveStatus, metadata: ApprovalMetadata, level: Optional[int] = None) -> int:
    """
    Level the next approval must be recorded at. A caller-supplied level
    that differs from it is out of order.
    """
    _ensure_in_approval(status)
    next_level = metadata.next_required_level()
    if next_level is None:
        raise NotFoundError("No approval workflow applies to this request; it can only be rejected or cancelled")
    if level is not None and level != next_level:
        raise OutOfOrderApprovalError(level, next_level)
    return next_level


def approve(
    status: LeaveStatus,
    metadata: ApprovalMetadata,
    actor: ActorContext,
    comments: Optional[str] = None,
    level: Optional[int] = None,
    at: Optional[datetime] = None,
) -> Transition:
    target = expected_level(status, metadata, level)
    if level is None:
        # A repeated click must not carry the same approver on to the next level
        prior = [e.level for e in metadata.approval_history
                 if e.action == HistoryAction.APPROVE and e.approver_id == actor.id]
        if prior:
            raise OutOfOrderApprovalError(prior[-1], target)
    updated = metadata.model_copy(deep=True)
    updated.approval_history.append(ApprovalHistoryEntry(
        level=target,
        approver_id=actor.id,
        approver_name=actor.name,
        approved_at=at or _now(),
        comments=comments,
        action=HistoryAction.APPROVE,
    ))
    updated.current_approval_level = target

    if updated.is_last_required_level(target):
        return Transition(LeaveStatus.APPROVED, updated)
    return Transition(LeaveStatus.PARTIALLY_APPROVED, updated)


def reject(
    status: LeaveStatus,
    metadata: ApprovalMetadata,
    actor: ActorContext,
    comments: Optional[str] = None,
    level: Optional[int] = None,
    at: Optional[datetime] = None,
) -> Transition:
    _ensure_in_approval(status)
    pending_level = metadata.next_required_level()
    if pending_level is not None and level is not None and level != pending_level:
        raise OutOfOrderApprovalError(level, pending_level)

    updated = metadata.model_copy(deep=True)
    updated.approval_history.append(ApprovalHistoryEntry(
        level=pending_level if pending_level is not None else updated.current_approval_level,
        approver_id=actor.id,
        approver_name=actor.name,
        approved_at=at or _now(),
        comments=comments,
        action=HistoryAction.REJECT,
    ))
    return Transition(LeaveStatus.REJECTED, updated)


def cancel(status: LeaveStatus, metadata: ApprovalMetadata) -> Transition:
    _ensure_in_approval(status)
    return Transition(LeaveStatus.CANCELLED, metadata.model_copy(deep=True))


def request_deletion(status: LeaveStatus, metadata: ApprovalMetadata) -> Transition:
    if status != LeaveStatus.APPROVED:
        raise ValidationError(
            f"Only approved leave requests can be submitted for deletion (status is {status.value})",
            details={"status": status.value},
        )
    return Transition(LeaveStatus.PENDING_DELETION, metadata.model_copy(deep=True))


def approve_deletion(
    status: LeaveStatus,
    metadata: ApprovalMetadata,
    actor: ActorContext,
    comments: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Transition:
    if status != LeaveStatus.PENDING_DELETION:
        raise TerminalStateError(status.value, "Leave request has no pending deletion")
    updated = metadata.model_copy(deep=True)
    updated.approval_history.append(ApprovalHistoryEntry(
        level=updated.current_approval_level,
        approver_id=actor.id,
        approver_name=actor.name,
        approved_at=at or _now(),
        comments=comments,
        action=HistoryAction.APPROVE_DELETION,
    ))
    return Transition(LeaveStatus.DELETED, updated)


def reject_deletion(status: LeaveStatus, metadata: ApprovalMetadata) -> Transition:
    """The request goes back to approved with its metadata untouched."""
    if status != LeaveStatus.PENDING_DELETION:
        raise TerminalStateError(status.value, "Leave request has no pending deletion")
    return Transition(LeaveStatus.APPROVED, metadata.model_copy(deep=True))
