"""
Collaborator interfaces the approval engine depends on.
SQLAlchemy implementations live in leaveflow.repositories.
"""
from typing import List, Optional, Protocol

from leaveflow.models.leave_request import LeaveStatus
from leaveflow.schemas.approval import ActorContext, ApprovalMetadata, LeaveRequestSnapshot
from leaveflow.schemas.workflow import (
    ApprovalWorkflowResponse,
    ApproverTypeResponse,
    WorkflowCategoryResponse,
    WorkflowLevelResponse,
)


class LeaveRequestStore(Protocol):
    def get_leave_request(self, request_id: int) -> LeaveRequestSnapshot: ...

    def save_metadata(
        self,
        request_id: int,
        status: LeaveStatus,
        metadata: ApprovalMetadata,
        expected_version: int,
    ) -> int:
        """Persist status + metadata if the stored version still matches; returns the new version."""
        ...


class WorkflowCatalog(Protocol):
    def list_active_approval_workflows(self) -> List[ApprovalWorkflowResponse]: ...

    def get_approval_workflow(self, workflow_id: int) -> Optional[ApprovalWorkflowResponse]: ...

    def list_active_approver_types(self) -> List[ApproverTypeResponse]: ...

    def list_workflow_categories(self) -> List[WorkflowCategoryResponse]: ...

    def list_workflow_levels(self) -> List[WorkflowLevelResponse]: ...


class ActorDirectory(Protocol):
    def get_actor(self, actor_id: int) -> ActorContext: ...


class BalanceLedger(Protocol):
    def consume_leave_balance(self, request_id: int) -> None: ...

    def restore_leave_balance(self, request_id: int) -> None: ...
