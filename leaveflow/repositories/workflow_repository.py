from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from leaveflow.models.approval_workflow import ApprovalWorkflow, ApprovalStep
from leaveflow.models.approver_type import ApproverType
from leaveflow.models.workflow_category import WorkflowCategory
from leaveflow.models.workflow_level import WorkflowLevel
from leaveflow.schemas.workflow import (
    ApprovalWorkflowResponse,
    ApproverTypeResponse,
    WorkflowCategoryResponse,
    WorkflowLevelResponse,
)


class WorkflowRepository:
    """Read side of the approval registries, returned as detached schemas."""

    def __init__(self, session: Session):
        self.session = session

    def list_active_approval_workflows(self) -> List[ApprovalWorkflowResponse]:
        stmt = (
            select(ApprovalWorkflow)
            .where(ApprovalWorkflow.is_active.is_(True))
            .options(selectinload(ApprovalWorkflow.steps))
        )
        return [ApprovalWorkflowResponse.model_validate(wf) for wf in self.session.scalars(stmt)]

    def get_approval_workflow(self, workflow_id: int) -> Optional[ApprovalWorkflowResponse]:
        row = self.session.get(ApprovalWorkflow, workflow_id)
        return ApprovalWorkflowResponse.model_validate(row) if row else None

    def list_active_approver_types(self) -> List[ApproverTypeResponse]:
        stmt = select(ApproverType).where(ApproverType.is_active.is_(True)).order_by(ApproverType.name)
        return [ApproverTypeResponse.model_validate(t) for t in self.session.scalars(stmt)]

    def list_workflow_categories(self) -> List[WorkflowCategoryResponse]:
        stmt = select(WorkflowCategory).order_by(WorkflowCategory.min_days)
        return [WorkflowCategoryResponse.model_validate(c) for c in self.session.scalars(stmt)]

    def list_workflow_levels(self) -> List[WorkflowLevelResponse]:
        stmt = select(WorkflowLevel).order_by(WorkflowLevel.level)
        return [WorkflowLevelResponse.model_validate(lvl) for lvl in self.session.scalars(stmt)]

    def approver_type_in_use(self, code: str) -> bool:
        step_ref = self.session.scalar(select(ApprovalStep.id).where(ApprovalStep.approver_type == code).limit(1))
        if step_ref is not None:
            return True
        level_ref = self.session.scalar(select(WorkflowLevel.id).where(WorkflowLevel.approver_type == code).limit(1))
        return level_ref is not None
