"""
Approval-time types: the per-request metadata snapshot, the acting user,
and the request/response payloads of the leave-request endpoints.
"""
import enum
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, model_validator

from leaveflow.models.leave_request import LeaveStatus
from leaveflow.models.user import UserRole
from leaveflow.schemas.workflow import ApprovalStepSchema, CamelModel


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class HistoryAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    APPROVE_DELETION = "approve_deletion"


class ApprovalHistoryEntry(CamelModel):
    level: int
    approver_id: int
    approver_name: str
    approved_at: datetime
    comments: Optional[str] = None
    action: HistoryAction = HistoryAction.APPROVE


class ApprovalMetadata(CamelModel):
    """
    Point-in-time copy of the workflow a request was submitted under.
    Later edits to the workflow never reach an in-flight request.
    """
    current_approval_level: int = 0
    required_approval_levels: List[int] = Field(default_factory=list)
    approval_history: List[ApprovalHistoryEntry] = Field(default_factory=list)
    approval_steps: List[ApprovalStepSchema] = Field(default_factory=list)
    workflow_id: Optional[int] = None
    workflow_name: Optional[str] = None

    def next_required_level(self) -> Optional[int]:
        remaining = [lvl for lvl in self.required_approval_levels if lvl > self.current_approval_level]
        return min(remaining) if remaining else None

    def is_last_required_level(self, level: int) -> bool:
        return bool(self.required_approval_levels) and level == max(self.required_approval_levels)

    def step_for_level(self, level: Optional[int]) -> Optional[ApprovalStepSchema]:
        for step in self.approval_steps:
            if step.level == level:
                return step
        return None


class ActorContext(CamelModel):
    id: int
    name: str
    role: UserRole
    custom_permissions: List[str] = Field(default_factory=list)
    department_id: Optional[int] = None


class LeaveRequestSnapshot(CamelModel):
    """What the engine reads from the leave-request store."""
    id: int
    employee_id: int
    author_role: UserRole
    department_id: Optional[int] = None
    days_count: float
    status: LeaveStatus
    version: int
    metadata: ApprovalMetadata = Field(default_factory=ApprovalMetadata)


# --- Endpoint payloads ---

class LeaveRequestCreate(CamelModel):
    leave_type: str
    start_date: date
    end_date: date
    days_count: Optional[float] = Field(default=None, gt=0)
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        if self.days_count is None:
            self.days_count = float((self.end_date - self.start_date).days + 1)
        return self


class DecisionRequest(CamelModel):
    action: ApprovalAction
    comments: Optional[str] = None
    # Level the approver believes they are acting on; defaults to the next required level
    level: Optional[int] = Field(default=None, ge=1)


class DeletionDecisionRequest(CamelModel):
    action: ApprovalAction
    comments: Optional[str] = None


class LeaveRequestResponse(CamelModel):
    id: int
    employee_id: int
    leave_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days_count: float
    reason: Optional[str] = None
    status: LeaveStatus
    version: int
    metadata: ApprovalMetadata

    @model_validator(mode="before")
    @classmethod
    def metadata_from_orm(cls, data):
        if not isinstance(data, dict) and hasattr(data, "approval_history"):
            return {
                "id": data.id,
                "employee_id": data.employee_id,
                "leave_type": data.leave_type,
                "start_date": data.start_date,
                "end_date": data.end_date,
                "days_count": data.days_count,
                "reason": data.reason,
                "status": data.status,
                "version": data.version,
                "metadata": {
                    "current_approval_level": data.current_approval_level or 0,
                    "required_approval_levels": data.required_approval_levels or [],
                    "approval_history": data.approval_history or [],
                    "approval_steps": data.approval_steps or [],
                    "workflow_id": data.workflow_id,
                    "workflow_name": data.workflow_name,
                },
            }
        return data


class CanActResponse(CamelModel):
    request_id: int
    actor_id: int
    action: ApprovalAction
    allowed: bool
