# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, approver_type, workflow_category, workflow_level,
    approval_workflow, leave_request, leave_balance, audit_log
)

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .approver_type import ApproverType
from .workflow_category import WorkflowCategory
from .workflow_level import WorkflowLevel
from .approval_workflow import ApprovalWorkflow, ApprovalStep
from .leave_request import LeaveRequest, LeaveStatus
from .leave_balance import LeaveBalance
from .audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "ApproverType",
    "WorkflowCategory",
    "WorkflowLevel",
    "ApprovalWorkflow",
    "ApprovalStep",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveBalance",
    "AuditLog",
]
