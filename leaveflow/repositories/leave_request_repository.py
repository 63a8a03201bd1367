"""
Leave request store: snapshot reads and version-checked metadata writes.
"""
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from leaveflow.core.exceptions import ConcurrentModificationError, NotFoundError
from leaveflow.models.leave_request import LeaveRequest, LeaveStatus
from leaveflow.models.user import User
from leaveflow.schemas.approval import ApprovalMetadata, LeaveRequestSnapshot


def metadata_from_row(row: LeaveRequest) -> ApprovalMetadata:
    return ApprovalMetadata(
        current_approval_level=row.current_approval_level or 0,
        required_approval_levels=list(row.required_approval_levels or []),
        approval_history=list(row.approval_history or []),
        approval_steps=list(row.approval_steps or []),
        workflow_id=row.workflow_id,
        workflow_name=row.workflow_name,
    )


class LeaveRequestRepository:
    """
    Does not commit; the calling service owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, request_id: int) -> Optional[LeaveRequest]:
        return self.session.get(LeaveRequest, request_id)

    def get_or_404(self, request_id: int) -> LeaveRequest:
        row = self.get(request_id)
        if row is None:
            raise NotFoundError(f"Leave request {request_id} not found", details={"request_id": request_id})
        return row

    def add(self, row: LeaveRequest) -> LeaveRequest:
        self.session.add(row)
        self.session.flush()
        return row

    def get_leave_request(self, request_id: int) -> LeaveRequestSnapshot:
        row = self.get_or_404(request_id)
        author = self.session.get(User, row.employee_id)
        if author is None:
            raise NotFoundError(f"Author of leave request {request_id} not found")
        return LeaveRequestSnapshot(
            id=row.id,
            employee_id=row.employee_id,
            author_role=author.role,
            department_id=author.department_id,
            days_count=row.days_count,
            status=LeaveStatus(row.status),
            version=row.version,
            metadata=metadata_from_row(row),
        )

    def save_metadata(
        self,
        request_id: int,
        status: LeaveStatus,
        metadata: ApprovalMetadata,
        expected_version: int,
    ) -> int:
        """
        Compare-and-swap on the version column: two writers starting from the
        same version cannot both advance the request.
        """
        payload = metadata.model_dump(mode="json")
        new_version = expected_version + 1
        stmt = (
            update(LeaveRequest)
            .where(LeaveRequest.id == request_id, LeaveRequest.version == expected_version)
            .values(
                status=status.value,
                current_approval_level=payload["current_approval_level"],
                required_approval_levels=payload["required_approval_levels"],
                approval_history=payload["approval_history"],
                approval_steps=payload["approval_steps"],
                workflow_id=payload["workflow_id"],
                workflow_name=payload["workflow_name"],
                version=new_version,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModificationError(request_id, expected_version)
        # The loaded row is stale now; reload it on next access
        row = self.get(request_id)
        if row is not None:
            self.session.expire(row)
        return new_version
