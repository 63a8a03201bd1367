from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from leaveflow.database import Base
import enum


class LeaveStatus(str, enum.Enum):
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    PARTIALLY_APPROVED = "partially_approved"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    PENDING_DELETION = "pending_deletion"
    DELETED = "deleted"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(String, index=True)
    start_date = Column(Date)
    end_date = Column(Date)
    days_count = Column(Float, nullable=False)
    reason = Column(String, nullable=True)
    status = Column(String, default=LeaveStatus.NOT_SUBMITTED.value, nullable=False, index=True)  # String for SQLite simplicity

    # Approval metadata: a copy taken at submission, never a live reference to the workflow
    workflow_id = Column(Integer, nullable=True)
    workflow_name = Column(String, nullable=True)
    current_approval_level = Column(Integer, default=0, nullable=False)
    required_approval_levels = Column(JSON, default=list, nullable=False)
    approval_steps = Column(JSON, default=list, nullable=False)
    approval_history = Column(JSON, default=list, nullable=False)

    # Optimistic concurrency token, bumped on every metadata save
    version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    employee = relationship("User", back_populates="leave_requests")
