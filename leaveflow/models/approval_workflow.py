"""
Approval workflows and their ordered steps.
A step never exists outside its workflow (delete-orphan cascade).
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from leaveflow.database import Base


class ApprovalWorkflow(Base):
    __tablename__ = "approval_workflows"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("workflow_categories.id"), nullable=True, index=True)
    min_days = Column(Float, nullable=False)
    max_days = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("WorkflowCategory", back_populates="workflows")
    steps = relationship(
        "ApprovalStep",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="ApprovalStep.level",
    )

    def __repr__(self):
        return f"<ApprovalWorkflow {self.name} ({self.min_days}-{self.max_days}d)>"


class ApprovalStep(Base):
    __tablename__ = "approval_steps"
    __table_args__ = (UniqueConstraint("workflow_id", "level", name="uq_approval_step_level"),)

    id = Column(Integer, primary_key=True, index=True)
    workflow_id = Column(Integer, ForeignKey("approval_workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    level = Column(Integer, nullable=False)
    approver_type = Column(String, nullable=False, index=True)  # approver type code or "specificUser"
    roles = Column(JSON, default=list, nullable=False)  # role codes, or [user_id] for specificUser
    fallback_roles = Column(JSON, default=list, nullable=False)
    department_specific = Column(Boolean, default=False, nullable=False)
    required = Column(Boolean, default=True, nullable=False)

    workflow = relationship("ApprovalWorkflow", back_populates="steps")
