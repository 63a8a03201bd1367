from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from leaveflow.database import Base


class WorkflowCategory(Base):
    __tablename__ = "workflow_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    min_days = Column(Float, nullable=False)
    max_days = Column(Float, nullable=False)
    max_steps = Column(Integer, nullable=False, default=1)  # 0 = auto-approve, no steps allowed
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    workflows = relationship("ApprovalWorkflow", back_populates="category")

    def __repr__(self):
        return f"<WorkflowCategory {self.name} ({self.min_days}-{self.max_days}d, max {self.max_steps} steps)>"
