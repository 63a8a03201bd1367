from sqlalchemy import Column, Integer, String, Text, Boolean, JSON
from leaveflow.database import Base


class WorkflowLevel(Base):
    """
    Global catalog entry used as the default when authoring workflow steps.
    Not consulted when a request is resolved or approved.
    """
    __tablename__ = "workflow_levels"

    id = Column(Integer, primary_key=True, index=True)
    level = Column(Integer, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    approver_type = Column(String, nullable=False)
    fallback_roles = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<WorkflowLevel {self.level}: {self.approver_type}>"
