from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from leaveflow.database import Base


class ApproverType(Base):
    """
    Named category of approver (team lead, manager, HR, ...).
    Deactivating a type never rewrites the steps that already reference it.
    """
    __tablename__ = "approver_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, index=True, nullable=False)  # lowercase/underscore, e.g. "team_lead"
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ApproverType {self.code}>"
