"""
Actor directory.
Identity management lives elsewhere; this table only carries what the
approval engine needs to decide who may act: role, department and any
custom permissions granted through a custom role.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from leaveflow.database import Base


class UserRole(str, enum.Enum):
    """
    User roles, lowest to highest approval rung.

    - EMPLOYEE: Self-service only, never approves
    - TEAM_LEAD: Approval level 1
    - MANAGER: Approval level 2
    - HR: Approval level 3
    - ADMIN: Approval level 4 (also granted by the "admin" custom permission)
    - SUPER_ADMIN: Approval level 5
    """
    EMPLOYEE = "employee"
    TEAM_LEAD = "team_lead"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    department_id = Column(Integer, nullable=True, index=True)
    custom_permissions = Column(JSON, default=list, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    leave_requests = relationship("LeaveRequest", back_populates="employee", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
