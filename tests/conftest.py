import os
import tempfile
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.gettempdir(), 'leaveflow_test.db')}"
os.environ["NO_WORKFLOW_POLICY"] = "auto_approve"
os.environ["PERMISSION_MODE"] = "step_binding"
os.environ["ENABLE_CACHING"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from leaveflow.database import Base, get_db
from leaveflow.main import app
from leaveflow.models.leave_balance import LeaveBalance
from leaveflow.models.leave_request import LeaveRequest, LeaveStatus
from leaveflow.models.user import User, UserRole
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Fresh tables for every test. The engine commits and rolls back on its own,
    so an outer wrapping transaction would not isolate tests.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for directory users."""
    counter = {"n": 0}

    def _make_user(role: UserRole, department_id=1, permissions=None, is_active=True, name=None):
        counter["n"] += 1
        user = User(
            email=f"{role.value}{counter['n']}@example.com",
            full_name=name or f"{role.value.replace('_', ' ').title()} {counter['n']}",
            role=role,
            department_id=department_id,
            custom_permissions=permissions or [],
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def users(make_user):
    """One user per role in department 1, plus a team lead from department 2."""
    return {
        "employee": make_user(UserRole.EMPLOYEE),
        "team_lead": make_user(UserRole.TEAM_LEAD),
        "manager": make_user(UserRole.MANAGER),
        "hr": make_user(UserRole.HR, department_id=None),
        "admin": make_user(UserRole.ADMIN, department_id=None),
        "super_admin": make_user(UserRole.SUPER_ADMIN, department_id=None),
        "other_team_lead": make_user(UserRole.TEAM_LEAD, department_id=2),
    }


@pytest.fixture(scope="function")
def seeded_registries(db_session):
    """Default approver types and level catalog, as the app seeds them at startup."""
    from leaveflow.services.approver_type_service import ApproverTypeService
    from leaveflow.services.workflow_level_service import WorkflowLevelService

    ApproverTypeService(db_session).initialize_defaults()
    WorkflowLevelService(db_session).initialize_defaults()


@pytest.fixture(scope="function")
def default_workflows(db_session, seeded_registries):
    """Short (0.5-2d, 1 step), Medium (2.5-5d, 2 steps) and Long (5.5-365d, 3 steps)."""
    from leaveflow.services.approval_workflow_service import ApprovalWorkflowService
    return ApprovalWorkflowService(db_session).initialize_default_workflows()


@pytest.fixture(scope="function")
def make_request(db_session):
    """Factory for NOT_SUBMITTED leave requests; returns the request id."""
    def _make_request(employee, days: float, leave_type="vacation"):
        start = date.today() + timedelta(days=10)
        row = LeaveRequest(
            employee_id=employee.id,
            leave_type=leave_type,
            start_date=start,
            end_date=start + timedelta(days=max(int(days) - 1, 0)),
            days_count=days,
            reason="Family trip",
            status=LeaveStatus.NOT_SUBMITTED.value,
        )
        db_session.add(row)
        db_session.commit()
        return row.id
    return _make_request


@pytest.fixture(scope="function")
def vacation_balance(db_session, users):
    balance = LeaveBalance(
        employee_id=users["employee"].id,
        leave_type="vacation",
        total_days=20.0,
        used_days=0.0,
        remaining_days=20.0,
        year=(date.today() + timedelta(days=10)).year,
    )
    db_session.add(balance)
    db_session.commit()
    return balance


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
