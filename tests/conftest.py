"""
Shared test fixtures
SQLite test database, data factory and API client wiring
"""

import os

# Set test environment variables BEFORE importing anything else
os.environ['SECRET_KEY'] = 'test-secret-key-for-fund-approval'
os.environ['DATABASE_URL'] = 'sqlite:///./test_fund_approval.db'
os.environ['LOG_FILE'] = 'logs/test.log'
os.environ['LOG_LEVEL'] = 'WARNING'
os.environ['EMAIL_OUTBOX_WORKER_ENABLED'] = 'false'

import pytest
from fastapi.testclient import TestClient
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

from fund_approval.main import app
from fund_approval.config.database import Base, engine, get_db
from fund_approval.models.approval import Approval, ApprovalStatus
from fund_approval.models.delegation import Delegation
from fund_approval.models.fund_request import FundRequest, FundRequestStatus
from fund_approval.models.organization import Department, Designation, Project
from fund_approval.models.user import User, UserProject
from fund_approval.models.workflow import Workflow, WorkflowStep, WorkflowFinalReceiver
from fund_approval.utils.helpers import utc_now
from fund_approval.utils.security import create_access_token

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class Factory:
    """Builds organization, workflow and request rows for tests"""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def department(self, name="Operations"):
        dept = Department(name=name, short_name=name[:3].upper())
        self.db.add(dept)
        self.db.commit()
        return dept

    def designation(self, name=None, department=None):
        d = Designation(
            name=name or f"Designation {self._next()}",
            department_id=department.id if department else None
        )
        self.db.add(d)
        self.db.commit()
        return d

    def project(self, name=None, department=None):
        p = Project(name=name or f"Project {self._next()}", department_id=department.id if department else None)
        self.db.add(p)
        self.db.commit()
        return p

    def user(self, username=None, designation=None, department=None, email="default",
             full_name=None, is_active=True, project=None):
        n = self._next()
        username = username or f"user{n}"
        u = User(
            username=username,
            full_name=full_name or username.title(),
            email=f"{username}@example.com" if email == "default" else email,
            designation_id=designation.id if designation else None,
            designation_name=designation.name if designation else None,
            department_id=department.id if department else None,
            project_id=project.id if project else None,
            is_active=is_active
        )
        self.db.add(u)
        self.db.commit()
        return u

    def member(self, project, user=None, email=None):
        row = UserProject(project_id=project.id, email_id=email if email is not None else user.email)
        self.db.add(row)
        self.db.commit()
        return row

    def workflow(self, department, steps, final_receivers=(), is_active=True):
        """
        steps: list of dicts with WorkflowStep columns; sequence defaults to position
        final_receivers: list of dicts with WorkflowFinalReceiver columns
        """
        wf = Workflow(name=f"Workflow {self._next()}", department_id=department.id if department else None,
                      is_active=is_active)
        for index, step_values in enumerate(steps):
            values = {"sequence": index, "step_name": f"Step {index}"}
            values.update(step_values)
            wf.steps.append(WorkflowStep(**values))
        for receiver_values in final_receivers:
            wf.final_receivers.append(WorkflowFinalReceiver(**receiver_values))
        self.db.add(wf)
        self.db.commit()
        return wf

    def delegation(self, from_user, to_user, starts=None, ends=None, revoked=False, created_at=None):
        now = utc_now()
        d = Delegation(
            from_user_id=from_user.id,
            to_user_id=to_user.id,
            starts_at=starts or now - timedelta(hours=1),
            ends_at=ends or now + timedelta(days=1),
            is_revoked=revoked,
            created_at=created_at or now
        )
        self.db.add(d)
        self.db.commit()
        return d

    def request(self, initiator, workflow, amount="100.00", project=None, status=FundRequestStatus.PENDING,
                current_level=0):
        req = FundRequest(
            title=f"Request {self._next()}",
            amount=Decimal(amount),
            initiator_id=initiator.id,
            workflow_id=workflow.id,
            department_id=workflow.department_id,
            project_id=project.id if project else None,
            status=status,
            current_level=current_level
        )
        self.db.add(req)
        self.db.commit()
        return req

    def pending_approvals(self, approver, count, workflow=None, initiator=None):
        """Give a user ``count`` pending approvals on throwaway requests"""
        initiator = initiator or approver
        workflow = workflow or self.workflow(self.department(f"Load {self._next()}"), [{"step_name": "x"}])
        for _ in range(count):
            req = self.request(initiator, workflow)
            self.db.add(Approval(
                fund_request_id=req.id, approver_id=approver.id, level=1, status=ApprovalStatus.PENDING
            ))
        self.db.commit()


@pytest.fixture(scope="function")
def test_db():
    """Create test database"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def factory(db):
    return Factory(db)


def auth_headers(user):
    """Bearer header for a user"""
    token = create_access_token({"sub": str(user.id), "username": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(test_db):
    return TestClient(app)
