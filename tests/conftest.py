import pytest
import os
import tempfile
from datetime import date
from types import SimpleNamespace

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["SEED_LEAVE_CONFIGURATION"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="leave_docs_")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hrms.core import dates
from hrms.core.config import settings
from hrms.database import Base, get_db
from hrms.dependencies import get_notifier
from hrms.main import app
from hrms.models.employee import Employee
from hrms.models.leave_application import LeaveApplication, LeaveStatus
from hrms.models.leave_balance import LeaveBalance
from hrms.models.leave_configuration import LeaveConfiguration
from hrms.services.audit import AuditService
from hrms.services.balance_ledger import BalanceLedger
from hrms.services.document_store import LocalDocumentStore
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_calculator import LeaveCalculator
from hrms.services.leave_config import LeaveConfigurationProvider
from hrms.services.leave_report import LeaveReportService
from hrms.services.leave_workflow import ApplicationWorkflow
from hrms.services.year_end import YearEndCloser
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2025, 3, 1)


class RecordingNotifier:
    """Captures outgoing emails instead of talking to SMTP."""

    def __init__(self):
        self.sent = []

    def send(self, recipients, subject, body):
        self.sent.append({"recipients": [r for r in recipients if r], "subject": subject, "body": body})
        return True


@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """Fresh schema per test: services commit and roll back on their own."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr(dates, "today", lambda: TODAY)
    return TODAY


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def policy():
    return settings.leave_policy


@pytest.fixture
def services(db_session, notifier, policy):
    directory = EmployeeDirectory(db_session, director_keyword=policy.director_keyword)
    config = LeaveConfigurationProvider(db_session, policy)
    ledger = BalanceLedger(db_session, config, policy)
    calculator = LeaveCalculator(directory, config, ledger, policy)
    audit = AuditService(db_session)
    return SimpleNamespace(
        directory=directory,
        config=config,
        ledger=ledger,
        calculator=calculator,
        workflow=ApplicationWorkflow(db_session, directory, calculator, notifier, audit),
        closer=YearEndCloser(db_session, directory, config, ledger, policy, audit),
        reports=LeaveReportService(
            db_session,
            directory,
            LocalDocumentStore(settings.upload_dir, settings.document_url_path),
            settings,
        ),
    )


@pytest.fixture
def make_employee(db_session):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "usercode": f"E{n:03d}",
            "ename": f"Employee {n}",
            "email": f"employee{n}@example.com",
            "gender": "FEMALE",
            "joindate": date(2023, 1, 1),
            "employee_type": "Core",
            "is_saturday_working": "NO",
            "post": "Executive",
            "department": "Operations",
            "active_inactive_status": "Active",
        }
        data.update(overrides)
        employee = Employee(**data)
        db_session.add(employee)
        db_session.commit()
        db_session.refresh(employee)
        return employee

    return _make


@pytest.fixture
def set_opening(db_session):
    def _set(employee, year, cl=0.0, pl=0.0, sl=0.0, lycl=0.0):
        row = LeaveBalance(
            emp_id=employee.emp_id, year=year,
            cl_opening=cl, pl_opening=pl, sl_opening=sl, lycl_opening=lycl,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _set


@pytest.fixture
def add_application(db_session):
    def _add(employee, ltype, fdate, tdate=None, days=None, status=LeaveStatus.APPROVED, **extra):
        tdate = tdate or fdate
        app_row = LeaveApplication(
            emp_id=employee.emp_id,
            ltype=ltype,
            fdate=fdate,
            tdate=tdate,
            no_of_days=days if days is not None else float((tdate - fdate).days + 1),
            l_status=status.value,
            comment=extra.pop("comment", ""),
            admincomment="",
            **extra,
        )
        db_session.add(app_row)
        db_session.commit()
        db_session.refresh(app_row)
        return app_row

    return _add


@pytest.fixture
def configure(db_session):
    def _configure(category, leave_type, annual_limit, max_per_request=None, min_per_request=None, is_active=True):
        row = LeaveConfiguration(
            user_type=category,
            leave_type=leave_type,
            annual_limit=annual_limit,
            max_per_request=max_per_request,
            min_per_request=min_per_request,
            is_active=is_active,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _configure


@pytest.fixture(scope="function")
def client(db_session, notifier):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
