"""
FastAPI dependency providers for the leave services.

Each request gets services bound to its own database session; settings are
passed in explicitly so tests can override any piece through
``app.dependency_overrides``.
"""
from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from hrms.core.config import Config, settings
from hrms.database import get_db
from hrms.services.audit import AuditService
from hrms.services.balance_ledger import BalanceLedger
from hrms.services.document_store import LocalDocumentStore
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_calculator import LeaveCalculator
from hrms.services.leave_config import LeaveConfigurationProvider
from hrms.services.leave_report import LeaveReportService
from hrms.services.leave_workflow import ApplicationWorkflow
from hrms.services.notification import EmailNotifier
from hrms.services.year_end import YearEndCloser


def get_settings() -> Config:
    return settings


def get_notifier(config: Config = Depends(get_settings)) -> EmailNotifier:
    return EmailNotifier(config.smtp, enabled=config.notifications_enabled)


def get_document_store(config: Config = Depends(get_settings)) -> LocalDocumentStore:
    return LocalDocumentStore(config.upload_dir, config.document_url_path)


def get_directory(db: Session = Depends(get_db), config: Config = Depends(get_settings)) -> EmployeeDirectory:
    return EmployeeDirectory(db, director_keyword=config.leave_policy.director_keyword)


def get_leave_config(db: Session = Depends(get_db), config: Config = Depends(get_settings)) -> LeaveConfigurationProvider:
    return LeaveConfigurationProvider(db, config.leave_policy)


def get_ledger(
    db: Session = Depends(get_db),
    leave_config: LeaveConfigurationProvider = Depends(get_leave_config),
    config: Config = Depends(get_settings),
) -> BalanceLedger:
    return BalanceLedger(db, leave_config, config.leave_policy)


def get_calculator(
    directory: EmployeeDirectory = Depends(get_directory),
    leave_config: LeaveConfigurationProvider = Depends(get_leave_config),
    ledger: BalanceLedger = Depends(get_ledger),
    config: Config = Depends(get_settings),
) -> LeaveCalculator:
    return LeaveCalculator(directory, leave_config, ledger, config.leave_policy)


def get_workflow(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    directory: EmployeeDirectory = Depends(get_directory),
    calculator: LeaveCalculator = Depends(get_calculator),
    notifier: EmailNotifier = Depends(get_notifier),
) -> ApplicationWorkflow:
    return ApplicationWorkflow(db, directory, calculator, notifier, AuditService(db), background_tasks)


def get_report_service(
    db: Session = Depends(get_db),
    directory: EmployeeDirectory = Depends(get_directory),
    documents: LocalDocumentStore = Depends(get_document_store),
    config: Config = Depends(get_settings),
) -> LeaveReportService:
    return LeaveReportService(db, directory, documents, config)


def get_year_end_closer(
    db: Session = Depends(get_db),
    directory: EmployeeDirectory = Depends(get_directory),
    leave_config: LeaveConfigurationProvider = Depends(get_leave_config),
    ledger: BalanceLedger = Depends(get_ledger),
    config: Config = Depends(get_settings),
) -> YearEndCloser:
    return YearEndCloser(db, directory, leave_config, ledger, config.leave_policy, AuditService(db))
