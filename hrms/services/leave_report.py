"""
Read-only leave listings: monthly history, full history and the
access-scoped leave report (JSON rows or CSV).
"""
import csv
import io
import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import extract
from sqlalchemy.orm import Session

from hrms.core.config import Config
from hrms.core.exceptions import NotFoundError, ValidationFailed
from hrms.models.employee import Employee
from hrms.models.leave_application import LeaveApplication
from hrms.services.document_store import LocalDocumentStore
from hrms.services.employee_directory import EmployeeDirectory

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "Employee ID",
    "Employee Name",
    "Department",
    "Leave Type",
    "From Date",
    "To Date",
    "Days",
    "Status",
    "Applied On",
    "Reason",
    "Approved By",
]

ALL_STATUSES = "All"


def format_day(value) -> str:
    """``Mon, Mar 10`` style label used by the mobile history screen."""
    if value is None:
        return ""
    return value.strftime("%a, %b %d")


def period_display(application: LeaveApplication) -> str:
    if application.is_half_day:
        shift_label = "(2nd Half)" if application.shift_type == "2" else "(1st Half)"
        return f"{format_day(application.fdate)} {shift_label}"
    if application.fdate == application.tdate:
        return format_day(application.fdate)
    return f"{format_day(application.fdate)} to {format_day(application.tdate)}"


def display_days(days: Optional[float]):
    days = float(days or 0)
    if days == 0.5:
        return "0.5 (Half Day)"
    return days


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


class LeaveReportService:
    def __init__(
        self,
        db: Session,
        directory: EmployeeDirectory,
        documents: LocalDocumentStore,
        settings: Config,
    ):
        self.db = db
        self.directory = directory
        self.documents = documents
        self.settings = settings

    def _employee(self, identifier: str) -> Employee:
        employee = self.directory.resolve(identifier)
        if employee is None:
            raise NotFoundError("Employee not found")
        return employee

    def history_for_month(self, emp_code: str, on: date, base_url: str = "") -> List[Dict[str, object]]:
        employee = self._employee(emp_code)
        applications = (
            self.db.query(LeaveApplication)
            .filter(
                LeaveApplication.emp_id == employee.emp_id,
                extract("month", LeaveApplication.fdate) == on.month,
                extract("year", LeaveApplication.fdate) == on.year,
            )
            .order_by(LeaveApplication.fdate.desc())
            .all()
        )

        rows = []
        for app in applications:
            days_count = float(app.no_of_days) if app.no_of_days and app.no_of_days > 0 else 1.0
            rows.append({
                "leave_id": app.leave_id,
                "ltype": app.ltype,
                "fdate": format_day(app.apply_date),
                "days": period_display(app),
                "dayscount": days_count,
                "comment": app.comment,
                "emp_id": app.emp_id,
                "l_status": app.l_status,
                "admincomment": app.admincomment,
                "approved_date": _iso(app.approved_date),
                "document": self.documents.url_for(app.document_path, base_url),
            })
        return rows

    def all_for_employee(self, emp_code: str) -> List[Dict[str, object]]:
        employee = self._employee(emp_code)
        applications = (
            self.db.query(LeaveApplication)
            .filter(LeaveApplication.emp_id == employee.emp_id)
            .order_by(LeaveApplication.fdate.desc())
            .all()
        )
        return [
            {
                "leave_id": app.leave_id,
                "ltype": app.ltype,
                "fdate": _iso(app.fdate),
                "tdate": _iso(app.tdate),
                "l_status": app.l_status,
                "no_of_days": app.no_of_days,
                "shift_type": app.shift_type,
                "apply_date": _iso(app.apply_date),
                "comment": app.comment,
            }
            for app in applications
        ]

    def visible_employee_ids(self, caller: Employee) -> Optional[List[int]]:
        """
        Employees whose leave the caller may report on; ``None`` means everyone.

        HR admins and directors see the organisation, managers their team
        plus themselves, everyone else only themselves.
        """
        is_admin = str(caller.admin_type or "") == str(self.settings.admin_type_flag)
        if is_admin or self.directory.is_director(caller):
            return None
        team_ids = self.directory.direct_report_ids(caller)
        if team_ids:
            return team_ids + [caller.emp_id]
        return [caller.emp_id]

    def generate_report(
        self,
        emp_code: str,
        from_date: date,
        to_date: date,
        status: Optional[str] = ALL_STATUSES,
    ) -> List[Dict[str, object]]:
        if to_date < from_date:
            raise ValidationFailed("to_date cannot be before from_date", field="to_date")
        caller = self._employee(emp_code)

        query = (
            self.db.query(LeaveApplication, Employee)
            .join(Employee, LeaveApplication.emp_id == Employee.emp_id)
            .filter(LeaveApplication.fdate >= from_date, LeaveApplication.fdate <= to_date)
        )
        visible = self.visible_employee_ids(caller)
        if visible is not None:
            query = query.filter(LeaveApplication.emp_id.in_(visible))
        if status and status != ALL_STATUSES:
            query = query.filter(LeaveApplication.l_status == status)

        rows = []
        for app, employee in query.order_by(LeaveApplication.fdate.desc()).all():
            rows.append({
                "Employee ID": employee.usercode,
                "Employee Name": employee.ename,
                "Department": employee.department,
                "Leave Type": app.ltype,
                "From Date": _iso(app.fdate),
                "To Date": _iso(app.tdate),
                "Days": display_days(app.no_of_days),
                "Status": app.l_status,
                "Applied On": _iso(app.apply_date),
                "Reason": app.comment,
                "Approved By": app.approved_by,
            })
        logger.info(f"Leave report for {caller.usercode}: {len(rows)} row(s)")
        return rows

    @staticmethod
    def to_csv(rows: List[Dict[str, object]]) -> str:
        if not rows:
            return ""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=REPORT_COLUMNS, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: "" if row.get(k) is None else row.get(k) for k in REPORT_COLUMNS})
        return output.getvalue()
