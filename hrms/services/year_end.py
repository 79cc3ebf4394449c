"""
Year-End Closer.

Rolls every active employee's leave balance over from the processing year
(``target_year - 1``) into a fresh opening row for ``target_year``. Each
employee is computed and committed on its own, so one bad record cannot
abort the batch and a re-run for the same target year simply rewrites the
same values.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hrms.core import dates
from hrms.core.config import LeavePolicySettings
from hrms.models.employee import Employee
from hrms.models.leave_application import LeaveApplication, LeaveStatus
from hrms.models.leave_balance import LeaveBalance
from hrms.services.audit import AuditService
from hrms.services.balance_ledger import BalanceLedger
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_config import LeaveConfigurationProvider
from hrms.services.leave_types import CASUAL_LEAVE, LeaveCategory, resolve_leave_type

logger = logging.getLogger(__name__)


@dataclass
class PriorYearUsage:
    casual: float = 0.0
    privilege: float = 0.0
    sick: float = 0.0
    maternity: float = 0.0
    unpaid: float = 0.0

    @property
    def absent_days(self) -> float:
        return self.privilege + self.sick + self.maternity + self.unpaid


@dataclass
class NewOpening:
    cl: float
    pl: float
    sl_units: float
    lycl: float


@dataclass
class EmployeeResult:
    emp_id: int
    opening: Optional[NewOpening] = None
    error: Optional[str] = None


@dataclass
class YearEndSummary:
    target_year: int
    processing_year: int
    processed_count: int = 0
    processed_ids: List[int] = field(default_factory=list)
    errors: List[Dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "success": True,
            "target_year": self.target_year,
            "processing_year": self.processing_year,
            "processed_count": self.processed_count,
            "processed_ids": self.processed_ids,
            "errors": self.errors,
        }


def summarize(target_year: int, results: List[EmployeeResult]) -> YearEndSummary:
    summary = YearEndSummary(target_year=target_year, processing_year=target_year - 1)
    for result in results:
        if result.error is None:
            summary.processed_ids.append(result.emp_id)
        else:
            summary.errors.append({"emp_id": result.emp_id, "error": result.error})
    summary.processed_count = len(summary.processed_ids)
    return summary


class YearEndCloser:
    def __init__(
        self,
        db: Session,
        directory: EmployeeDirectory,
        config: LeaveConfigurationProvider,
        ledger: BalanceLedger,
        policy: LeavePolicySettings,
        audit: Optional[AuditService] = None,
    ):
        self.db = db
        self.directory = directory
        self.config = config
        self.ledger = ledger
        self.policy = policy
        self.audit = audit or AuditService(db)

    def is_on_probation_at(self, employee: Employee, year_end: date) -> bool:
        # Historical rule: probation lasts one year from joining
        return year_end <= dates.add_years(employee.joindate, 1)

    def prior_year_usage(self, emp_id: int, year: int) -> PriorYearUsage:
        start, end = dates.year_bounds(year)
        rows = (
            self.db.query(LeaveApplication.ltype, func.sum(LeaveApplication.no_of_days))
            .filter(
                LeaveApplication.emp_id == emp_id,
                LeaveApplication.l_status == LeaveStatus.APPROVED.value,
                LeaveApplication.fdate >= start,
                LeaveApplication.fdate <= end,
            )
            .group_by(LeaveApplication.ltype)
            .all()
        )

        usage = PriorYearUsage()
        for ltype, used in rows:
            used = float(used or 0)
            category = resolve_leave_type(ltype).category
            if category == LeaveCategory.CASUAL:
                usage.casual += used
            elif category == LeaveCategory.PRIVILEGE:
                usage.privilege += used
            elif category == LeaveCategory.SICK:
                usage.sick += used
            elif category == LeaveCategory.MATERNITY:
                usage.maternity += used
            elif category == LeaveCategory.UNPAID:
                usage.unpaid += used
        return usage

    def fresh_casual_limit(self, employment_category: Optional[str]) -> float:
        rule = self.config.get_rule(employment_category, CASUAL_LEAVE)
        if rule and rule.annual_limit > 0:
            return float(rule.annual_limit)
        return self.policy.fresh_casual_entitlement

    def compute_new_opening(self, employee: Employee, processing_year: int) -> NewOpening:
        year_start, year_end = dates.year_bounds(processing_year)
        on_probation = self.is_on_probation_at(employee, year_end)

        # Same baseline the live balance uses: stored row, else configured limits
        opening = self.ledger.get_opening_balance(employee.emp_id, processing_year, employee.employee_type)
        op_cl, op_pl, op_sl = opening.cl, opening.pl, opening.sl_units

        used = self.prior_year_usage(employee.emp_id, processing_year)

        lycl = 0.0 if on_probation else max(op_cl - used.casual, 0.0)
        new_cl = self.fresh_casual_limit(employee.employee_type)

        new_pl = 0.0
        new_sl = 0.0
        restricted = self.ledger.is_on_probation(employee) or self.ledger.is_contractual(employee)
        if not on_probation and not restricted:
            days_employed = dates.inclusive_days(max(employee.joindate, year_start), year_end)

            days_on_duty = days_employed - used.absent_days
            earned_pl = days_on_duty / self.policy.privilege_accrual_divisor
            new_pl = min(max(op_pl - used.privilege + earned_pl, 0.0), self.policy.privilege_cap)

            sl_credit = self.policy.sick_annual_credit_units * days_employed / dates.days_in_year(processing_year)
            sl_used_units = used.sick * self.policy.sick_units_per_day
            new_sl = min(max(op_sl - sl_used_units + sl_credit, 0.0), self.policy.sick_cap_units)

        return NewOpening(
            cl=round(new_cl, 2),
            pl=round(new_pl, 2),
            sl_units=round(new_sl, 2),
            lycl=round(lycl, 2),
        )

    def _upsert(self, emp_id: int, year: int, opening: NewOpening) -> LeaveBalance:
        row = self.ledger.get_balance_row(emp_id, year)
        if row is None:
            row = LeaveBalance(emp_id=emp_id, year=year)
            self.db.add(row)
        row.cl_opening = opening.cl
        row.pl_opening = opening.pl
        row.sl_opening = opening.sl_units
        row.lycl_opening = opening.lycl
        return row

    def close_employee(self, employee: Employee, target_year: int) -> EmployeeResult:
        emp_id = employee.emp_id
        try:
            opening = self.compute_new_opening(employee, target_year - 1)
            self._upsert(emp_id, target_year, opening)
            self.db.commit()
            return EmployeeResult(emp_id=emp_id, opening=opening)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Year-end close failed for employee {emp_id}: {e}", exc_info=True)
            return EmployeeResult(emp_id=emp_id, error=str(e))

    def run(self, target_year: Optional[int] = None) -> YearEndSummary:
        target_year = target_year or dates.today().year
        processing_year = target_year - 1
        logger.info(f"Processing year end for {processing_year} -> opening balances for {target_year}")

        employees = self.directory.active_employees()
        # Plain ids first: a rollback expires loaded instances
        emp_ids = [e.emp_id for e in employees]

        results = []
        for emp_id in emp_ids:
            employee = self.directory.get_by_internal_id(emp_id)
            if employee is None:
                results.append(EmployeeResult(emp_id=emp_id, error="Employee not found"))
                continue
            results.append(self.close_employee(employee, target_year))

        summary = summarize(target_year, results)
        self.audit.log_action(
            action="year_end_close",
            entity_type="leave_balance",
            entity_id=None,
            actor_code="system",
            actor_role="system",
            details={
                "target_year": target_year,
                "processed_count": summary.processed_count,
                "error_count": len(summary.errors),
            },
        )
        self.db.commit()

        logger.info(
            f"Year end {processing_year} closed: {summary.processed_count} processed, {len(summary.errors)} failed"
        )
        return summary
