"""
Eligibility & Deduction Calculator.

Decides whether a leave request may be filed and how many days it deducts.
Business-rule failures are returned as a ``REJECTED`` result carrying a
readable reason; they are expected outcomes and never raised.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from hrms.core import dates
from hrms.core.config import LeavePolicySettings
from hrms.core.exceptions import ValidationFailed
from hrms.models.employee import Employee
from hrms.services.balance_ledger import BalanceLedger
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_config import LeaveConfigurationProvider
from hrms.services.leave_types import LeaveCategory, LeaveType, resolve_leave_type

logger = logging.getLogger(__name__)

HALF_DAY = 0.5


class EvaluationOutcome(str, enum.Enum):
    OK = "OK"
    REJECTED = "REJECTED"
    NOT_FOUND = "NOT_FOUND"


@dataclass
class LeaveRequest:
    employee_code: str
    leave_type: str
    from_date: date
    to_date: date
    is_half_day: bool = False
    shift_type: Optional[str] = None
    comment: Optional[str] = None
    has_document: bool = False


@dataclass
class EvaluationResult:
    outcome: EvaluationOutcome
    deductible_days: float = 0.0
    reason: Optional[str] = None
    effective_to_date: Optional[date] = None
    employee: Optional[Employee] = None
    leave_type: Optional[LeaveType] = None

    @property
    def ok(self) -> bool:
        return self.outcome == EvaluationOutcome.OK

    @classmethod
    def rejected(cls, reason: str, **kwargs) -> "EvaluationResult":
        return cls(outcome=EvaluationOutcome.REJECTED, reason=reason, **kwargs)

    @classmethod
    def not_found(cls, reason: str) -> "EvaluationResult":
        return cls(outcome=EvaluationOutcome.NOT_FOUND, reason=reason)


def count_deductible_days(
    from_date: date,
    to_date: date,
    is_half_day: bool = False,
    working_days_only: bool = False,
    works_saturdays: bool = False,
) -> float:
    """
    Days a request deducts.

    Half days count 0.5. Working-day types skip Sundays always and Saturdays
    unless the employee works Saturdays; every other type counts calendar days
    inclusively.
    """
    if is_half_day:
        return HALF_DAY
    if not working_days_only:
        return float(dates.inclusive_days(from_date, to_date))

    count = 0
    for day in dates.iter_days(from_date, to_date):
        weekday = day.weekday()
        if weekday == 6:
            continue
        if weekday == 5 and not works_saturdays:
            continue
        count += 1
    return float(count)


def _fmt(value: float) -> str:
    return f"{value:g}"


class LeaveCalculator:
    def __init__(
        self,
        directory: EmployeeDirectory,
        config: LeaveConfigurationProvider,
        ledger: BalanceLedger,
        policy: LeavePolicySettings,
    ):
        self.directory = directory
        self.config = config
        self.ledger = ledger
        self.policy = policy

    def evaluate(self, request: LeaveRequest, employee: Optional[Employee] = None) -> EvaluationResult:
        # 1. Employee
        if employee is None:
            employee = self.directory.resolve(request.employee_code)
        if employee is None:
            return EvaluationResult.not_found("Employee not found")

        if not (request.leave_type or "").strip():
            raise ValidationFailed("Leave type is required", field="ltype")
        leave_type = resolve_leave_type(request.leave_type)

        to_date = request.from_date if request.is_half_day else request.to_date
        if to_date < request.from_date:
            raise ValidationFailed("To date cannot be before from date", field="todate")

        context = {"employee": employee, "leave_type": leave_type, "effective_to_date": to_date}

        # 2. Rule
        rule = None
        if not leave_type.is_unpaid:
            rule = self.config.get_rule(employee.employee_type, leave_type)
            if rule is None:
                return EvaluationResult.rejected(
                    f"{leave_type.name} is not applicable for this employee category.", **context
                )

        # 3. Days
        days = count_deductible_days(
            request.from_date,
            to_date,
            is_half_day=request.is_half_day,
            working_days_only=leave_type.counts_working_days_only,
            works_saturdays=employee.works_saturdays,
        )
        if days <= 0:
            return EvaluationResult.rejected("Selected dates contain no working days.", **context)

        # 4. Per-request bounds
        if rule is not None:
            if rule.max_per_request is not None and days > rule.max_per_request:
                return EvaluationResult.rejected(
                    f"{leave_type.name} max {_fmt(rule.max_per_request)} days per occasion.", **context
                )
            if rule.min_per_request is not None and days < rule.min_per_request:
                return EvaluationResult.rejected(
                    f"{leave_type.name} must be a minimum of {_fmt(rule.min_per_request)} days.", **context
                )

        # 5. Category restrictions
        if self.ledger.is_on_probation(employee) and leave_type.category in (
            LeaveCategory.PRIVILEGE,
            LeaveCategory.SICK,
        ):
            return EvaluationResult.rejected(
                "Probation Rule: Privilege and Sick Leave are not allowed during probation.", **context
            )
        if not leave_type.applies_to(employee.normalized_gender):
            return EvaluationResult.rejected(
                f"{leave_type.name} is only for {leave_type.gender.value.title()} employees.", **context
            )

        # 6. Balance
        if not leave_type.is_unpaid:
            reason = self._check_balance(employee, leave_type, rule, request.from_date, days)
            if reason:
                return EvaluationResult.rejected(reason, **context)

        # 7. Supporting document
        needs_document = leave_type.always_requires_document or (
            leave_type.category == LeaveCategory.SICK and days > 1
        )
        if needs_document and not request.has_document:
            return EvaluationResult.rejected(
                "Medical Certificate/Document is mandatory for this request.", **context
            )

        return EvaluationResult(outcome=EvaluationOutcome.OK, deductible_days=days, **context)

    def _check_balance(self, employee: Employee, leave_type: LeaveType, rule, as_of: date, days: float) -> Optional[str]:
        year = as_of.year
        opening = self.ledger.get_opening_balance(employee.emp_id, year, employee.employee_type)
        used = self.ledger.consumed_for(employee, leave_type, year)
        total = self.ledger.entitlement(employee, leave_type, as_of, opening, rule, used=used)
        if total is None:
            return None

        if leave_type.category == LeaveCategory.SICK:
            per_day = self.policy.sick_units_per_day
            balance_units = max(total * per_day - used * per_day, 0)
            if days * per_day > balance_units:
                return (
                    f"Insufficient Sick Leave. Balance: {_fmt(round(balance_units, 2))} Units "
                    f"({_fmt(round(balance_units / per_day, 2))} Days)."
                )
            return None

        remaining = max(total - used, 0)
        if days > remaining:
            return f"Insufficient {leave_type.name} balance. Available: {_fmt(round(remaining, 2))} days."
        return None
