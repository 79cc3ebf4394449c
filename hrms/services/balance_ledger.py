"""
Balance Ledger

Owns opening balances per employee and year, the consumption queries over
leave applications, and the entitlement rules that turn both into a
balance snapshot.

Opening balances are the authoritative baseline; consumption is always
derived by summing non-rejected applications, never by decrementing the
balance row. Sick leave is held in half-day units (1 day = 2 units).
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Union

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from hrms.core import dates
from hrms.core.config import LeavePolicySettings
from hrms.models.employee import Employee
from hrms.models.leave_application import LeaveApplication, LeaveStatus
from hrms.models.leave_balance import LeaveBalance
from hrms.services.leave_config import LeaveConfigurationProvider, LeaveRule
from hrms.services.leave_types import (
    BalanceWindow,
    LeaveCategory,
    LeaveType,
    CASUAL_LEAVE,
    PRIVILEGE_LEAVE,
    SICK_LEAVE,
    resolve_leave_type,
)

logger = logging.getLogger(__name__)

# Display keys that differ from the stored leave-type name
SNAPSHOT_LABELS = {"LYCL": "LYCL (Carry Fwd)"}


@dataclass
class OpeningBalance:
    year: int
    cl: float
    pl: float
    sl_units: float
    lycl: float
    is_default: bool = False


@dataclass
class BalanceLine:
    total: float
    availed: float
    balance: float
    units: Optional[Dict[str, float]] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"Total": self.total, "Availed": self.availed, "Balance": self.balance}
        if self.units is not None:
            data["Units"] = self.units
        return data


@dataclass
class BalanceSnapshot:
    emp_id: str
    gender: str
    is_probation: bool
    join_date: date
    as_of: date
    leaves: Dict[str, BalanceLine] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "meta": {
                "emp_id": self.emp_id,
                "gender": self.gender,
                "is_probation": self.is_probation,
                "join_date": self.join_date.isoformat(),
                "server_date": self.as_of.isoformat(),
            },
            "leaves": {name: line.to_dict() for name, line in self.leaves.items()},
        }


def _round(value: float) -> float:
    return round(float(value), 2)


class BalanceLedger:
    def __init__(self, db: Session, config: LeaveConfigurationProvider, policy: LeavePolicySettings):
        self.db = db
        self.config = config
        self.policy = policy

    # ------------------------------------------------------------------
    # Employee classification
    # ------------------------------------------------------------------
    def is_on_probation(self, employee: Employee) -> bool:
        """Live rule: the stored employment category decides probation."""
        return (employee.employee_type or "").strip().lower() == self.policy.probation_category.lower()

    def is_contractual(self, employee: Employee) -> bool:
        return (employee.employee_type or "").strip().lower() == self.policy.contractual_category.lower()

    # ------------------------------------------------------------------
    # Opening balances
    # ------------------------------------------------------------------
    def get_balance_row(self, emp_id: int, year: int) -> Optional[LeaveBalance]:
        return (
            self.db.query(LeaveBalance)
            .filter(LeaveBalance.emp_id == emp_id, LeaveBalance.year == year)
            .first()
        )

    def default_opening(self, employment_category: Optional[str], year: int) -> OpeningBalance:
        """Configuration-driven defaults for an employee whose year has not been closed yet."""
        def limit(leave_type: LeaveType) -> float:
            rule = self.config.get_rule(employment_category, leave_type)
            return float(rule.annual_limit) if rule else 0.0

        return OpeningBalance(
            year=year,
            cl=limit(CASUAL_LEAVE),
            pl=limit(PRIVILEGE_LEAVE),
            sl_units=limit(SICK_LEAVE) * self.policy.sick_units_per_day,
            lycl=0.0,
            is_default=True,
        )

    def get_opening_balance(self, emp_id: int, year: int, employment_category: Optional[str] = None) -> OpeningBalance:
        row = self.get_balance_row(emp_id, year)
        if row is None:
            return self.default_opening(employment_category, year)
        return OpeningBalance(
            year=year,
            cl=float(row.cl_opening or 0),
            pl=float(row.pl_opening or 0),
            sl_units=float(row.sl_opening or 0),
            lycl=float(row.lycl_opening or 0),
        )

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------
    def get_consumed_in_window(
        self,
        emp_id: int,
        leave_type: Union[LeaveType, str],
        start: date,
        end: date,
    ) -> float:
        """
        Days of non-rejected applications touching the window.

        An application counts when its from-date OR its to-date falls inside
        the window, so a request spanning a year boundary counts in full
        against both years.
        """
        if isinstance(leave_type, str):
            leave_type = resolve_leave_type(leave_type)
        total = (
            self.db.query(func.coalesce(func.sum(LeaveApplication.no_of_days), 0.0))
            .filter(
                LeaveApplication.emp_id == emp_id,
                LeaveApplication.ltype.in_(leave_type.names),
                LeaveApplication.l_status != LeaveStatus.REJECTED.value,
                or_(
                    and_(LeaveApplication.fdate >= start, LeaveApplication.fdate <= end),
                    and_(LeaveApplication.tdate >= start, LeaveApplication.tdate <= end),
                ),
            )
            .scalar()
        )
        return float(total or 0)

    def get_consumed_lifetime(self, emp_id: int, leave_type: Union[LeaveType, str]) -> float:
        if isinstance(leave_type, str):
            leave_type = resolve_leave_type(leave_type)
        total = (
            self.db.query(func.coalesce(func.sum(LeaveApplication.no_of_days), 0.0))
            .filter(
                LeaveApplication.emp_id == emp_id,
                LeaveApplication.ltype.in_(leave_type.names),
                LeaveApplication.l_status != LeaveStatus.REJECTED.value,
            )
            .scalar()
        )
        return float(total or 0)

    def consumed_for(self, employee: Employee, leave_type: LeaveType, year: int) -> float:
        if leave_type.window == BalanceWindow.LIFETIME:
            return self.get_consumed_lifetime(employee.emp_id, leave_type)
        start, end = dates.year_bounds(year)
        return self.get_consumed_in_window(employee.emp_id, leave_type, start, end)

    # ------------------------------------------------------------------
    # Entitlement
    # ------------------------------------------------------------------
    def casual_accrual(self, employee: Employee, as_of: date) -> float:
        return float(dates.days_since(employee.joindate, as_of) // self.policy.days_per_casual_accrual)

    def entitlement(
        self,
        employee: Employee,
        leave_type: LeaveType,
        as_of: date,
        opening: OpeningBalance,
        rule: Optional[LeaveRule],
        used: float = 0.0,
    ) -> Optional[float]:
        """
        Total days the employee may take of ``leave_type``; ``None`` means unlimited.

        Shared by the balance display and the application-time check so both
        apply identical rules.
        """
        category = leave_type.category
        on_probation = self.is_on_probation(employee)
        contractual = self.is_contractual(employee)

        if category == LeaveCategory.UNPAID:
            return None

        if category == LeaveCategory.CASUAL:
            if on_probation:
                return self.casual_accrual(employee, as_of)
            if contractual:
                return min(opening.cl, self.casual_accrual(employee, as_of))
            return opening.cl

        if category == LeaveCategory.PRIVILEGE:
            if on_probation:
                return 0.0
            if contractual:
                months = dates.full_months_since(employee.joindate, as_of)
                return min(opening.pl, months * self.policy.contractual_privilege_per_month)
            return opening.pl

        if category == LeaveCategory.SICK:
            if on_probation:
                return 0.0
            return opening.sl_units / self.policy.sick_units_per_day

        if category == LeaveCategory.CARRY_FORWARD:
            return 0.0 if on_probation else opening.lycl

        if category in (LeaveCategory.MATERNITY, LeaveCategory.PATERNITY, LeaveCategory.SPECIAL):
            base = float(rule.annual_limit) if rule and rule.annual_limit > 0 else float(leave_type.default_limit)
            return leave_type.limit_for_usage(base, used)

        # Any other configured type: plain annual limit from configuration
        return float(rule.annual_limit) if rule else 0.0

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def compute_snapshot(self, employee: Employee, as_of: date) -> BalanceSnapshot:
        year = as_of.year
        gender = employee.normalized_gender
        opening = self.get_opening_balance(employee.emp_id, year, employee.employee_type)

        snapshot = BalanceSnapshot(
            emp_id=employee.usercode,
            gender=gender,
            is_probation=self.is_on_probation(employee),
            join_date=employee.joindate,
            as_of=as_of,
        )

        for rule in self.config.get_rules(employee.employee_type):
            leave_type = resolve_leave_type(rule.leave_type)
            if leave_type.is_unpaid or not leave_type.applies_to(gender):
                continue

            availed = self.consumed_for(employee, leave_type, year)
            total = self.entitlement(employee, leave_type, as_of, opening, rule, used=availed)
            label = SNAPSHOT_LABELS.get(leave_type.name, leave_type.name)

            if leave_type.category == LeaveCategory.SICK:
                snapshot.leaves[label] = self._sick_line(total, availed)
            else:
                snapshot.leaves[label] = BalanceLine(
                    total=_round(total),
                    availed=_round(availed),
                    balance=_round(max(total - availed, 0)),
                )

        return snapshot

    def _sick_line(self, total_days: float, availed_days: float) -> BalanceLine:
        per_day = self.policy.sick_units_per_day
        total_units = total_days * per_day
        availed_units = availed_days * per_day
        balance_units = max(total_units - availed_units, 0)
        return BalanceLine(
            total=_round(total_units / per_day),
            availed=_round(availed_units / per_day),
            balance=_round(balance_units / per_day),
            units={
                "Total": _round(total_units),
                "Availed": _round(availed_units),
                "Balance": _round(balance_units),
            },
        )
