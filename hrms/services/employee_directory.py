from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from hrms.models.employee import Employee


class EmployeeDirectory:
    """Read access to the employee master data needed by the leave engine."""

    def __init__(self, db: Session, director_keyword: str = "director"):
        self.db = db
        self.director_keyword = director_keyword.lower()

    def get_by_code(self, code: str) -> Optional[Employee]:
        return self.db.query(Employee).filter(Employee.usercode == code).first()

    def get_by_internal_id(self, emp_id: int) -> Optional[Employee]:
        return self.db.get(Employee, emp_id)

    def resolve(self, identifier) -> Optional[Employee]:
        """Look an employee up by user code, falling back to the internal id."""
        if identifier is None:
            return None
        text = str(identifier).strip()
        if not text:
            return None
        employee = self.get_by_code(text)
        if employee is None and text.isdigit():
            employee = self.get_by_internal_id(int(text))
        return employee

    def lock(self, employee: Employee) -> Employee:
        """
        Re-read the employee row with a row lock held until the transaction ends.
        Serialises check-then-insert for one employee's leave submissions.
        """
        return (
            self.db.query(Employee)
            .filter(Employee.emp_id == employee.emp_id)
            .with_for_update()
            .one()
        )

    def is_director(self, employee: Employee) -> bool:
        return self.director_keyword in (employee.post or "").lower()

    def _manager_refs(self, manager: Employee) -> List[str]:
        refs = [str(manager.emp_id), manager.usercode]
        if manager.ename:
            refs.append(manager.ename)
        return refs

    def direct_report_ids(self, manager: Employee) -> List[int]:
        # Historical rows reference the manager by id, user code or display name
        rows = (
            self.db.query(Employee.emp_id)
            .filter(Employee.reporting_manager.in_(self._manager_refs(manager)))
            .filter(Employee.emp_id != manager.emp_id)
            .all()
        )
        return [r.emp_id for r in rows]

    def reports_to(self, employee: Employee, manager: Employee) -> bool:
        ref = (employee.reporting_manager or "").strip()
        return bool(ref) and ref in self._manager_refs(manager)

    def manager_of(self, employee: Employee) -> Optional[Employee]:
        ref = (employee.reporting_manager or "").strip()
        if not ref or ref == "0":
            return None
        conditions = [Employee.usercode == ref, Employee.ename == ref]
        if ref.isdigit():
            conditions.append(Employee.emp_id == int(ref))
        return self.db.query(Employee).filter(or_(*conditions)).first()

    def director_emails(self) -> List[str]:
        rows = (
            self.db.query(Employee.email)
            .filter(func.lower(Employee.post).contains(self.director_keyword))
            .all()
        )
        return [r.email for r in rows if r.email]

    def active_employees(self) -> List[Employee]:
        return (
            self.db.query(Employee)
            .filter(func.lower(Employee.active_inactive_status) == "active")
            .order_by(Employee.emp_id)
            .all()
        )
