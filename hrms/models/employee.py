"""
Employee master record.

Column names follow the legacy ``employee`` table so the existing mobile and
admin clients keep working against the same data.
"""
from sqlalchemy import Column, Integer, String, Date, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hrms.database import Base


class Employee(Base):
    __tablename__ = "employee"

    emp_id = Column(Integer, primary_key=True, index=True)
    usercode = Column(String(255), unique=True, index=True, nullable=False)
    ename = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    gender = Column(String(20), nullable=True)
    joindate = Column(Date, nullable=False)

    # Employment category: "Core", "Core Probation", "Contractual", ...
    employee_type = Column(String(100), default="Core", nullable=True)
    is_saturday_working = Column(String(10), default="YES", nullable=True)

    # Historical data stores the manager as an id, a user code or a display name
    reporting_manager = Column(String(255), nullable=True, index=True)
    post = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    admin_type = Column(String(20), nullable=True)

    # Never hard-deleted; deactivated through this flag
    active_inactive_status = Column(String(25), default="Active", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    leave_applications = relationship("LeaveApplication", back_populates="employee")
    leave_balances = relationship("LeaveBalance", back_populates="employee")

    def __repr__(self):
        return f"<Employee {self.usercode}: {self.ename}>"

    @property
    def is_active(self) -> bool:
        return (self.active_inactive_status or "").strip().lower() == "active"

    @property
    def normalized_gender(self) -> str:
        """Upper-cased gender; missing values are treated as male, as the legacy API did."""
        return (self.gender or "").strip().upper() or "MALE"

    @property
    def works_saturdays(self) -> bool:
        return (self.is_saturday_working or "").strip().upper() == "YES"
