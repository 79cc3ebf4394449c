from sqlalchemy import Column, Integer, Float, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from hrms.database import Base


class LeaveBalance(Base):
    """
    Opening balances for one employee and calendar year.

    Consumption is never subtracted from this row; it is derived from the
    leave applications. ``sl_opening`` is held in half-day units.
    """
    __tablename__ = "leave_balance"
    __table_args__ = (
        UniqueConstraint("emp_id", "year", name="uq_leave_balance_emp_year"),
        CheckConstraint(
            "cl_opening >= 0 AND pl_opening >= 0 AND sl_opening >= 0 AND lycl_opening >= 0",
            name="ck_leave_balance_non_negative",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    emp_id = Column(Integer, ForeignKey("employee.emp_id"), index=True, nullable=False)
    year = Column(Integer, nullable=False)
    cl_opening = Column(Float, default=0.0, nullable=False)
    pl_opening = Column(Float, default=0.0, nullable=False)
    sl_opening = Column(Float, default=0.0, nullable=False)
    lycl_opening = Column(Float, default=0.0, nullable=False)

    employee = relationship("Employee", back_populates="leave_balances")
