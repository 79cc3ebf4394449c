from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from hrms.database import Base
import enum


class LeaveStatus(str, enum.Enum):
    PENDING = "Pending"
    PENDING_DIRECTOR_APPROVAL = "Pending Director Approval"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


class LeaveApplication(Base):
    __tablename__ = "leave_app"

    leave_id = Column(Integer, primary_key=True, index=True)
    emp_id = Column(Integer, ForeignKey("employee.emp_id"), index=True, nullable=False)
    ltype = Column(String(100), index=True, nullable=False)
    fdate = Column(Date, nullable=False)
    tdate = Column(Date, nullable=False)
    shift_type = Column(String(10), nullable=True)  # "1" / "2" for first / second half
    no_of_days = Column(Float, nullable=False)  # Computed at submission, never recomputed
    document_path = Column(String(500), nullable=True)
    comment = Column(Text, default="")

    # Stored as plain strings for compatibility with the legacy table
    l_status = Column(String(50), default=LeaveStatus.PENDING.value, index=True, nullable=False)
    level1_status = Column(String(50), nullable=True)
    level2_status = Column(String(50), nullable=True)
    admincomment = Column(Text, default="")
    approved_by = Column(String(255), nullable=True)
    approved_date = Column(Date, nullable=True)
    apply_date = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", back_populates="leave_applications")

    @property
    def status(self) -> LeaveStatus:
        return LeaveStatus(self.l_status)

    @property
    def is_half_day(self) -> bool:
        return self.no_of_days == 0.5
