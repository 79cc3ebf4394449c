from sqlalchemy import Column, Integer, String, Float, Boolean, UniqueConstraint
from hrms.database import Base


class LeaveConfiguration(Base):
    """Leave rule for one (employment category, leave type) pair. Edited by HR."""
    __tablename__ = "leave_configurations"
    __table_args__ = (
        UniqueConstraint("user_type", "leave_type", name="uq_leave_configuration_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_type = Column(String(100), index=True, nullable=False)
    leave_type = Column(String(100), nullable=False)
    annual_limit = Column(Float, default=0.0)
    max_per_request = Column(Float, nullable=True)
    min_per_request = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
