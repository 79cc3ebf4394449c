from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from hrms.database import Base


class AuditLog(Base):
    """Append-only trail of state-changing actions (leave transitions, year-end runs)."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), index=True, nullable=False)
    entity_type = Column(String(50), index=True, nullable=False)
    entity_id = Column(Integer, nullable=True, index=True)
    actor_code = Column(String(255), nullable=True)
    actor_role = Column(String(50), nullable=True)
    details = Column(JSON, nullable=True)
    before_state = Column(JSON, nullable=True)
    after_state = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
