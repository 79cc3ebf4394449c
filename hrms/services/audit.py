import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from hrms.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _sanitize(obj: Any) -> Any:
    """Make values JSON-storable (enums, dates, pydantic models)."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if hasattr(obj, "value") and not isinstance(obj, (int, float, str)):
        return obj.value
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return obj


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_code: Optional[str],
        actor_role: Optional[str],
        details: Optional[dict] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None,
    ) -> AuditLog:
        """
        Add an append-only audit row to the current session.

        Not committed here: the row commits or rolls back together with the
        action it records.
        """
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_code=actor_code,
            actor_role=actor_role,
            details=_sanitize(details or {}),
            before_state=_sanitize(before_state),
            after_state=_sanitize(after_state),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def log_leave_transition(
        self,
        leave_id: int,
        actor_code: str,
        actor_role: str,
        action: str,
        before_status: str,
        after_status: str,
        comment: Optional[str] = None,
    ) -> AuditLog:
        return self.log_action(
            action=f"leave_{action}",
            entity_type="leave_application",
            entity_id=leave_id,
            actor_code=actor_code,
            actor_role=actor_role,
            details={"comment": comment or ""},
            before_state={"l_status": before_status},
            after_state={"l_status": after_status},
        )
