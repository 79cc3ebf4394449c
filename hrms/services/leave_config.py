"""
Leave Configuration Provider.

Supplies the active leave rules for an employment category. When HR has not
configured a category at all, the catalogue defaults (the original
hard-coded policy) are returned instead, so a fresh installation still
enforces the standard limits.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from hrms.core.config import LeavePolicySettings
from hrms.models.leave_configuration import LeaveConfiguration
from hrms.services.leave_types import CATALOGUE, LeaveType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveRule:
    leave_type: str
    annual_limit: float
    min_per_request: Optional[float] = None
    max_per_request: Optional[float] = None
    is_default: bool = False


def default_rules() -> List[LeaveRule]:
    """Rule set used when a category has no configuration rows."""
    return [
        LeaveRule(
            leave_type=t.name,
            annual_limit=float(t.default_limit),
            min_per_request=t.default_min_per_request,
            max_per_request=t.default_max_per_request,
            is_default=True,
        )
        for t in CATALOGUE
        if not t.is_unpaid
    ]


def _positive_or_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if value > 0 else None


class LeaveConfigurationProvider:
    def __init__(self, db: Session, policy: LeavePolicySettings):
        self.db = db
        self.policy = policy

    def _category(self, employment_category: Optional[str]) -> str:
        return (employment_category or "").strip() or self.policy.default_category

    def get_rules(self, employment_category: Optional[str]) -> List[LeaveRule]:
        category = self._category(employment_category)
        rows = (
            self.db.query(LeaveConfiguration)
            .filter(
                LeaveConfiguration.user_type == category,
                LeaveConfiguration.is_active.is_(True),
            )
            .order_by(LeaveConfiguration.id)
            .all()
        )
        if not rows:
            has_any = self.db.query(LeaveConfiguration.id).filter(
                LeaveConfiguration.user_type == category
            ).first()
            if has_any is None:
                logger.debug(f"No leave configuration for '{category}', using defaults")
                return default_rules()
            # Category exists but every rule is switched off
            return []

        return [
            LeaveRule(
                leave_type=row.leave_type,
                annual_limit=float(row.annual_limit or 0),
                min_per_request=_positive_or_none(row.min_per_request),
                max_per_request=_positive_or_none(row.max_per_request),
            )
            for row in rows
        ]

    def get_rule(self, employment_category: Optional[str], leave_type: LeaveType) -> Optional[LeaveRule]:
        names = {n.lower() for n in leave_type.names}
        for rule in self.get_rules(employment_category):
            if rule.leave_type.strip().lower() in names:
                return rule
        return None
