import logging

from hrms.core.config import settings
from hrms.database import session_scope
from hrms.models.leave_configuration import LeaveConfiguration
from hrms.services.leave_config import default_rules

logger = logging.getLogger(__name__)


def seed_leave_configuration(db, category: str) -> int:
    """Insert the default rule set for ``category``; returns the number of rows added."""
    existing = {
        row.leave_type
        for row in db.query(LeaveConfiguration.leave_type).filter(LeaveConfiguration.user_type == category)
    }
    added = 0
    for rule in default_rules():
        if rule.leave_type in existing:
            continue
        db.add(LeaveConfiguration(
            user_type=category,
            leave_type=rule.leave_type,
            annual_limit=rule.annual_limit,
            max_per_request=rule.max_per_request,
            min_per_request=rule.min_per_request,
            is_active=True,
        ))
        added += 1
    return added


def init_system_data():
    """
    Seed the default leave configuration on a fresh database.
    Does nothing once any configuration row exists.
    """
    if not settings.seed_leave_configuration:
        return
    category = settings.leave_policy.default_category
    try:
        with session_scope() as db:
            count = db.query(LeaveConfiguration).count()
            if count:
                logger.info(f"System initialization check: {count} leave configuration row(s) found.")
                return
            logger.info("Running startup initialization...")
            added = seed_leave_configuration(db, category)
            db.commit()
            logger.info(f"✓ Seeded {added} leave rules for '{category}'")
    except Exception as e:
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
