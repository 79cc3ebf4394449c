"""
Insert the standard leave rules for one or more employment categories.

    python -m scripts.seed_leave_config "Core" "Core Probation" "Contractual"

Rules already present for a category are left untouched.
"""
import sys

from hrms.core.config import settings
from hrms.core.init_system import seed_leave_configuration
from hrms.database import init_db, session_scope


def main(categories) -> None:
    init_db()
    with session_scope() as db:
        for category in categories or [settings.leave_policy.default_category]:
            added = seed_leave_configuration(db, category)
            db.commit()
            print(f"{category}: {added} rule(s) added")


if __name__ == "__main__":
    main(sys.argv[1:])
