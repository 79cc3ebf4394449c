"""
Close the leave year from the command line (cron entry point).

    python -m scripts.run_year_end            # opening balances for this year
    python -m scripts.run_year_end --year 2026
"""
import argparse
import json
import logging
import sys

from hrms.core.config import settings
from hrms.core.logging import setup_logging
from hrms.database import init_db, session_scope
from hrms.services.audit import AuditService
from hrms.services.balance_ledger import BalanceLedger
from hrms.services.employee_directory import EmployeeDirectory
from hrms.services.leave_config import LeaveConfigurationProvider
from hrms.services.year_end import YearEndCloser

logger = logging.getLogger(__name__)


def run(target_year=None) -> dict:
    with session_scope() as db:
        policy = settings.leave_policy
        config = LeaveConfigurationProvider(db, policy)
        closer = YearEndCloser(
            db,
            EmployeeDirectory(db, director_keyword=policy.director_keyword),
            config,
            BalanceLedger(db, config, policy),
            policy,
            AuditService(db),
        )
        return closer.run(target_year).to_dict()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Roll leave balances over into a new year")
    parser.add_argument("--year", type=int, default=None, help="Year to open balances for (default: current year)")
    args = parser.parse_args(argv)

    setup_logging(service="leave-year-end")
    init_db()
    summary = run(args.year)
    print(json.dumps(summary, indent=2))
    return 1 if summary["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
