import calendar
from datetime import date, timedelta
from typing import Tuple


def today() -> date:
    """Current server date. Wrapped so tests can patch it."""
    return date.today()


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def inclusive_days(start: date, end: date) -> int:
    """Calendar days from start to end, both included; 0 when end precedes start."""
    return max((end - start).days + 1, 0)


def days_since(start: date, as_of: date) -> int:
    return max((as_of - start).days, 0)


def full_months_since(start: date, as_of: date) -> int:
    months = (as_of.year - start.year) * 12 + (as_of.month - start.month)
    if as_of.day < start.day:
        months -= 1
    return max(months, 0)


def add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February on a non-leap target year
        return value.replace(year=value.year + years, day=28)


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
