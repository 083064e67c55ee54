"""Date manipulation utilities"""

from datetime import date

AVG_DAYS_PER_MONTH = 30


def months_between(start: date, end: date) -> float:
    """Elapsed months from start to end using 30-day months (negative if end is earlier)"""
    return (end - start).days / AVG_DAYS_PER_MONTH
