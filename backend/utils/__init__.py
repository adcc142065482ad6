from .time import (
    utc_now,
    to_date,
    to_time,
    parse_month,
    month_end,
    iter_dates,
    sunday_weekday,
)
from .log import setup_logging

__all__ = [
    "utc_now",
    "to_date",
    "to_time",
    "parse_month",
    "month_end",
    "iter_dates",
    "sunday_weekday",
    "setup_logging",
]
