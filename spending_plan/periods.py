"""Resolve a period selector into month keys and a date window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

ALLOWED_PERIODS = (0, 3, 6, 12, 24, 999)
CURRENT_MONTH = 0
ALL_HISTORY = 999


class InvalidPeriod(ValueError):
    """Raised when a period selector is outside :data:`ALLOWED_PERIODS`."""


@dataclass(frozen=True)
class ResolvedPeriod:
    selector: int
    start: date
    end: date
    months: tuple

    @property
    def period_length(self) -> int:
        return len(self.months)

    @property
    def last_day(self) -> date:
        """Final calendar day of the last month in the period."""
        return (pd.Period(self.months[-1], freq='M').end_time).date()

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def validate_period(selector) -> int:
    if isinstance(selector, (bool, np.bool_)) or not isinstance(selector, (int, np.integer)):
        raise InvalidPeriod(f"Period selector must be one of {ALLOWED_PERIODS}, got {selector!r}")
    value = int(selector)
    if value not in ALLOWED_PERIODS:
        raise InvalidPeriod(f"Period selector must be one of {ALLOWED_PERIODS}, got {value}")
    return value


def month_keys_between(start: date, end: date) -> List[str]:
    """Every ``YYYY-MM`` key from ``start``'s month through ``end``'s month inclusive."""
    if end < start:
        return [start.strftime('%Y-%m')]
    periods = pd.period_range(start=pd.Period(pd.Timestamp(start), freq='M'), end=pd.Period(pd.Timestamp(end), freq='M'), freq='M')
    return [p.strftime('%Y-%m') for p in periods]


def month_label(month_key: str) -> str:
    """``2024-03`` -> ``Mar 2024``."""
    return pd.Period(month_key, freq='M').strftime('%b %Y')


def resolve_period(
    selector: int,
    today: Optional[date] = None,
    transaction_dates: Optional[Iterable[Optional[date]]] = None,
) -> ResolvedPeriod:
    """Turn ``selector`` into a window ``[start, today]`` plus its month keys.

    ``0`` is the current month to date, ``999`` reaches back to the earliest
    transaction date, anything else is the last ``selector`` calendar months
    ending with the current one.
    """
    value = validate_period(selector)
    today = today or date.today()
    month_start = today.replace(day=1)

    if value == CURRENT_MONTH:
        start = month_start
    elif value == ALL_HISTORY:
        dates = [d for d in (transaction_dates or []) if d is not None]
        start = min(dates) if dates else month_start
        if start > today:
            start = month_start
    else:
        start = (pd.Timestamp(month_start) - pd.DateOffset(months=value - 1)).date()

    months = tuple(month_keys_between(start, today))
    return ResolvedPeriod(selector=value, start=start, end=today, months=months)
