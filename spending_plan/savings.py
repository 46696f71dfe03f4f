"""Savings valuation: accumulated balance instead of money moved."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

from .models import MonthSnapshot
from .periods import ResolvedPeriod


def latest_snapshot(snapshots: Iterable[MonthSnapshot], period: ResolvedPeriod) -> Optional[MonthSnapshot]:
    """Most recent snapshot no later than the period's final month."""
    last_month = period.months[-1]
    eligible = [snap for snap in snapshots if snap.month and snap.month <= last_month]
    return max(eligible, key=lambda snap: snap.month) if eligible else None


def latest_available_balances(snapshots: Iterable[MonthSnapshot], period: ResolvedPeriod) -> Dict[str, float]:
    """Available balance per category id, read from the latest snapshot only.

    ``Category.balance`` is not consulted; the API reports it for every
    category, including idle ones that the budgeted-savings fold-in covers.
    """
    balances: Dict[str, float] = {}
    snapshot = latest_snapshot(snapshots, period)
    if snapshot is not None:
        for cat_id, entry in snapshot.categories.items():
            if entry.balance is not None:
                balances[cat_id] = entry.balance
    return balances


def value_savings(
    activity: Mapping[str, float],
    savings_category_ids: Iterable[str],
    balances: Mapping[str, float],
    period_length: int,
) -> Dict[str, Dict[str, float]]:
    """Contribution of each savings category that has an available balance.

    ``contribution = available / period_length`` replaces the summed
    activity; ``adjustment`` is the difference it makes to the bucket.
    Categories without a balance are left out and keep their activity.
    """
    valued: Dict[str, Dict[str, float]] = {}
    for cat_id in savings_category_ids:
        available = balances.get(cat_id)
        if available is None:
            continue
        spent = float(activity.get(cat_id, 0.0))
        contribution = available / period_length
        valued[cat_id] = {
            'activity': spent,
            'available': float(available),
            'contribution': contribution,
            'adjustment': contribution - spent,
        }
    return valued
