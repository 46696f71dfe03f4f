"""Bucket targets, the 0-100 plan score and improvement suggestions."""

from __future__ import annotations

from typing import Dict, List, Mapping

from .classifier import BUCKETS, FIXED_COSTS, GUILT_FREE, INVESTMENTS, SAVINGS
from .money import round_half_away

POINTS_PER_BUCKET = 25
MAX_SCORE = POINTS_PER_BUCKET * len(BUCKETS)

TARGETS: Dict[str, Dict[str, int]] = {
    FIXED_COSTS: {'min': 50, 'max': 60},
    INVESTMENTS: {'min': 10},
    SAVINGS: {'min': 5, 'max': 10},
    GUILT_FREE: {'min': 20, 'max': 35},
}

# Buckets judged against a ceiling; the rest are judged against a floor.
CEILING_BUCKETS = {FIXED_COSTS, GUILT_FREE}


def bucket_percentage(amount: float, total_income: float) -> int:
    """Share of income as an integer percent, halves rounded away from zero."""
    if not total_income or total_income <= 0:
        return 0
    return round_half_away(amount / total_income * 100)


def is_bucket_on_target(bucket: str, percentage: float) -> bool:
    target = TARGETS[bucket]
    if bucket in CEILING_BUCKETS:
        return percentage <= target['max']
    return percentage >= target['min']


def bucket_points(bucket: str, percentage: float) -> float:
    target = TARGETS[bucket]
    if bucket in CEILING_BUCKETS:
        if percentage <= target['max']:
            return float(POINTS_PER_BUCKET)
        return max(0.0, POINTS_PER_BUCKET - (percentage - target['max']))
    if percentage >= target['min']:
        return float(POINTS_PER_BUCKET)
    return max(0.0, min(float(POINTS_PER_BUCKET), percentage / target['min'] * POINTS_PER_BUCKET))


def calculate_score(percentages: Mapping[str, float]) -> int:
    """Integer score in ``[0, 100]``; 25 points per bucket."""
    total = sum(bucket_points(bucket, percentages.get(bucket, 0)) for bucket in BUCKETS)
    return min(MAX_SCORE, max(0, round_half_away(total)))


def is_on_track(percentages: Mapping[str, float]) -> bool:
    return all(is_bucket_on_target(bucket, percentages.get(bucket, 0)) for bucket in BUCKETS)


def build_suggestions(percentages: Mapping[str, float]) -> List[Dict[str, str]]:
    suggestions = []
    fixed = percentages.get(FIXED_COSTS, 0)
    if not is_bucket_on_target(FIXED_COSTS, fixed):
        suggestions.append({
            'type': 'warning',
            'bucket': FIXED_COSTS,
            'message': f"Your fixed costs are {fixed}% of income. Consider reducing to under {TARGETS[FIXED_COSTS]['max']}%.",
        })
    guilt_free = percentages.get(GUILT_FREE, 0)
    if not is_bucket_on_target(GUILT_FREE, guilt_free):
        suggestions.append({
            'type': 'warning',
            'bucket': GUILT_FREE,
            'message': f"Your guilt-free spending is {guilt_free}% of income. Consider reducing to under {TARGETS[GUILT_FREE]['max']}%.",
        })
    investments = percentages.get(INVESTMENTS, 0)
    if not is_bucket_on_target(INVESTMENTS, investments):
        suggestions.append({
            'type': 'alert',
            'bucket': INVESTMENTS,
            'message': f"You're investing only {investments}% of income. Try to reach at least {TARGETS[INVESTMENTS]['min']}%.",
        })
    savings = percentages.get(SAVINGS, 0)
    if not is_bucket_on_target(SAVINGS, savings):
        suggestions.append({
            'type': 'alert',
            'bucket': SAVINGS,
            'message': f"Your savings rate is {savings}%. Aim for at least {TARGETS[SAVINGS]['min']}% for goals.",
        })
    return suggestions
