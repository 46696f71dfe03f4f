"""Category classification into spending plan buckets."""

from __future__ import annotations

from typing import Mapping, Optional, Tuple

FIXED_COSTS = 'fixed_costs'
INVESTMENTS = 'investments'
SAVINGS = 'savings'
GUILT_FREE = 'guilt_free'

BUCKETS = (FIXED_COSTS, INVESTMENTS, SAVINGS, GUILT_FREE)

# Ordered keyword rules; the first matching rule wins.
FIXED_COST_KEYWORDS = {'rent', 'mortgage', 'insurance', 'utilities', 'internet', 'phone', 'subscription', 'grocer'}
INVESTMENT_KEYWORDS = {'401k', 'ira', 'brokerage', 'invest', 'retirement'}
SAVINGS_KEYWORDS = {'emergency', 'saving', 'vacation fund', 'house fund'}

KEYWORD_RULES = (
    (FIXED_COSTS, FIXED_COST_KEYWORDS),
    (INVESTMENTS, INVESTMENT_KEYWORDS),
    (SAVINGS, SAVINGS_KEYWORDS),
)

INFLOW_GROUP_NAMES = {'inflow', 'internal master category'}
INCOME_CATEGORY_NAMES = {
    'inflow: ready to assign',
    'ready to assign',
    'inflow',
    'to be budgeted',
    'deferred income subcategory',
}


def is_income_category(name: Optional[str], group_name: Optional[str] = None) -> bool:
    """True for the budgeting tool's canonical inflow categories."""
    if isinstance(group_name, str) and group_name.strip().lower() in INFLOW_GROUP_NAMES:
        return True
    if not isinstance(name, str):
        return False
    lowered = name.strip().lower()
    return lowered in INCOME_CATEGORY_NAMES or 'ready to assign' in lowered or lowered.startswith('inflow')


def infer_bucket(name: Optional[str]) -> str:
    """Bucket implied by keyword rules alone."""
    lowered = name.lower() if isinstance(name, str) else ''
    for bucket, keywords in KEYWORD_RULES:
        if any(keyword in lowered for keyword in keywords):
            return bucket
    return GUILT_FREE


def assign_bucket(
    category_id: Optional[str],
    name: Optional[str],
    category_mappings: Optional[Mapping[str, str]] = None,
) -> Tuple[str, str, Optional[str]]:
    """Return ``(bucket, inferred_bucket, custom_bucket)`` for a category.

    A user override in ``category_mappings`` beats every keyword rule.
    """
    inferred = infer_bucket(name)
    custom = None
    if category_mappings and category_id is not None:
        candidate = category_mappings.get(category_id)
        if candidate in BUCKETS:
            custom = candidate
    return (custom or inferred), inferred, custom
