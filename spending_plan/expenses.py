"""Expense bucketing, budgeted-savings fold-in and per-category rollups."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from .classifier import BUCKETS, SAVINGS, assign_bucket, is_income_category
from .models import Category, MonthSnapshot
from .normalizer import FLOW_EXPENSE, NormalizedStream
from .periods import ResolvedPeriod
from .savings import latest_available_balances, value_savings
from .scoring import TARGETS, bucket_percentage, is_bucket_on_target
from .settings_store import SpendingPlanSettings

UNCATEGORIZED_ID = '__uncategorized__'
UNCATEGORIZED_NAME = 'Uncategorized'


def budgeted_by_month(
    category_id: str,
    period: ResolvedPeriod,
    snapshots_by_month: Mapping[str, MonthSnapshot],
    category: Category | None,
) -> Dict[str, float]:
    """Budgeted amount for each month of the period.

    Uses the month snapshot's figure when it lists the category, otherwise the
    category record's ``budgeted`` value.
    """
    fallback = category.budgeted if category is not None and category.budgeted is not None else 0.0
    budgets: Dict[str, float] = {}
    for month in period.months:
        snapshot = snapshots_by_month.get(month)
        entry = snapshot.categories.get(category_id) if snapshot is not None else None
        budgets[month] = entry.budgeted if entry is not None else fallback
    return budgets


def _category_catalog(
    categories: Mapping[str, Category],
    expenses: pd.DataFrame,
) -> Dict[str, Dict[str, Any]]:
    catalog: Dict[str, Dict[str, Any]] = {}
    for order, (cat_id, cat) in enumerate(categories.items()):
        if is_income_category(cat.name, cat.group_name):
            continue
        catalog[cat_id] = {
            'id': cat_id,
            'name': cat.name,
            'group_name': cat.group_name,
            'is_hidden': cat.hidden,
            'order': order,
        }
    for row in expenses.drop_duplicates('category_key').itertuples(index=False):
        if row.category_key in catalog:
            continue
        catalog[row.category_key] = {
            'id': None if row.category_key == UNCATEGORIZED_ID else row.category_key,
            'name': row.category_name if isinstance(row.category_name, str) else UNCATEGORIZED_NAME,
            'group_name': row.category_group if isinstance(row.category_group, str) else None,
            'is_hidden': False,
            'order': len(catalog),
        }
    return catalog


def aggregate_expenses(
    stream: NormalizedStream,
    period: ResolvedPeriod,
    settings: SpendingPlanSettings,
    categories: Mapping[str, Category],
    snapshots: Iterable[MonthSnapshot],
    total_income: float,
) -> Dict[str, Any]:
    """Assign every expense to a bucket and roll it up over the window.

    Excluded categories stay listed with their ``excluded_amount`` but add
    nothing to a bucket. Savings categories with a snapshot balance are valued
    at ``available / period_length``; idle savings categories without one
    have their monthly budget folded in.

    Args:
        stream: Normalized transactions; only the expense flow is read.
        period: The resolved reporting window.
        settings: Sanitized settings (exclusions and bucket overrides).
        categories: Category records keyed by id.
        snapshots: Month snapshots for budgets and available balances.
        total_income: Window income used for bucket percentages.

    Returns:
        Dictionary with ``buckets`` (``amount``, ``monthly_amount``,
        ``percentage``, ``is_on_target``, ``target``, ``categories``),
        ``total_expenses``, ``monthly_buckets``, ``all_expense_categories``
        and the fold-in and valuation diagnostics.

    Example:
        >>> result = aggregate_expenses(stream, period, settings, categories, snapshots, 5000.0)
        >>> result['buckets']['fixed_costs']['percentage']
        50
    """
    snapshots = list(snapshots)
    period_length = period.period_length
    excluded = settings.excluded_expense_categories

    expenses = stream.of_flow(FLOW_EXPENSE).copy()
    expenses['category_key'] = expenses['category_id'].fillna(UNCATEGORIZED_ID)
    expenses['spent'] = -expenses['amount'].astype(float)
    expenses['is_excluded'] = expenses['category_id'].isin(excluded)
    counted = expenses[~expenses['is_excluded']]

    activity = counted.groupby('category_key')['spent'].sum().to_dict()
    counts = expenses.groupby('category_key').size().to_dict()
    excluded_amounts = expenses[expenses['is_excluded']].groupby('category_key')['spent'].sum().to_dict()
    monthly_activity: Dict[str, Dict[str, float]] = defaultdict(dict)
    for (key, month), value in counted.groupby(['category_key', 'month'])['spent'].sum().items():
        monthly_activity[key][month] = float(value)

    catalog = _category_catalog(categories, expenses)
    for key, info in catalog.items():
        bucket, inferred, custom = assign_bucket(info['id'], info['name'], settings.category_mappings)
        info.update(bucket=bucket, inferred_bucket=inferred, custom_bucket=custom,
                    is_excluded=info['id'] in excluded)

    savings_keys = [
        key for key, info in catalog.items()
        if info['bucket'] == SAVINGS and not info['is_excluded'] and info['id'] is not None
    ]
    balances = latest_available_balances(snapshots, period)
    valued = value_savings(activity, savings_keys, balances, period_length)

    snapshots_by_month = {snap.month: snap for snap in snapshots}
    folded: Dict[str, Dict[str, float]] = {}
    for key in savings_keys:
        if key in valued or activity.get(key, 0.0) != 0.0:
            continue
        budgets = budgeted_by_month(key, period, snapshots_by_month, categories.get(key))
        if sum(budgets.values()) != 0:
            folded[key] = budgets

    monthly_buckets = {month: {bucket: 0.0 for bucket in BUCKETS} for month in period.months}
    bucket_amounts = {bucket: 0.0 for bucket in BUCKETS}
    bucket_categories: Dict[str, List[Dict[str, Any]]] = {bucket: [] for bucket in BUCKETS}
    all_expense_categories: List[Dict[str, Any]] = []

    for key, info in catalog.items():
        if info['is_excluded']:
            amount = 0.0
            series: Dict[str, float] = {}
        elif key in valued:
            amount = valued[key]['contribution']
            series = {month: amount / period_length for month in period.months}
        elif key in folded:
            series = folded[key]
            amount = float(sum(series.values()))
        else:
            amount = float(activity.get(key, 0.0))
            series = monthly_activity.get(key, {})

        count = int(counts.get(key, 0))
        row = {
            'id': info['id'],
            'name': info['name'],
            'group_name': info['group_name'],
            'amount': amount,
            'monthly_amount': amount / period_length,
            'transaction_count': count,
            'excluded_amount': float(excluded_amounts.get(key, 0.0)),
            'bucket': info['bucket'],
            'inferred_bucket': info['inferred_bucket'],
            'custom_bucket': info['custom_bucket'],
            'is_excluded': info['is_excluded'],
            'is_hidden': info['is_hidden'],
        }
        all_expense_categories.append(row)
        if info['is_excluded']:
            continue

        bucket = info['bucket']
        bucket_amounts[bucket] += amount
        for month, value in series.items():
            if month in monthly_buckets:
                monthly_buckets[month][bucket] += value
        if amount != 0 or count:
            bucket_categories[bucket].append({
                key_name: row[key_name]
                for key_name in ('id', 'name', 'amount', 'monthly_amount', 'transaction_count',
                                 'inferred_bucket', 'custom_bucket')
            })

    buckets: Dict[str, Dict[str, Any]] = {}
    for bucket in BUCKETS:
        amount = bucket_amounts[bucket]
        percentage = bucket_percentage(amount, total_income)
        buckets[bucket] = {
            'amount': amount,
            'monthly_amount': amount / period_length,
            'percentage': percentage,
            'is_on_target': is_bucket_on_target(bucket, percentage),
            'target': dict(TARGETS[bucket]),
            'categories': sorted(bucket_categories[bucket], key=lambda item: -item['amount']),
        }

    zero_txn_categories = [
        {
            'id': key,
            'name': catalog[key]['name'],
            'amount': float(sum(budgets.values())),
            'monthly_budgeted': float(sum(budgets.values())) / period_length,
        }
        for key, budgets in folded.items()
    ]
    valuation = [
        dict(id=key, name=catalog[key]['name'], **values)
        for key, values in valued.items()
        if values['available'] != 0 or values['activity'] != 0
    ]

    return {
        'buckets': buckets,
        'total_expenses': float(sum(bucket_amounts.values())),
        'expense_activity_total': float(expenses['spent'].sum()),
        'excluded_expense_total': float(expenses.loc[expenses['is_excluded'], 'spent'].sum()),
        'monthly_buckets': monthly_buckets,
        'all_expense_categories': all_expense_categories,
        'budgeted_savings_added': float(sum(item['amount'] for item in zero_txn_categories)),
        'categories_with_zero_txns': zero_txn_categories,
        'savings_valuation': valuation,
        'savings_valuation_adjustment': float(sum(values['adjustment'] for values in valued.values())),
    }
