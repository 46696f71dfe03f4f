"""Income aggregation over the effective stream."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import pandas as pd

from .models import Category, ScheduledTransaction
from .normalizer import FLOW_INCOME, NormalizedStream
from .periods import ResolvedPeriod
from .scheduled import project_scheduled_income
from .settings_store import SpendingPlanSettings

REFUND_SAMPLE_SIZE = 10


def _sample(rows: pd.DataFrame, limit: int) -> List[Dict[str, Any]]:
    return [
        {
            'payee': row.payee if isinstance(row.payee, str) else None,
            'date': row.date.date().isoformat(),
            'amount': float(row.amount),
            'category_name': row.category_name if isinstance(row.category_name, str) else None,
        }
        for row in rows.head(limit).itertuples(index=False)
    ]


def _rollup(frame: pd.DataFrame, key: str, excluded: set, period_length: int) -> List[Dict[str, Any]]:
    if frame.empty:
        return []
    grouped = frame.groupby(key, dropna=False).agg(
        amount=('amount', 'sum'),
        transaction_count=('amount', 'size'),
        name=('category_name', 'first'),
    )
    rows = []
    for value, data in grouped.iterrows():
        ident = None if pd.isna(value) else value
        name = data['name'] if key == 'category_id' else ident
        if name is None or pd.isna(name):
            name = 'Uncategorized'
        rows.append({
            'id': ident,
            'name': name,
            'amount': float(data['amount']),
            'monthly_amount': float(data['amount']) / period_length,
            'transaction_count': int(data['transaction_count']),
            'is_excluded': ident in excluded,
        })
    rows.sort(key=lambda item: (-item['amount'], str(item['name'])))
    return rows


def aggregate_income(
    stream: NormalizedStream,
    period: ResolvedPeriod,
    settings: SpendingPlanSettings,
    scheduled: List[ScheduledTransaction],
    categories: Mapping[str, Category],
) -> Dict[str, Any]:
    """Total, monthly and per-payee/category income for the window.

    Only inflows in income categories count as income; inflows elsewhere are
    refund candidates reported under ``positive_non_income``.
    """
    period_length = period.period_length
    candidates = stream.of_flow(FLOW_INCOME)
    income_rows = candidates[candidates['is_income_category'].astype(bool)].copy()
    refunds = candidates[~candidates['is_income_category'].astype(bool)]

    income_rows['payee'] = income_rows['payee'].replace('', 'Unknown')
    payee_excluded = income_rows['payee'].isin(settings.excluded_payees)
    category_excluded = income_rows['category_id'].isin(settings.excluded_income_categories)
    counted = income_rows[~(payee_excluded | category_excluded)]
    transaction_income = float(counted['amount'].sum())
    excluded_income = float(income_rows.loc[payee_excluded | category_excluded, 'amount'].sum())

    projection = project_scheduled_income(
        scheduled,
        categories,
        period.start,
        period.last_day,
        excluded_payees=settings.excluded_payees,
        excluded_categories=settings.excluded_income_categories,
    )
    total_income = transaction_income + projection['total']

    by_month: Dict[str, float] = {month: 0.0 for month in period.months}
    for month, amount in counted.groupby('month')['amount'].sum().items():
        if month in by_month:
            by_month[month] += float(amount)
    for template in projection['templates']:
        if template['is_excluded']:
            continue
        for occurrence in template['occurrences']:
            month = occurrence[:7]
            if month in by_month:
                by_month[month] += template['amount']

    income_by_category: Dict[str, Dict[str, Any]] = {}
    for name, group in counted.groupby(counted['category_name'].fillna('Uncategorized')):
        income_by_category[name] = {'total': float(group['amount'].sum()), 'count': int(len(group))}

    return {
        'total_income': total_income,
        'monthly_income': total_income / period_length,
        'transaction_income': transaction_income,
        'scheduled_income_total': projection['total'],
        'excluded_income_total': excluded_income,
        'income_by_month': by_month,
        'income_payees': _rollup(income_rows, 'payee', settings.excluded_payees, period_length),
        'income_categories': _rollup(income_rows, 'category_id', settings.excluded_income_categories, period_length),
        'income_by_category': income_by_category,
        'positive_non_income': {
            'count': int(len(refunds)),
            'total': float(refunds['amount'].sum()),
            'samples': _sample(refunds.sort_values('amount', ascending=False), REFUND_SAMPLE_SIZE),
        },
        'scheduled_income_diagnostics': projection['templates'],
    }
