"""Compose the spending plan report from raw inputs and settings.

``compute`` is a pure function: it performs no I/O and returns plain data.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping, Optional, Union

from .classifier import BUCKETS
from .diagnostics import skipped_expense_total, skipped_income_total, tally_skipped
from .expenses import aggregate_expenses
from .income import aggregate_income
from .logging_setup import get_logger
from .models import EngineInputs
from .money import round_money
from .net_worth import investment_contributions, net_worth_summary
from .normalizer import normalize_transactions
from .periods import month_label, resolve_period
from .reconcile import compare_with_tool, reconcile_expenses, reconcile_income, tool_totals
from .scoring import build_suggestions, calculate_score, is_on_track
from .settings_store import SpendingPlanSettings, sanitize_settings

logger = get_logger(__name__)

INCONSISTENCY_KEYS = (
    'missing_parent',
    'missing_account',
    'missing_category',
    'missing_transfer_account',
    'missing_date',
    'orphan_snapshot_category',
)


def _coerce_inputs(inputs: Union[EngineInputs, Mapping[str, Any]]) -> EngineInputs:
    if isinstance(inputs, EngineInputs):
        return inputs
    return EngineInputs.from_api(inputs)


def _orphan_snapshot_categories(inputs: EngineInputs, months) -> int:
    known = {cat.id for cat in inputs.categories}
    if not known:
        return 0
    return sum(
        1
        for snap in inputs.month_snapshots
        if snap.month in months
        for cat_id in snap.categories
        if cat_id not in known
    )


def _round_rows(rows, fields=('amount', 'monthly_amount', 'excluded_amount')):
    for row in rows:
        for name in fields:
            if name in row:
                row[name] = round_money(row[name])
    return rows


def compute(
    inputs: Union[EngineInputs, Mapping[str, Any]],
    settings: Union[SpendingPlanSettings, Mapping[str, Any], None],
    period: int,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Build the Conscious Spending Plan report.

    The function does no I/O and leaves its arguments untouched; identical
    arguments always give an identical report.

    Args:
        inputs: :class:`EngineInputs` or a dict of raw API collections
            (``transactions``, ``categories`` or ``category_groups``,
            ``accounts``, ``months``, ``scheduled_transactions``).
        settings: :class:`SpendingPlanSettings`, a raw settings document, or
            ``None``. Invalid entries are dropped and counted in
            ``diagnostics.invalid_settings_dropped``.
        period: Period selector, one of 0, 3, 6, 12, 24 or 999.
        today: Reference date for the window; defaults to the current date.

    Returns:
        Report dictionary with ``monthly_income``, ``buckets``,
        ``monthly_data``, ``income_payees``, ``income_categories``,
        ``all_expense_categories``, ``score``, ``is_on_track``,
        ``suggestions``, ``net_worth``, ``investment_contributions`` and
        ``diagnostics``. Money is rounded to cents.

    Raises:
        InvalidPeriod: ``period`` is not an allowed selector. Every other
            anomaly is counted in ``diagnostics`` rather than raised.

    Example:
        >>> report = compute(payload, {'excluded_payees': ['Venmo']}, 6)
        >>> report['buckets']['savings']['is_on_target']
        True
    """
    data = _coerce_inputs(inputs)
    clean_settings, dropped_settings = sanitize_settings(settings)
    resolved = resolve_period(period, today=today, transaction_dates=(t.date for t in data.transactions))
    logger.debug("Resolved period %s to %s..%s (%d months)", period, resolved.start, resolved.end, resolved.period_length)

    categories = data.category_lookup()
    accounts = data.account_lookup()
    stream = normalize_transactions(data.transactions, resolved, accounts=accounts, categories=categories)

    income = aggregate_income(stream, resolved, clean_settings, data.scheduled_transactions, categories)
    total_income = income['total_income']
    expenses = aggregate_expenses(stream, resolved, clean_settings, categories, data.month_snapshots, total_income)
    skipped = tally_skipped(stream)

    buckets = expenses['buckets']
    percentages = {bucket: buckets[bucket]['percentage'] for bucket in BUCKETS}
    score = calculate_score(percentages)
    on_track = is_on_track(percentages)

    tool = tool_totals(data.month_snapshots, resolved)
    expense_reconciliation = reconcile_expenses(
        expenses['total_expenses'],
        expenses['budgeted_savings_added'],
        skipped_expense_total(skipped),
        tool['total_expenses'],
    )
    income_reconciliation = reconcile_income(
        total_income,
        tool['total_income'],
        tracking_income=skipped_income_total(skipped, 'tracking_account_income'),
        excluded_income=income['excluded_income_total'],
        starting_balance_income=skipped_income_total(skipped, 'starting_balance_income'),
        reconciliation_income=skipped_income_total(skipped, 'reconciliation_income'),
        positive_non_income_total=income['positive_non_income']['total'],
    )
    app_summary = {
        'total_income': total_income,
        'total_expenses': expenses['total_expenses'],
        'avg_monthly_spend': expenses['total_expenses'] / resolved.period_length,
        'month_count': resolved.period_length,
    }

    inconsistencies = {key: int(stream.inconsistencies.get(key, 0)) for key in INCONSISTENCY_KEYS}
    inconsistencies['orphan_snapshot_category'] = _orphan_snapshot_categories(data, set(resolved.months))

    monthly_data = []
    for month in resolved.months:
        entry = {'month': month, 'month_label': month_label(month), 'income': round_money(income['income_by_month'][month])}
        entry.update({bucket: round_money(expenses['monthly_buckets'][month][bucket]) for bucket in BUCKETS})
        monthly_data.append(entry)

    report_buckets = {}
    for bucket in BUCKETS:
        data_bucket = buckets[bucket]
        report_buckets[bucket] = {
            'amount': round_money(data_bucket['amount']),
            'monthly_amount': round_money(data_bucket['monthly_amount']),
            'percentage': data_bucket['percentage'],
            'is_on_target': data_bucket['is_on_target'],
            'target': data_bucket['target'],
            'categories': _round_rows(data_bucket['categories']),
        }

    contributions = investment_contributions(stream, accounts, resolved.period_length)
    for side in contributions.values():
        side['amount'] = round_money(side['amount'])
        side['monthly_amount'] = round_money(side['monthly_amount'])
        _round_rows(side['accounts'])

    report = {
        'period': {
            'selector': resolved.selector,
            'start': resolved.start.isoformat(),
            'end': resolved.end.isoformat(),
            'months': list(resolved.months),
            'period_length': resolved.period_length,
        },
        'total_income': round_money(total_income),
        'monthly_income': round_money(income['monthly_income']),
        'total_expenses': round_money(expenses['total_expenses']),
        'monthly_expenses': round_money(expenses['total_expenses'] / resolved.period_length),
        'buckets': report_buckets,
        'monthly_data': monthly_data,
        'income_payees': _round_rows(income['income_payees']),
        'income_categories': _round_rows(income['income_categories']),
        'all_expense_categories': _round_rows(expenses['all_expense_categories']),
        'score': score,
        'is_on_track': on_track,
        'suggestions': build_suggestions(percentages),
        'net_worth': net_worth_summary(data.accounts),
        'investment_contributions': contributions,
        'diagnostics': {
            'income_by_category': income['income_by_category'],
            'positive_non_income_transactions': income['positive_non_income'],
            'future_dated_income': skipped['future_dated_income'],
            'transfer_income': skipped['transfer_income'],
            'scheduled_income_total': round_money(income['scheduled_income_total']),
            'scheduled_income_diagnostics': income['scheduled_income_diagnostics'],
            'excluded_income_total': round_money(income['excluded_income_total']),
            'budgeted_savings_added': round_money(expenses['budgeted_savings_added']),
            'categories_with_zero_txns': _round_rows(expenses['categories_with_zero_txns'], ('amount', 'monthly_budgeted')),
            'savings_valuation': expenses['savings_valuation'],
            'savings_valuation_adjustment': round_money(expenses['savings_valuation_adjustment']),
            'expense_activity_total': round_money(expenses['expense_activity_total']),
            'excluded_expense_total': round_money(expenses['excluded_expense_total']),
            'skipped': skipped,
            'skipped_expenses_total': round_money(skipped_expense_total(skipped)),
            'tool_totals': tool,
            'expense_reconciliation': expense_reconciliation,
            'income_reconciliation': income_reconciliation,
            'comparison': compare_with_tool(app_summary, tool),
            'invalid_settings_dropped': dropped_settings,
            'inconsistent_references': inconsistencies,
        },
    }
    return report
