"""Re-derive the budgeting tool's own totals and explain the gap to ours."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from .classifier import is_income_category
from .models import MonthSnapshot
from .money import MONEY_TOLERANCE, money_equal, round_money
from .periods import ResolvedPeriod

EXPLAINED_GAP_THRESHOLD = 1000
REFUND_COVERAGE_RATIO = 0.8


def snapshots_in_period(snapshots: Iterable[MonthSnapshot], period: ResolvedPeriod) -> List[MonthSnapshot]:
    months = set(period.months)
    return sorted((snap for snap in snapshots if snap.month in months), key=lambda snap: snap.month)


def tool_totals(snapshots: Iterable[MonthSnapshot], period: ResolvedPeriod) -> Dict[str, Any]:
    """Re-sum the budgeting tool's own month totals over the period.

    Args:
        snapshots: Month snapshots as reported by the budgeting tool; months
            outside the period are ignored.
        period: The resolved reporting window.

    Returns:
        Dictionary with ``total_income``, ``total_expenses`` (absolute month
        activity), ``sum_of_category_expenses`` (every negative category
        activity), their difference ``activity_vs_category_diff``,
        ``avg_monthly_spend``, ``month_count``, ``months_used`` and a
        ``category_totals`` rollup keyed by category name.

    Example:
        >>> totals = tool_totals(inputs.month_snapshots, resolve_period(3))
        >>> totals['activity_vs_category_diff']  # ~0 when the tool is consistent
        0.0
    """
    months = snapshots_in_period(snapshots, period)
    total_income = 0.0
    total_activity = 0.0
    category_outflows = 0.0
    income_category_inflows = 0.0
    category_totals: Dict[str, Dict[str, Any]] = {}

    for snap in months:
        total_income += snap.income
        total_activity += snap.activity
        for cat_id, entry in snap.categories.items():
            name = entry.name or cat_id
            if is_income_category(name) and entry.activity > 0:
                income_category_inflows += entry.activity
            if entry.activity < 0:
                category_outflows += entry.activity
            totals = category_totals.setdefault(name, {'total': 0.0, 'budgeted': 0.0, 'category_id': cat_id})
            totals['total'] += abs(entry.activity)
            totals['budgeted'] += entry.budgeted

    total_expenses = abs(total_activity)
    sum_of_category_expenses = abs(category_outflows)
    month_count = len(months)
    return {
        'total_income': total_income,
        'total_expenses': total_expenses,
        'sum_of_category_expenses': sum_of_category_expenses,
        'activity_vs_category_diff': total_expenses - sum_of_category_expenses,
        'net': total_income - total_expenses,
        'avg_monthly_spend': total_expenses / month_count if month_count else 0.0,
        'month_count': month_count,
        'months_used': [snap.month for snap in months],
        'sum_of_income_categories': income_category_inflows,
        'income_vs_category_diff': total_income - income_category_inflows,
        'category_totals': category_totals,
    }


def reconcile_expenses(
    app_expenses: float,
    budgeted_savings_added: float,
    skipped_expenses_total: float,
    tool_expenses: float,
) -> Dict[str, Any]:
    """Explain the difference between our expenses and the tool's.

    Inputs are rounded to cents first so that
    ``adjusted_app_expenses + skipped_expenses_total + unexplained_gap``
    equals ``tool_expenses`` exactly.

    Args:
        app_expenses: Bucketed expense total from the engine.
        budgeted_savings_added: Budgeted savings folded into the savings bucket;
            the tool never sees these as activity.
        skipped_expenses_total: Outflows the engine skipped on purpose
            (credit-card payments, transfers, tracking accounts and so on).
        tool_expenses: The tool's absolute month activity over the window.

    Returns:
        Dictionary with the rounded inputs, ``adjusted_app_expenses``,
        ``expense_gap``, ``unexplained_gap`` and ``is_explained`` (gap under
        ``EXPLAINED_GAP_THRESHOLD``).

    Example:
        >>> reconcile_expenses(3300.0, 1800.0, 1500.0, 3000.0)['unexplained_gap']
        0.0
    """
    adjusted = round_money(app_expenses - budgeted_savings_added)
    skipped = round_money(skipped_expenses_total)
    tool = round_money(tool_expenses)
    gap = tool - adjusted
    unexplained = tool - adjusted - skipped
    return {
        'app_expenses': round_money(app_expenses),
        'budgeted_savings_added': round_money(budgeted_savings_added),
        'adjusted_app_expenses': adjusted,
        'tool_expenses': tool,
        'expense_gap': gap,
        'skipped_expenses_total': skipped,
        'unexplained_gap': unexplained,
        'is_explained': abs(unexplained) < EXPLAINED_GAP_THRESHOLD,
    }


def reconcile_income(
    app_income: float,
    tool_income: float,
    *,
    tracking_income: float = 0.0,
    excluded_income: float = 0.0,
    starting_balance_income: float = 0.0,
    reconciliation_income: float = 0.0,
    positive_non_income_total: float = 0.0,
) -> Dict[str, Any]:
    """Explain the difference between our income and the tool's.

    Income the tool counts but the engine leaves out (tracking accounts,
    exclusions, starting balances, reconciliations) is added back onto
    ``app_income - tool_income``; what remains is the unexplained gap.

    Args:
        app_income: Window income reported by the engine.
        tool_income: Sum of the tool's monthly ``income``.
        tracking_income: Inflows skipped as tracking-account income.
        excluded_income: Income removed by payee or category exclusions.
        starting_balance_income: Inflows skipped as starting balances.
        reconciliation_income: Inflows skipped as reconciliation adjustments.
        positive_non_income_total: Refunds that landed in expense categories.

    Returns:
        Dictionary with ``income_gap``, ``unexplained_gap``,
        ``gap_explained_by_refunds``, ``is_explained`` and the non-zero
        ``sources`` that contributed.

    Example:
        >>> reconcile_income(4000.0, 5000.0, excluded_income=1000.0)['is_explained']
        True
    """
    income_gap = app_income - tool_income
    sources = {
        'tracking_income': tracking_income,
        'excluded_income': excluded_income,
        'starting_balance_income': starting_balance_income,
        'reconciliation_income': reconciliation_income,
    }
    unexplained = income_gap + sum(sources.values())
    by_refunds = (
        abs(unexplained) > MONEY_TOLERANCE
        and positive_non_income_total >= REFUND_COVERAGE_RATIO * abs(unexplained)
    )
    identified = [
        {'source': name, 'amount': round_money(amount)}
        for name, amount in sources.items()
        if abs(amount) > MONEY_TOLERANCE
    ]
    if positive_non_income_total > MONEY_TOLERANCE:
        identified.append({'source': 'positive_non_income', 'amount': round_money(positive_non_income_total)})
    return {
        'app_income': round_money(app_income),
        'tool_income': round_money(tool_income),
        'income_gap': round_money(income_gap),
        'unexplained_gap': round_money(unexplained),
        'positive_non_income_total': round_money(positive_non_income_total),
        'gap_explained_by_refunds': by_refunds,
        'is_explained': abs(unexplained) < EXPLAINED_GAP_THRESHOLD or by_refunds,
        'sources': identified,
    }


def compare_with_tool(app: Mapping[str, Any], tool: Mapping[str, Any]) -> Dict[str, Any]:
    """Compare headline figures of the engine and the tool.

    Args:
        app: Engine figures: ``total_income``, ``total_expenses``,
            ``avg_monthly_spend`` and ``month_count``.
        tool: The same keys as produced by :func:`tool_totals`.

    Returns:
        One ``{app, tool, diff, matches}`` entry per metric (money matches
        within a cent) plus an ``all_match`` flag.
    """
    comparisons: Dict[str, Any] = {}
    for metric in ('total_income', 'total_expenses', 'avg_monthly_spend'):
        app_value = float(app.get(metric, 0.0) or 0.0)
        tool_value = float(tool.get(metric, 0.0) or 0.0)
        comparisons[metric] = {
            'app': round_money(app_value),
            'tool': round_money(tool_value),
            'diff': round_money(app_value - tool_value),
            'matches': money_equal(app_value, tool_value),
        }
    app_months = int(app.get('month_count', 0) or 0)
    tool_months = int(tool.get('month_count', 0) or 0)
    comparisons['month_count'] = {
        'app': app_months,
        'tool': tool_months,
        'diff': app_months - tool_months,
        'matches': app_months == tool_months,
    }
    comparisons['all_match'] = all(entry['matches'] for entry in comparisons.values())
    return comparisons
