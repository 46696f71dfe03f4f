"""Projection of recurring scheduled transactions onto a date window."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .classifier import is_income_category
from .logging_setup import get_logger
from .models import Category, ScheduledTransaction

logger = get_logger(__name__)

# Step per occurrence: fixed day counts, or calendar months for the monthly family.
FREQUENCY_STEPS: Dict[str, Dict[str, int]] = {
    'weekly': {'days': 7},
    'every_other_week': {'days': 14},
    'every_4_weeks': {'days': 28},
    'twice_a_month': {'months': 1},
    'monthly': {'months': 1},
    'every_other_month': {'months': 2},
    'every_3_months': {'months': 3},
    'every_4_months': {'months': 4},
    'twice_a_year': {'months': 6},
    'yearly': {'months': 12},
    'every_other_year': {'months': 24},
}
TWICE_A_MONTH_GAP_DAYS = 15
MAX_OCCURRENCES = 1000


def project_occurrences(frequency: str, first: Optional[date], start: date, end: date) -> List[date]:
    """Dates of a recurrence from ``first`` forward that fall inside ``[start, end]``.

    Monthly-family steps are taken from ``first`` each time so the calendar
    day is kept (clamped to shorter months). Unknown frequencies, including
    one-off templates, yield at most the single ``first`` date.
    """
    if first is None or first > end:
        return []
    step = FREQUENCY_STEPS.get(frequency)
    if step is None:
        return [first] if start <= first <= end else []

    anchor = pd.Timestamp(first)
    occurrences: List[date] = []
    for index in range(MAX_OCCURRENCES):
        if 'days' in step:
            candidates = [anchor + pd.Timedelta(days=step['days'] * index)]
        else:
            current = anchor + pd.DateOffset(months=step['months'] * index)
            candidates = [current]
            if frequency == 'twice_a_month':
                candidates.append(current + pd.Timedelta(days=TWICE_A_MONTH_GAP_DAYS))
        if candidates[0].date() > end:
            break
        occurrences.extend(c.date() for c in candidates if start <= c.date() <= end)
    return occurrences


def is_income_template(template: ScheduledTransaction, categories: Mapping[str, Category]) -> bool:
    if template.amount <= 0:
        return False
    category = categories.get(template.category_id) if template.category_id else None
    if category is not None:
        return is_income_category(category.name, category.group_name)
    return is_income_category(template.category_name)


def project_scheduled_income(
    templates: Iterable[ScheduledTransaction],
    categories: Mapping[str, Category],
    start: date,
    end: date,
    excluded_payees: Iterable[str] = (),
    excluded_categories: Iterable[str] = (),
) -> Dict[str, Any]:
    """Project every income template onto ``[start, end]``.

    Returns ``{'total', 'templates'}`` where ``total`` only counts templates
    whose payee and category are not excluded.
    """
    excluded_payees = set(excluded_payees)
    excluded_categories = set(excluded_categories)
    total = 0.0
    details: List[Dict[str, Any]] = []
    for template in templates:
        if not is_income_template(template, categories):
            continue
        if template.frequency not in FREQUENCY_STEPS:
            logger.debug("Scheduled template %s has non-recurring frequency %r", template.id, template.frequency)
        dates = project_occurrences(template.frequency, template.date_next, start, end)
        category = categories.get(template.category_id) if template.category_id else None
        payee = template.payee_name or 'Unknown'
        is_excluded = payee in excluded_payees or template.category_id in excluded_categories
        projected = template.amount * len(dates)
        if not is_excluded:
            total += projected
        details.append({
            'id': template.id,
            'payee': payee,
            'category_id': template.category_id,
            'category_name': category.name if category is not None else template.category_name,
            'frequency': template.frequency,
            'amount': template.amount,
            'next_date': template.date_next.isoformat() if template.date_next else None,
            'occurrences': [d.isoformat() for d in dates],
            'count': len(dates),
            'projected_total': projected,
            'is_excluded': is_excluded,
        })
    return {'total': total, 'templates': details}
