"""Turn raw transactions into the canonical stream of effective records.

The effective stream is a DataFrame with one row per record that survives
split expansion and the window cut. Each row carries derived flags and a
``flow`` column (``income``, ``expense`` or ``skipped``); skipped rows carry a
``skip_reason`` tag consumed by :mod:`spending_plan.diagnostics`.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from .classifier import is_income_category
from .logging_setup import get_logger
from .models import Account, Category, Transaction
from .periods import ResolvedPeriod

logger = get_logger(__name__)

STARTING_BALANCE_PAYEE = 'starting balance'
RECONCILIATION_PAYEE = 'reconciliation balance adjustment'
CREDIT_ACCOUNT_TYPES = {'credit', 'credit_card'}

FLOW_INCOME = 'income'
FLOW_EXPENSE = 'expense'
FLOW_SKIPPED = 'skipped'

# Skip tags for inflows and outflows, in precedence order.
INCOME_SKIP_REASONS = (
    'future_dated_income',
    'tracking_account_income',
    'transfer_income',
    'starting_balance_income',
    'reconciliation_income',
)
EXPENSE_SKIP_REASONS = (
    'future_dated_expense',
    'tracking_account',
    'credit_card_payment',
    'uncategorized_transfer',
    'categorized_transfer',
    'starting_balance',
    'reconciliation',
)
OTHER_SKIP_REASONS = ('income_category_outflow', 'zero_amount')
SKIP_REASONS = INCOME_SKIP_REASONS + EXPENSE_SKIP_REASONS + OTHER_SKIP_REASONS

EFFECTIVE_COLUMNS = [
    'id', 'parent_id', 'date', 'month', 'amount', 'payee',
    'category_id', 'category_name', 'category_group', 'account_id', 'account_type',
    'transfer_account_id', 'transfer_account_type',
    'is_transfer', 'is_credit_card_payment', 'is_tracking_account',
    'is_starting_balance', 'is_reconciliation', 'is_future_dated',
    'is_income_category', 'flow', 'skip_reason',
]


@dataclass
class NormalizedStream:
    records: pd.DataFrame
    inconsistencies: Dict[str, int] = field(default_factory=dict)

    def of_flow(self, flow: str) -> pd.DataFrame:
        return self.records[self.records['flow'] == flow]


def empty_frame() -> pd.DataFrame:
    frame = pd.DataFrame(columns=EFFECTIVE_COLUMNS)
    frame['amount'] = frame['amount'].astype(float)
    return frame


def _row(txn, parent: Optional[Transaction] = None) -> Dict[str, object]:
    base = parent or txn
    return {
        'id': txn.id,
        'parent_id': parent.id if parent is not None else getattr(txn, 'parent_id', None),
        'date': base.date if parent is not None else txn.date,
        'amount': float(txn.amount),
        'payee': txn.payee_name or (parent.payee_name if parent is not None else None),
        'category_id': txn.category_id,
        'category_name': txn.category_name,
        'account_id': base.account_id,
        'transfer_account_id': txn.transfer_account_id,
    }


def expand_splits(transactions: List[Transaction], issues: Counter) -> List[Dict[str, object]]:
    """Replace split parents with their children.

    Children may arrive nested (``subtransactions``) or flat with a
    ``parent_id``. A flat child whose parent is absent is kept on its own.
    """
    parents = {txn.id: txn for txn in transactions if not txn.parent_id}
    flat_children: Dict[str, List[Transaction]] = defaultdict(list)
    rows: List[Dict[str, object]] = []

    for txn in transactions:
        if not txn.parent_id:
            continue
        if txn.parent_id in parents:
            flat_children[txn.parent_id].append(txn)
        else:
            issues['missing_parent'] += 1
            rows.append(_row(txn))

    for txn in parents.values():
        if txn.subtransactions:
            rows.extend(_row(sub, parent=txn) for sub in txn.subtransactions)
        elif flat_children.get(txn.id):
            rows.extend(_row(child, parent=txn) for child in flat_children[txn.id])
        else:
            rows.append(_row(txn))
    return rows


def normalize_transactions(
    transactions: List[Transaction],
    period: ResolvedPeriod,
    accounts: Optional[Mapping[str, Account]] = None,
    categories: Optional[Mapping[str, Category]] = None,
) -> NormalizedStream:
    """Build the effective stream for ``period``.

    Records dated before the window start are dropped. Records after the
    window end stay in the stream only as ``future_dated_*`` skips.
    """
    accounts = accounts or {}
    categories = categories or {}
    issues: Counter = Counter()

    rows = expand_splits(list(transactions), issues)
    if not rows:
        return NormalizedStream(empty_frame(), dict(issues))

    df = pd.DataFrame(rows)
    missing_date = df['date'].isna()
    if missing_date.any():
        issues['missing_date'] += int(missing_date.sum())
        df = df[~missing_date]
    df = df[df['date'] >= period.start].copy()
    if df.empty:
        return NormalizedStream(empty_frame(), dict(issues))

    df['date'] = pd.to_datetime(df['date'])
    df['month'] = df['date'].dt.strftime('%Y-%m')
    df['payee'] = df['payee'].fillna('')

    def _account_attr(account_id, attr, default):
        account = accounts.get(account_id) if account_id is not None else None
        return getattr(account, attr) if account is not None else default

    has_account = df['account_id'].notna()
    known_account = df['account_id'].isin(list(accounts))
    issues['missing_account'] += int((has_account & ~known_account).sum())
    df['account_type'] = df['account_id'].map(lambda a: _account_attr(a, 'type', None))
    on_budget = df['account_id'].map(lambda a: _account_attr(a, 'on_budget', True))

    has_transfer = df['transfer_account_id'].notna()
    known_transfer = df['transfer_account_id'].isin(list(accounts))
    issues['missing_transfer_account'] += int((has_transfer & ~known_transfer).sum())
    df['transfer_account_type'] = df['transfer_account_id'].map(lambda a: _account_attr(a, 'type', None))

    has_category = df['category_id'].notna()
    known_category = df['category_id'].isin(list(categories))
    issues['missing_category'] += int((has_category & ~known_category).sum())
    lookup_names = df['category_id'].map(lambda c: categories[c].name if c in categories else None)
    df['category_name'] = lookup_names.where(lookup_names.notna(), df['category_name'])
    df['category_group'] = df['category_id'].map(lambda c: categories[c].group_name if c in categories else None)
    df['is_income_category'] = [
        is_income_category(name, group) for name, group in zip(df['category_name'], df['category_group'])
    ]

    payee = df['payee'].str.strip().str.lower()
    df['is_transfer'] = has_transfer
    df['is_credit_card_payment'] = has_transfer & df['transfer_account_type'].isin(CREDIT_ACCOUNT_TYPES)
    df['is_tracking_account'] = on_budget.eq(False)
    df['is_starting_balance'] = payee.eq(STARTING_BALANCE_PAYEE)
    df['is_reconciliation'] = payee.eq(RECONCILIATION_PAYEE)
    df['is_future_dated'] = df['date'] > pd.Timestamp(period.end)

    inflow = df['amount'] > 0
    outflow = df['amount'] < 0
    conditions = [
        df['is_future_dated'] & inflow,
        df['is_future_dated'],
        df['is_tracking_account'] & inflow,
        df['is_tracking_account'],
        df['is_transfer'] & inflow,
        df['is_credit_card_payment'],
        df['is_transfer'] & df['category_id'].isna(),
        df['is_transfer'],
        df['is_starting_balance'] & inflow,
        df['is_starting_balance'],
        df['is_reconciliation'] & inflow,
        df['is_reconciliation'],
        outflow & df['is_income_category'],
        ~inflow & ~outflow,
    ]
    choices = [
        'future_dated_income',
        'future_dated_expense',
        'tracking_account_income',
        'tracking_account',
        'transfer_income',
        'credit_card_payment',
        'uncategorized_transfer',
        'categorized_transfer',
        'starting_balance_income',
        'starting_balance',
        'reconciliation_income',
        'reconciliation',
        'income_category_outflow',
        'zero_amount',
    ]
    df['skip_reason'] = np.select(conditions, choices, default='')
    df['flow'] = np.where(
        df['skip_reason'] != '',
        FLOW_SKIPPED,
        np.where(inflow, FLOW_INCOME, FLOW_EXPENSE),
    )

    inconsistent = {k: v for k, v in issues.items() if v}
    if inconsistent:
        logger.warning("Inconsistent input references: %s", inconsistent)
    records = df.sort_values(['date', 'id'], kind='mergesort').reset_index(drop=True)
    return NormalizedStream(records[EFFECTIVE_COLUMNS], dict(issues))
