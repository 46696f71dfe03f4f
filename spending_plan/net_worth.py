"""Net worth grouping of accounts and investment contribution tracking.

Both views are informational: nothing here feeds the bucket totals.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from .models import Account
from .normalizer import NormalizedStream

ASSETS = 'assets'
INVESTMENTS = 'investments'
SAVINGS = 'savings'
DEBT = 'debt'
NET_WORTH_GROUPS = (ASSETS, INVESTMENTS, SAVINGS, DEBT)

DEBT_ACCOUNT_TYPES = {'credit', 'credit_card', 'loan', 'mortgage', 'other_liability'}
DEBT_NAME_KEYWORDS = {'mortgage', 'loan', 'credit card'}
HOME_VALUE_KEYWORDS = {'home value', 'redfin', 'zillow', 'house value', 'property value', 'real estate'}
INVESTMENT_ACCOUNT_TYPES = {'investment', 'other_asset'}
INVESTMENT_NAME_KEYWORDS = {
    '401k', '401(k)', 'ira', 'roth', 'hsa', 'brokerage', 'investment', 'stock', 'rsu', 'espp',
    'fidelity', 'vanguard', 'schwab', 'altruist', 'retirement',
}
SAVINGS_NAME_KEYWORDS = {'savings', 'emergency', 'hysa', 'high yield'}
PRE_TAX_NAME_KEYWORDS = {'401k', '401(k)', 'traditional ira', 'employer match', 'pension', '403b', '457'}


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def classify_account(account: Account) -> str:
    """Net worth group for an account, by type first and then by name."""
    name = (account.name or '').lower()
    is_home_value = _contains_any(name, HOME_VALUE_KEYWORDS)
    if account.type in DEBT_ACCOUNT_TYPES or _contains_any(name, DEBT_NAME_KEYWORDS):
        return DEBT
    if is_home_value:
        return ASSETS
    if account.type in INVESTMENT_ACCOUNT_TYPES or _contains_any(name, INVESTMENT_NAME_KEYWORDS):
        return INVESTMENTS
    if account.type in {'savings', 'checking'} or _contains_any(name, SAVINGS_NAME_KEYWORDS | {'checking'}):
        return SAVINGS
    return SAVINGS if account.on_budget else ASSETS


def is_pre_tax_account(account: Account) -> bool:
    name = (account.name or '').lower()
    if _contains_any(name, PRE_TAX_NAME_KEYWORDS):
        return True
    return 'ira' in name and 'roth' not in name


def net_worth_summary(accounts: Iterable[Account]) -> Dict[str, Any]:
    """Totals per group over open accounts; debt is reported as a positive figure."""
    grouped: Dict[str, List[Dict[str, Any]]] = {group: [] for group in NET_WORTH_GROUPS}
    for account in accounts:
        if account.closed:
            continue
        grouped[classify_account(account)].append({
            'id': account.id,
            'name': account.name,
            'balance': float(account.balance or 0.0),
            'type': account.type,
            'on_budget': account.on_budget,
        })
    totals = {group: sum(item['balance'] for item in items) for group, items in grouped.items()}
    totals[DEBT] = sum(abs(item['balance']) for item in grouped[DEBT])
    return {
        **totals,
        'total': totals[ASSETS] + totals[INVESTMENTS] + totals[SAVINGS] - totals[DEBT],
        'accounts': grouped,
    }


def investment_contributions(
    stream: NormalizedStream,
    accounts: Mapping[str, Account],
    period_length: int,
) -> Dict[str, Dict[str, Any]]:
    """Inflows into off-budget investment accounts, split pre-tax / post-tax."""
    investment_ids = {
        acc_id for acc_id, acc in accounts.items()
        if not acc.on_budget and not acc.closed and classify_account(acc) == INVESTMENTS
    }
    records = stream.records
    inflows = records[
        records['account_id'].isin(investment_ids)
        & (records['amount'] > 0)
        & ~records['is_starting_balance'].astype(bool)
        & ~records['is_reconciliation'].astype(bool)
        & ~records['is_future_dated'].astype(bool)
    ]

    result = {}
    for label, pre_tax in (('pre_tax', True), ('post_tax', False)):
        ids = {acc_id for acc_id in investment_ids if is_pre_tax_account(accounts[acc_id]) == pre_tax}
        rows = inflows[inflows['account_id'].isin(ids)]
        per_account = []
        if not rows.empty:
            grouped = rows.groupby('account_id')['amount'].agg(['sum', 'size'])
            for acc_id, data in grouped.iterrows():
                amount = float(data['sum'])
                per_account.append({
                    'id': acc_id,
                    'name': accounts[acc_id].name,
                    'amount': amount,
                    'monthly_amount': amount / period_length,
                    'count': int(data['size']),
                })
        total = float(rows['amount'].sum()) if not rows.empty else 0.0
        result[label] = {
            'amount': total,
            'monthly_amount': total / period_length,
            'accounts': sorted(per_account, key=lambda item: -item['amount']),
        }
    return result
