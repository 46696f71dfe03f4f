"""Value types consumed by the spending plan engine.

Every record type mirrors the subset of the budgeting tool's API payload the
engine actually reads. ``from_api`` constructors accept the raw JSON shape
(amounts in milliunits, ISO date strings, camelCase enum values) and return
records in major units; unknown keys are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

MILLIUNITS_PER_UNIT = 1000

ACCOUNT_TYPES = {
    'checking',
    'savings',
    'credit',
    'credit_card',
    'investment',
    'other_asset',
    'loan',
    'mortgage',
    'other_liability',
}

# API spellings that do not snake-case onto the closed set directly
_ACCOUNT_TYPE_ALIASES = {
    'cash': 'checking',
    'line_of_credit': 'credit',
    'investment_account': 'investment',
    'auto_loan': 'loan',
    'student_loan': 'loan',
    'personal_loan': 'loan',
    'medical_debt': 'other_liability',
    'other_debt': 'other_liability',
}

FREQUENCIES = (
    'weekly',
    'every_other_week',
    'twice_a_month',
    'every_4_weeks',
    'monthly',
    'every_other_month',
    'every_3_months',
    'every_4_months',
    'twice_a_year',
    'yearly',
    'every_other_year',
)


def milliunits_to_amount(value: Any) -> float:
    """Convert a milliunit integer into major units; missing values become 0."""
    if value is None:
        return 0.0
    try:
        return float(value) / MILLIUNITS_PER_UNIT
    except (TypeError, ValueError):
        return 0.0


def _optional_amount(value: Any) -> Optional[float]:
    if value is None:
        return None
    return milliunits_to_amount(value)


def snake_case(value: Any) -> str:
    """``everyOtherWeek`` -> ``every_other_week``; ``every4Weeks`` -> ``every_4_weeks``."""
    if not isinstance(value, str):
        return ''
    text = re.sub(r'(?<=[a-z])(?=[A-Z0-9])', '_', value.strip())
    text = re.sub(r'(?<=[A-Z])(?=[A-Z][a-z])', '_', text)
    text = re.sub(r'(?<=[0-9])(?=[A-Za-z])', '_', text)
    return text.replace('-', '_').replace(' ', '_').lower()


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def month_key_from(value: Any) -> Optional[str]:
    """Return ``YYYY-MM`` for a date or an ISO date/month string."""
    if isinstance(value, str) and re.fullmatch(r'\d{4}-\d{2}', value.strip()):
        return value.strip()
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.strftime('%Y-%m')


def normalize_account_type(value: Any) -> str:
    key = snake_case(value)
    key = _ACCOUNT_TYPE_ALIASES.get(key, key)
    return key if key in ACCOUNT_TYPES else 'other_asset'


@dataclass
class SubTransaction:
    id: str
    amount: float
    payee_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    transfer_account_id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'SubTransaction':
        return cls(
            id=str(payload.get('id') or ''),
            amount=milliunits_to_amount(payload.get('amount')),
            payee_name=payload.get('payee_name'),
            category_id=payload.get('category_id'),
            category_name=payload.get('category_name'),
            transfer_account_id=payload.get('transfer_account_id'),
        )


@dataclass
class Transaction:
    id: str
    date: Optional[date]
    amount: float
    payee_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    account_id: Optional[str] = None
    transfer_account_id: Optional[str] = None
    approved: bool = True
    parent_id: Optional[str] = None
    subtransactions: List[SubTransaction] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'Transaction':
        subs = payload.get('subtransactions') or []
        return cls(
            id=str(payload.get('id') or ''),
            date=parse_date(payload.get('date')),
            amount=milliunits_to_amount(payload.get('amount')),
            payee_name=payload.get('payee_name'),
            category_id=payload.get('category_id'),
            category_name=payload.get('category_name'),
            account_id=payload.get('account_id'),
            transfer_account_id=payload.get('transfer_account_id'),
            approved=bool(payload.get('approved', True)),
            parent_id=payload.get('parent_transaction_id') or payload.get('transaction_id'),
            subtransactions=[
                SubTransaction.from_api(sub)
                for sub in subs
                if isinstance(sub, Mapping) and not sub.get('deleted')
            ],
        )


@dataclass
class Category:
    id: str
    name: str
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    balance: Optional[float] = None
    budgeted: Optional[float] = None
    hidden: bool = False

    @classmethod
    def from_api(cls, payload: Mapping[str, Any], group_name: Optional[str] = None) -> 'Category':
        return cls(
            id=str(payload.get('id') or ''),
            name=payload.get('name') or '',
            group_id=payload.get('category_group_id'),
            group_name=payload.get('category_group_name') or group_name,
            balance=_optional_amount(payload.get('balance')),
            budgeted=_optional_amount(payload.get('budgeted')),
            hidden=bool(payload.get('hidden', False)),
        )


@dataclass
class Account:
    id: str
    name: str
    type: str = 'checking'
    on_budget: bool = True
    closed: bool = False
    balance: Optional[float] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'Account':
        return cls(
            id=str(payload.get('id') or ''),
            name=payload.get('name') or '',
            type=normalize_account_type(payload.get('type')),
            on_budget=payload.get('on_budget') is not False,
            closed=bool(payload.get('closed', False)),
            balance=_optional_amount(payload.get('balance')),
        )


@dataclass
class MonthCategory:
    id: str
    activity: float = 0.0
    budgeted: float = 0.0
    balance: Optional[float] = None
    name: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'MonthCategory':
        return cls(
            id=str(payload.get('id') or ''),
            activity=milliunits_to_amount(payload.get('activity')),
            budgeted=milliunits_to_amount(payload.get('budgeted')),
            balance=_optional_amount(payload.get('balance')),
            name=payload.get('name'),
        )


@dataclass
class MonthSnapshot:
    month: str
    income: float = 0.0
    budgeted: float = 0.0
    activity: float = 0.0
    to_be_budgeted: float = 0.0
    categories: Dict[str, MonthCategory] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'MonthSnapshot':
        categories: Dict[str, MonthCategory] = {}
        for item in payload.get('categories') or []:
            if not isinstance(item, Mapping) or item.get('deleted'):
                continue
            entry = MonthCategory.from_api(item)
            if entry.id:
                categories[entry.id] = entry
        return cls(
            month=month_key_from(payload.get('month')) or '',
            income=milliunits_to_amount(payload.get('income')),
            budgeted=milliunits_to_amount(payload.get('budgeted')),
            activity=milliunits_to_amount(payload.get('activity')),
            to_be_budgeted=milliunits_to_amount(payload.get('to_be_budgeted')),
            categories=categories,
        )


@dataclass
class ScheduledTransaction:
    id: str
    frequency: str
    date_next: Optional[date]
    amount: float
    payee_name: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    account_id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'ScheduledTransaction':
        return cls(
            id=str(payload.get('id') or ''),
            frequency=snake_case(payload.get('frequency')),
            date_next=parse_date(payload.get('date_next') or payload.get('date')),
            amount=milliunits_to_amount(payload.get('amount')),
            payee_name=payload.get('payee_name'),
            category_id=payload.get('category_id'),
            category_name=payload.get('category_name'),
            account_id=payload.get('account_id'),
        )


@dataclass
class EngineInputs:
    transactions: List[Transaction] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    accounts: List[Account] = field(default_factory=list)
    month_snapshots: List[MonthSnapshot] = field(default_factory=list)
    scheduled_transactions: List[ScheduledTransaction] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> 'EngineInputs':
        """Build inputs from a dict of raw API collections.

        ``categories`` may be given either flat or as the API's category
        groups (``[{name, categories: [...]}]``).
        """
        categories: List[Category] = []
        for item in payload.get('categories') or payload.get('category_groups') or []:
            if not isinstance(item, Mapping) or item.get('deleted'):
                continue
            if 'categories' in item:
                group_name = item.get('name')
                for cat in item.get('categories') or []:
                    if isinstance(cat, Mapping) and not cat.get('deleted'):
                        categories.append(Category.from_api(cat, group_name=group_name))
            else:
                categories.append(Category.from_api(item))
        return cls(
            transactions=_parse_all(Transaction, payload.get('transactions')),
            categories=categories,
            accounts=_parse_all(Account, payload.get('accounts')),
            month_snapshots=_parse_all(MonthSnapshot, payload.get('months') or payload.get('month_snapshots')),
            scheduled_transactions=_parse_all(ScheduledTransaction, payload.get('scheduled_transactions')),
        )

    def category_lookup(self) -> Dict[str, Category]:
        return {cat.id: cat for cat in self.categories if cat.id}

    def account_lookup(self) -> Dict[str, Account]:
        return {acc.id: acc for acc in self.accounts if acc.id}


def _parse_all(record_type, items: Optional[Iterable[Any]]) -> list:
    return [
        record_type.from_api(item)
        for item in items or []
        if isinstance(item, Mapping) and not item.get('deleted')
    ]
