"""Small builders for engine inputs used across the test modules."""

from datetime import date

from spending_plan.models import (
    Account,
    Category,
    EngineInputs,
    MonthCategory,
    MonthSnapshot,
    ScheduledTransaction,
    SubTransaction,
    Transaction,
)

TODAY = date(2024, 3, 15)

CHECKING = Account(id='checking', name='Everyday Checking', type='checking')
VISA = Account(id='visa', name='Visa', type='credit_card')
INFLOW = Category(id='inflow', name='Inflow: Ready to Assign', group_name='Inflow')


def txn(txn_id, when, amount, payee='Store', category_id=None, account_id='checking', **extra):
    return Transaction(
        id=txn_id,
        date=when,
        amount=amount,
        payee_name=payee,
        category_id=category_id,
        account_id=account_id,
        **extra,
    )


def sub(sub_id, amount, category_id, payee=None):
    return SubTransaction(id=sub_id, amount=amount, category_id=category_id, payee_name=payee)


def cat(cat_id, name, group='Everyday', **extra):
    return Category(id=cat_id, name=name, group_name=group, **extra)


def snapshot(month, categories=(), **totals):
    return MonthSnapshot(
        month=month,
        categories={entry.id: entry for entry in categories},
        **totals,
    )


def month_cat(cat_id, activity=0.0, budgeted=0.0, balance=None, name=None):
    return MonthCategory(id=cat_id, activity=activity, budgeted=budgeted, balance=balance, name=name)


def scheduled(sched_id, frequency, next_date, amount, category_id='inflow', payee='Employer'):
    return ScheduledTransaction(
        id=sched_id,
        frequency=frequency,
        date_next=next_date,
        amount=amount,
        payee_name=payee,
        category_id=category_id,
    )


def make_inputs(transactions=(), categories=(), accounts=None, snapshots=(), scheduled_items=()):
    return EngineInputs(
        transactions=list(transactions),
        categories=[INFLOW, *categories],
        accounts=list(accounts) if accounts is not None else [CHECKING, VISA],
        month_snapshots=list(snapshots),
        scheduled_transactions=list(scheduled_items),
    )
