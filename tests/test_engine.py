from datetime import date

import pytest

from spending_plan.engine import compute
from spending_plan.models import Account
from spending_plan.periods import InvalidPeriod

from helpers import CHECKING, TODAY, VISA, cat, make_inputs, month_cat, snapshot, txn

PLAN_CATEGORIES = [
    cat('rent', 'Rent'),
    cat('k', '401k Contribution'),
    cat('ef', 'Emergency Fund'),
    cat('dinners', 'Dinners'),
]


def _single_paycheck_inputs(**extra):
    return make_inputs(
        categories=PLAN_CATEGORIES,
        transactions=[
            txn('pay', date(2024, 3, 1), 5000.0, payee='Employer', category_id='inflow'),
            txn('rent', date(2024, 3, 2), -2000.0, payee='Landlord', category_id='rent'),
            txn('401k', date(2024, 3, 3), -500.0, payee='Fidelity', category_id='k'),
            txn('ef', date(2024, 3, 4), -250.0, payee='Savings', category_id='ef'),
            txn('dine', date(2024, 3, 5), -500.0, payee='Bistro', category_id='dinners'),
        ],
        **extra,
    )


def test_single_paycheck_clean_buckets():
    report = compute(_single_paycheck_inputs(), None, 3, today=TODAY)
    assert report['monthly_income'] == pytest.approx(1666.67, abs=0.01)
    expected = {
        'fixed_costs': (2000.0, 40),
        'investments': (500.0, 10),
        'savings': (250.0, 5),
        'guilt_free': (500.0, 10),
    }
    for bucket, (amount, percentage) in expected.items():
        assert report['buckets'][bucket]['amount'] == pytest.approx(amount)
        assert report['buckets'][bucket]['percentage'] == percentage
        assert report['buckets'][bucket]['is_on_target'] is True
    assert report['score'] == 100
    assert report['is_on_track'] is True
    assert report['suggestions'] == []
    assert [row['month'] for row in report['monthly_data']] == ['2024-01', '2024-02', '2024-03']


def test_credit_card_payment_is_skipped():
    inputs = make_inputs(
        categories=PLAN_CATEGORIES,
        transactions=[txn('cc', date(2024, 3, 7), -1500.0, payee='Transfer : Visa', transfer_account_id='visa')],
    )
    report = compute(inputs, None, 3, today=TODAY)
    assert all(bucket['amount'] == 0 for bucket in report['buckets'].values())
    skipped = report['diagnostics']['skipped']['credit_card_payment']
    assert skipped['total'] == pytest.approx(1500.0)
    assert skipped['count'] == 1
    assert skipped['samples'] == [{'payee': 'Transfer : Visa', 'date': '2024-03-07', 'amount': -1500.0}]


def test_empty_input_is_a_zero_report():
    report = compute(make_inputs(), None, 12, today=TODAY)
    assert report['total_income'] == 0
    assert all(bucket['amount'] == 0 for bucket in report['buckets'].values())
    assert all(bucket['percentage'] == 0 for bucket in report['buckets'].values())
    assert len(report['monthly_data']) == 12
    assert 0 <= report['score'] <= 100


def test_invalid_period_surfaces_to_caller():
    with pytest.raises(InvalidPeriod):
        compute(make_inputs(), None, 7, today=TODAY)


def test_same_inputs_give_equal_reports():
    inputs = _single_paycheck_inputs()
    settings = {'excluded_payees': ['Nobody'], 'category_mappings': {'dinners': 'guilt_free'}}
    assert compute(inputs, settings, 6, today=TODAY) == compute(inputs, settings, 6, today=TODAY)


def test_override_renders_in_report_bucket():
    settings = {'category_mappings': {'rent': 'guilt_free', 'dinners': 'fixed_costs'}}
    report = compute(_single_paycheck_inputs(), settings, 3, today=TODAY)
    listing = {row['id']: row for row in report['all_expense_categories']}
    assert listing['rent']['bucket'] == 'guilt_free'
    assert listing['dinners']['bucket'] == 'fixed_costs'
    fixed_names = [row['name'] for row in report['buckets']['fixed_costs']['categories']]
    assert fixed_names == ['Dinners']


def test_percentages_are_consistent_with_totals():
    inputs = make_inputs(
        categories=PLAN_CATEGORIES,
        transactions=[
            txn('pay', date(2024, 3, 1), 3333.0, category_id='inflow'),
            txn('a', date(2024, 3, 2), -1111.0, category_id='rent'),
            txn('b', date(2024, 3, 3), -333.3, category_id='k'),
            txn('c', date(2024, 3, 4), -166.65, category_id='ef'),
            txn('d', date(2024, 3, 5), -777.77, category_id='dinners'),
        ],
    )
    report = compute(inputs, None, 0, today=TODAY)
    total = sum(bucket['amount'] for bucket in report['buckets'].values())
    overall = round(total / report['total_income'] * 100)
    assert abs(sum(bucket['percentage'] for bucket in report['buckets'].values()) - overall) <= 2


def test_expense_reconciliation_identity_holds_in_report():
    inputs = _single_paycheck_inputs(
        snapshots=[snapshot('2024-03', [month_cat('rent', activity=-2000.0)], income=5000.0, activity=-4900.0)],
    )
    report = compute(inputs, None, 3, today=TODAY)
    gap = report['diagnostics']['expense_reconciliation']
    assert gap['tool_expenses'] == pytest.approx(4900.0)
    total = gap['adjusted_app_expenses'] + gap['skipped_expenses_total'] + gap['unexplained_gap']
    assert total == pytest.approx(gap['tool_expenses'], abs=1e-9)
    assert report['diagnostics']['comparison']['total_income']['matches'] is True


def test_inconsistent_references_are_counted():
    inputs = make_inputs(
        categories=PLAN_CATEGORIES,
        transactions=[txn('x', date(2024, 3, 1), -10.0, category_id='ghost', account_id='nowhere')],
        snapshots=[snapshot('2024-03', [month_cat('phantom', activity=-5.0)])],
    )
    report = compute(inputs, None, 0, today=TODAY)
    refs = report['diagnostics']['inconsistent_references']
    assert refs['missing_category'] == 1
    assert refs['missing_account'] == 1
    assert refs['orphan_snapshot_category'] == 1
    assert report['buckets']['guilt_free']['amount'] == pytest.approx(10.0)


def test_accepts_raw_api_payload_in_milliunits():
    payload = {
        'accounts': [{'id': 'checking', 'name': 'Checking', 'type': 'checking', 'on_budget': True, 'balance': 1200000}],
        'category_groups': [
            {'name': 'Inflow', 'categories': [{'id': 'inflow', 'name': 'Inflow: Ready to Assign'}]},
            {'name': 'Bills', 'categories': [{'id': 'rent', 'name': 'Rent', 'budgeted': 1500000}]},
        ],
        'transactions': [
            {'id': 'a', 'date': '2024-03-01', 'amount': 4000000, 'payee_name': 'Employer',
             'category_id': 'inflow', 'account_id': 'checking'},
            {'id': 'b', 'date': '2024-03-02', 'amount': -1500000, 'payee_name': 'Landlord',
             'category_id': 'rent', 'account_id': 'checking'},
            {'id': 'c', 'date': '2024-03-02', 'amount': -1, 'deleted': True, 'account_id': 'checking'},
        ],
        'months': [{'month': '2024-03-01', 'income': 4000000, 'activity': -1500000, 'categories': []}],
        'scheduled_transactions': [],
    }
    report = compute(payload, None, 0, today=TODAY)
    assert report['total_income'] == pytest.approx(4000.0)
    assert report['buckets']['fixed_costs']['amount'] == pytest.approx(1500.0)
    assert report['diagnostics']['tool_totals']['total_expenses'] == pytest.approx(1500.0)


def test_net_worth_and_investment_contributions():
    accounts = [
        CHECKING,
        VISA,
        Account(id='k401', name='Acme 401k', type='other_asset', on_budget=False, balance=50000.0),
        Account(id='roth', name='Roth IRA', type='other_asset', on_budget=False, balance=20000.0),
        Account(id='home', name='Home Value (Zillow)', type='other_asset', on_budget=False, balance=400000.0),
        Account(id='mort', name='Mortgage', type='mortgage', on_budget=False, balance=-300000.0),
        Account(id='old', name='Old Savings', type='savings', closed=True, balance=999.0),
    ]
    inputs = make_inputs(
        accounts=accounts,
        transactions=[
            txn('c1', date(2024, 2, 15), 1000.0, payee='Payroll', account_id='k401'),
            txn('c2', date(2024, 3, 1), 500.0, payee='Deposit', account_id='roth'),
            txn('c3', date(2024, 3, 2), 123.0, payee='Reconciliation Balance Adjustment', account_id='roth'),
        ],
    )
    report = compute(inputs, None, 3, today=TODAY)
    net_worth = report['net_worth']
    assert net_worth['investments'] == pytest.approx(70000.0)
    assert net_worth['assets'] == pytest.approx(400000.0)
    assert net_worth['debt'] == pytest.approx(300000.0)
    assert all(item['id'] != 'old' for group in net_worth['accounts'].values() for item in group)
    contributions = report['investment_contributions']
    assert contributions['pre_tax']['amount'] == pytest.approx(1000.0)
    assert contributions['post_tax']['amount'] == pytest.approx(500.0)
    assert report['total_income'] == 0
