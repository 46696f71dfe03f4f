import pytest

from spending_plan.classifier import assign_bucket, infer_bucket, is_income_category


@pytest.mark.parametrize(
    'name, bucket',
    [
        ('Rent', 'fixed_costs'),
        ('Groceries', 'fixed_costs'),
        ('Cell Phone', 'fixed_costs'),
        ('Streaming Subscriptions', 'fixed_costs'),
        ('Roth IRA', 'investments'),
        ('Brokerage Deposits', 'investments'),
        ('Emergency Fund', 'savings'),
        ('Vacation Fund', 'savings'),
        ('Dining Out', 'guilt_free'),
        ('Car Insurance Savings', 'fixed_costs'),
        ('401k Emergency', 'investments'),
        ('', 'guilt_free'),
        (None, 'guilt_free'),
    ],
)
def test_keyword_rules_in_order(name, bucket):
    assert infer_bucket(name) == bucket


def test_override_beats_keywords():
    bucket, inferred, custom = assign_bucket('c1', '401k Emergency', {'c1': 'fixed_costs'})
    assert bucket == 'fixed_costs'
    assert inferred == 'investments'
    assert custom == 'fixed_costs'


def test_unknown_override_is_ignored():
    bucket, inferred, custom = assign_bucket('c1', 'Dining Out', {'c1': 'luxuries'})
    assert bucket == inferred == 'guilt_free'
    assert custom is None


def test_keyword_match_is_case_insensitive():
    assert infer_bucket('MORTGAGE') == 'fixed_costs'


@pytest.mark.parametrize(
    'name, group, expected',
    [
        ('Inflow: Ready to Assign', None, True),
        ('Ready to Assign', 'Internal Master Category', True),
        ('To be Budgeted', None, True),
        ('Paycheck', 'Inflow', True),
        ('Groceries', 'Everyday', False),
        (None, None, False),
    ],
)
def test_income_category_detection(name, group, expected):
    assert is_income_category(name, group) is expected
