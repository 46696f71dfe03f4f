import itertools

import pytest

from spending_plan.scoring import (
    bucket_percentage,
    build_suggestions,
    calculate_score,
    is_bucket_on_target,
    is_on_track,
)

ON_TARGET = {'fixed_costs': 50, 'investments': 10, 'savings': 5, 'guilt_free': 35}


def test_on_target_plan_scores_full_marks():
    assert calculate_score(ON_TARGET) == 100
    assert is_on_track(ON_TARGET)
    assert build_suggestions(ON_TARGET) == []


@pytest.mark.parametrize(
    'changes, score',
    [
        ({'fixed_costs': 70}, 90),
        ({'guilt_free': 40}, 95),
        ({'investments': 5}, 88),
        ({'savings': 0}, 75),
        ({'fixed_costs': 200, 'guilt_free': 200, 'investments': 0, 'savings': 0}, 0),
    ],
)
def test_score_penalties(changes, score):
    assert calculate_score({**ON_TARGET, **changes}) == score


def test_ceiling_and_floor_targets():
    assert is_bucket_on_target('fixed_costs', 60)
    assert not is_bucket_on_target('fixed_costs', 61)
    assert is_bucket_on_target('guilt_free', 35)
    assert not is_bucket_on_target('guilt_free', 36)
    assert is_bucket_on_target('investments', 10)
    assert not is_bucket_on_target('investments', 9)
    assert is_bucket_on_target('savings', 5)
    assert not is_bucket_on_target('savings', 4)


def test_bucket_percentage_rounds_half_away_from_zero():
    assert bucket_percentage(125, 1000) == 13
    assert bucket_percentage(124, 1000) == 12
    assert bucket_percentage(100, 0) == 0


def test_score_bounds_and_track_equivalence():
    grid = [0, 4, 5, 9, 10, 35, 36, 60, 61, 150]
    for fixed, invest, save, guilt in itertools.product(grid, repeat=4):
        percentages = {'fixed_costs': fixed, 'investments': invest, 'savings': save, 'guilt_free': guilt}
        score = calculate_score(percentages)
        assert 0 <= score <= 100
        assert (score == 100) == is_on_track(percentages)


def test_suggestions_name_each_bucket_off_target():
    suggestions = build_suggestions({'fixed_costs': 72, 'investments': 3, 'savings': 5, 'guilt_free': 20})
    messages = [item['message'] for item in suggestions]
    assert [item['bucket'] for item in suggestions] == ['fixed_costs', 'investments']
    assert messages[0] == "Your fixed costs are 72% of income. Consider reducing to under 60%."
    assert messages[1] == "You're investing only 3% of income. Try to reach at least 10%."
