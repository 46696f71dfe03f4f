from datetime import date

import plotly.graph_objects as go

from spending_plan.engine import compute
from spending_plan.visualization import (
    create_bucket_donut,
    create_monthly_bucket_chart,
    create_target_comparison_chart,
)

from helpers import TODAY, cat, make_inputs, txn


def _report():
    inputs = make_inputs(
        categories=[cat('rent', 'Rent'), cat('fun', 'Fun Money')],
        transactions=[
            txn('p', date(2024, 2, 1), 4000.0, category_id='inflow'),
            txn('r', date(2024, 2, 2), -1500.0, category_id='rent'),
            txn('f', date(2024, 3, 2), -300.0, category_id='fun'),
        ],
    )
    return compute(inputs, None, 3, today=TODAY)


def test_bucket_donut_has_one_slice_per_bucket():
    fig = create_bucket_donut(_report())
    assert isinstance(fig, go.Figure)
    assert len(fig.data[0].labels) == 4


def test_monthly_chart_stacks_buckets_with_income_line():
    fig = create_monthly_bucket_chart(_report())
    assert fig.layout.barmode == 'stack'
    assert [trace.name for trace in fig.data][-1] == 'Income'
    assert len(fig.data) == 5


def test_target_chart_title_carries_score():
    report = _report()
    fig = create_target_comparison_chart(report)
    assert str(report['score']) in fig.layout.title.text


def test_empty_report_gives_placeholder_figures():
    report = compute(make_inputs(), None, 0, today=TODAY)
    assert create_bucket_donut(report).layout.title.text == "No data to display"
    assert create_monthly_bucket_chart({}).layout.title.text == "No data to display"
    assert create_target_comparison_chart({}).layout.title.text == "No data to display"
