"""Plotly figures for a spending plan report.

Each function accepts the report dictionary returned by
:func:`spending_plan.engine.compute` and returns a
``plotly.graph_objects.Figure``. When the report carries nothing to plot the
figure is empty and titled "No data to display".
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .classifier import BUCKETS

BUCKET_LABELS: Dict[str, str] = {
    'fixed_costs': 'Fixed Costs',
    'investments': 'Investments',
    'savings': 'Savings',
    'guilt_free': 'Guilt-Free',
}
BUCKET_COLORS: Dict[str, str] = {
    'fixed_costs': '#636EFA',
    'investments': '#00CC96',
    'savings': '#FFA15A',
    'guilt_free': '#EF553B',
}


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_bucket_donut(report: Mapping[str, Any], title: str | None = None) -> go.Figure:
    """Donut chart of each bucket's share of spending."""
    buckets = report.get('buckets') or {}
    df = pd.DataFrame(
        {
            'Bucket': [BUCKET_LABELS[b] for b in BUCKETS],
            'Amount': [float((buckets.get(b) or {}).get('amount', 0.0)) for b in BUCKETS],
        }
    )
    if df['Amount'].sum() <= 0:
        return _empty_figure()
    fig = px.pie(
        df,
        names='Bucket',
        values='Amount',
        hole=0.5,
        color='Bucket',
        color_discrete_map={BUCKET_LABELS[b]: BUCKET_COLORS[b] for b in BUCKETS},
    )
    fig.update_traces(textinfo='percent+label')
    fig.update_layout(title=title or "Spending by bucket")
    return fig


def create_monthly_bucket_chart(report: Mapping[str, Any], title: str | None = None) -> go.Figure:
    """Stacked monthly bucket spending with monthly income as a line."""
    monthly = pd.DataFrame(report.get('monthly_data') or [])
    if monthly.empty:
        return _empty_figure()
    fig = go.Figure()
    for bucket in BUCKETS:
        fig.add_trace(
            go.Bar(
                x=monthly['month_label'],
                y=monthly[bucket],
                name=BUCKET_LABELS[bucket],
                marker_color=BUCKET_COLORS[bucket],
            )
        )
    fig.add_trace(
        go.Scatter(
            x=monthly['month_label'],
            y=monthly['income'],
            name='Income',
            mode='lines+markers',
            line=dict(color='#2E2E2E', dash='dash'),
        )
    )
    fig.update_layout(
        barmode='stack',
        title=title or "Monthly spending by bucket",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_target_comparison_chart(report: Mapping[str, Any], title: str | None = None) -> go.Figure:
    """Actual bucket percentages against their target ranges."""
    buckets = report.get('buckets') or {}
    if not buckets:
        return _empty_figure()
    labels = [BUCKET_LABELS[b] for b in BUCKETS]
    actual = [(buckets.get(b) or {}).get('percentage', 0) for b in BUCKETS]
    colors = ['#00CC96' if (buckets.get(b) or {}).get('is_on_target') else '#EF553B' for b in BUCKETS]
    fig = go.Figure(go.Bar(x=labels, y=actual, marker_color=colors, name='Actual %'))
    for index, bucket in enumerate(BUCKETS):
        target = (buckets.get(bucket) or {}).get('target') or {}
        low = target.get('min', 0)
        high = target.get('max', low)
        fig.add_shape(
            type='rect',
            x0=index - 0.4,
            x1=index + 0.4,
            y0=low,
            y1=high,
            line=dict(width=0),
            fillcolor='rgba(128, 128, 128, 0.25)',
        )
    fig.update_layout(
        title=title or f"Plan score {report.get('score', 0)}/100",
        yaxis_title="% of income",
        showlegend=False,
    )
    return fig
