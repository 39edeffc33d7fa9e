"""
Plotly figures for the dashboard buckets.

The bar chart is the clickable one: its x labels map back to bucket keys
through bucket_for_label. The pie shows the same buckets and marks the
active one by pulling its slice out.
"""

from collections.abc import Sequence

import plotly.graph_objects as go

from finance_tracker.models.ledger import ChartBucket


CHART_MARGIN = dict(l=10, r=10, t=10, b=10)


def bar_figure(buckets: Sequence[ChartBucket]) -> go.Figure:
    figure = go.Figure(go.Bar(
        x=[bucket.label for bucket in buckets],
        y=[float(bucket.value) for bucket in buckets],
        marker_color=[bucket.color for bucket in buckets],
        marker_line_width=[3 if bucket.active else 0 for bucket in buckets],
        marker_line_color="#111827",
    ))
    figure.update_layout(height=320, margin=CHART_MARGIN, clickmode="event+select")
    return figure


def pie_figure(buckets: Sequence[ChartBucket]) -> go.Figure:
    figure = go.Figure(go.Pie(
        labels=[bucket.label for bucket in buckets],
        values=[float(bucket.value) for bucket in buckets],
        marker=dict(colors=[bucket.color for bucket in buckets]),
        pull=[0.08 if bucket.active else 0 for bucket in buckets],
        sort=False,
    ))
    figure.update_layout(height=320, margin=CHART_MARGIN)
    return figure
