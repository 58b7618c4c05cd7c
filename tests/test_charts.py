"""Smoke tests for visualization/charts.py figures."""

import pandas as pd

from analysis.decay_diagnoser import analyze_content_decay
from analysis.models import SiteSummary
from conftest import comparison, snapshot
from visualization.charts import ChartBuilder


def diagnosed_pages():
    pages, summary = analyze_content_decay([
        comparison(
            "https://example.com/rot",
            current=snapshot(clicks=20, impressions=300, position=12),
            previous=snapshot(clicks=100, impressions=1000, position=4),
        ),
        comparison(
            "https://example.com/ok",
            current=snapshot(clicks=100, impressions=1000, position=5),
            previous=snapshot(clicks=100, impressions=1000, position=5),
        ),
    ])
    return pages, summary


def test_health_gauge_uses_score():
    _, summary = diagnosed_pages()
    fig = ChartBuilder().create_health_gauge(summary)
    assert fig.data[0].value == 50


def test_health_color_bands():
    charts = ChartBuilder()
    assert charts._health_color(90) == charts.colors["healthy"]
    assert charts._health_color(50) == charts.colors["warning"]
    assert charts._health_color(10) == charts.colors["critical"]


def test_severity_breakdown_counts():
    fig = ChartBuilder().create_severity_breakdown(SiteSummary(critical_count=2, healthy_count=5))
    assert list(fig.data[0].values) == [2, 0, 0, 5]


def test_decay_class_chart_lists_every_class():
    pages, _ = diagnosed_pages()
    fig = ChartBuilder().create_decay_class_chart(pages)
    counts = dict(zip(fig.data[0].y, fig.data[0].x))
    assert counts["Rank Rot"] == 1
    assert counts["Healthy"] == 1
    assert counts["Zombie"] == 0


def test_opportunity_scatter_has_a_trace_per_severity():
    pages, _ = diagnosed_pages()
    fig = ChartBuilder().create_opportunity_scatter(pages)
    assert {trace.name for trace in fig.data} == {"critical", "healthy"}


def test_page_trend_adds_moving_average():
    daily = pd.DataFrame({"date": pd.date_range("2026-01-01", periods=10), "clicks": range(10)})
    fig = ChartBuilder().create_page_trend(daily)
    assert [trace.name for trace in fig.data] == ["Clicks", "7-day average"]


def test_page_trend_empty_frame():
    fig = ChartBuilder().create_page_trend(pd.DataFrame())
    assert len(fig.data) == 0
