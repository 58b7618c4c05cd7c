"""Tests for analysis/comparator.py period alignment and threshold filtering."""

import pandas as pd

from analysis.comparator import PeriodComparator, snapshot_map
from analysis.models import MetricsSnapshot
from conftest import page_frame


def test_joins_previous_and_recent_by_url():
    current = page_frame([("https://example.com/a", 50, 500, 0.1, 10.0)])
    previous = page_frame([("https://example.com/a", 300, 2000, 0.15, 5.0)])
    recent = page_frame([("https://example.com/a", 20, 150, 0.13, 9.0)])

    result = PeriodComparator(min_impressions=100).compare(current, previous, recent)

    assert len(result.comparisons) == 1
    page = result.comparisons[0]
    assert page.current == MetricsSnapshot(50, 500, 0.1, 10.0)
    assert page.previous == MetricsSnapshot(300, 2000, 0.15, 5.0)
    assert page.recent == MetricsSnapshot(20, 150, 0.13, 9.0)
    assert page.is_new is False


def test_url_missing_from_previous_is_marked_new():
    current = page_frame([
        ("https://example.com/a", 10, 500, 0.02, 4.0),
        ("https://example.com/fresh", 30, 800, 0.04, 6.0),
    ])
    previous = page_frame([("https://example.com/a", 12, 480, 0.025, 4.2)])

    result = PeriodComparator(min_impressions=100).compare(current, previous)

    assert [c.page_url for c in result.new_pages] == ["https://example.com/fresh"]
    assert result.new_pages[0].previous is None
    assert [c.page_url for c in result.with_baseline] == ["https://example.com/a"]


def test_min_impressions_and_min_clicks_filter_current_rows():
    current = page_frame([
        ("https://example.com/low-imp", 5, 40, 0.125, 3.0),
        ("https://example.com/low-clicks", 1, 500, 0.002, 3.0),
        ("https://example.com/keep", 10, 500, 0.02, 3.0),
    ])
    previous = page_frame([("https://example.com/keep", 10, 500, 0.02, 3.0)])

    result = PeriodComparator(min_impressions=50, min_clicks=5).compare(current, previous)

    assert [c.page_url for c in result.comparisons] == ["https://example.com/keep"]


def test_recent_is_optional():
    current = page_frame([("https://example.com/a", 10, 500, 0.02, 3.0)])
    previous = page_frame([("https://example.com/a", 10, 500, 0.02, 3.0)])

    result = PeriodComparator().compare(current, previous)

    assert result.comparisons[0].recent is None


def test_empty_current_period():
    result = PeriodComparator().compare(page_frame([]), page_frame([]))
    assert result.comparisons == []
    assert result.new_pages == []


def test_snapshot_map_handles_none_and_empty():
    assert snapshot_map(None) == {}
    assert snapshot_map(pd.DataFrame()) == {}


def test_previous_period_is_indexed_once():
    # 2,000 URLs resolve through the lookup; order follows the current period
    urls = [f"https://example.com/p{i}" for i in range(2000)]
    current = page_frame([(u, 10, 200, 0.05, 5.0) for u in urls])
    previous = page_frame([(u, 12, 210, 0.057, 4.8) for u in reversed(urls)])

    result = PeriodComparator(min_impressions=100).compare(current, previous)

    assert [c.page_url for c in result.comparisons] == urls
    assert all(c.previous.clicks == 12 for c in result.comparisons)


def test_url_missing_from_recent_week_gets_zero_snapshot():
    current = page_frame([
        ("https://example.com/a", 300, 3000, 0.1, 4.0),
        ("https://example.com/gone", 300, 3000, 0.1, 4.0),
    ])
    previous = page_frame([
        ("https://example.com/a", 300, 3000, 0.1, 4.0),
        ("https://example.com/gone", 300, 3000, 0.1, 4.0),
    ])
    recent = page_frame([("https://example.com/a", 70, 700, 0.1, 4.0)])

    result = PeriodComparator().compare(current, previous, recent)
    by_url = {c.page_url: c for c in result.comparisons}

    assert by_url["https://example.com/a"].recent.clicks == 70
    assert by_url["https://example.com/gone"].recent == MetricsSnapshot()


def test_empty_recent_week_leaves_recent_unset():
    current = page_frame([("https://example.com/a", 300, 3000, 0.1, 4.0)])
    previous = page_frame([("https://example.com/a", 300, 3000, 0.1, 4.0)])

    result = PeriodComparator().compare(current, previous, page_frame([]))

    assert result.comparisons[0].recent is None
