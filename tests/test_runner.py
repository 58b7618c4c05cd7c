"""Tests for analysis/runner.py orchestration, caching and batch refresh."""

from datetime import datetime

import pandas as pd
import pytest

from analysis.models import DecayConfig
from analysis.runner import DecayAnalysisRunner, analysis_windows, cache_bucket
from conftest import page_frame
from connectors.errors import GSCApiError, NoDataError, RateLimited, ReauthenticationRequired
from utils.cache import AnalysisCache

TODAY = datetime(2026, 3, 10)


class FakeConnector:
    """Stands in for GSCConnector; periods and failures keyed by site"""

    def __init__(self, periods=None, failures=None, queries=None, daily=None):
        self.periods = periods or {}
        self.failures = failures or {}
        self.queries = queries if queries is not None else page_frame([])
        self.daily = daily if daily is not None else pd.DataFrame(columns=["date", "clicks"])
        self.fetches = []

    def fetch_periods(self, site_url, windows, max_rows=None):
        self.fetches.append((site_url, windows))
        if site_url in self.failures:
            raise self.failures[site_url]
        return self.periods[site_url]

    def fetch_page_queries(self, site_url, page_url, start_date, end_date):
        return self.queries

    def fetch_page_daily(self, site_url, page_url, start_date, end_date):
        return self.daily


def decaying_site():
    return {
        "current": page_frame([
            ("https://example.com/rot", 20, 300, 0.067, 12.0),
            ("https://example.com/ok", 100, 1000, 0.1, 5.0),
            ("https://example.com/new", 30, 800, 0.0375, 6.0),
        ]),
        "previous": page_frame([
            ("https://example.com/rot", 100, 1000, 0.1, 4.0),
            ("https://example.com/ok", 100, 1000, 0.1, 5.0),
        ]),
        "recent": page_frame([]),
    }


def test_analysis_windows_follow_reporting_delay():
    windows = analysis_windows(30, 30, include_recent=True, today=TODAY)
    assert windows["current"] == ("2026-02-06", "2026-03-07")
    assert windows["previous"] == ("2026-01-07", "2026-02-05")
    assert windows["recent"] == ("2026-03-01", "2026-03-07")


def test_recent_window_optional():
    assert "recent" not in analysis_windows(include_recent=False, today=TODAY)


def test_cache_bucket():
    assert cache_bucket(30, 30, True) == "30d-vs-30d+recent"
    assert cache_bucket(7, 28, False) == "7d-vs-28d"


def test_analyze_site_diagnoses_and_separates_new_pages():
    connector = FakeConnector(periods={"https://example.com/": decaying_site()})
    runner = DecayAnalysisRunner(connector, config=DecayConfig(min_impressions=100))

    result = runner.analyze_site("https://example.com/", today=TODAY)

    assert {p.page_url for p in result.pages} == {"https://example.com/rot", "https://example.com/ok"}
    assert [c.page_url for c in result.new_pages] == ["https://example.com/new"]
    assert result.summary.critical_count == 1
    assert result.summary.healthy_count == 1
    assert result.cached is False
    assert result.periods["current"] == ("2026-02-06", "2026-03-07")


def test_second_run_is_served_from_cache():
    connector = FakeConnector(periods={"https://example.com/": decaying_site()})
    runner = DecayAnalysisRunner(connector, cache=AnalysisCache(clock=lambda: 1000.0))

    first = runner.analyze_site("https://example.com/", today=TODAY)
    second = runner.analyze_site("https://example.com/", today=TODAY)

    assert len(connector.fetches) == 1
    assert second.cached is True
    assert second.pages == first.pages


def test_force_refresh_bypasses_cache():
    connector = FakeConnector(periods={"https://example.com/": decaying_site()})
    runner = DecayAnalysisRunner(connector)

    runner.analyze_site("https://example.com/", today=TODAY)
    result = runner.analyze_site("https://example.com/", force_refresh=True, today=TODAY)

    assert len(connector.fetches) == 2
    assert result.cached is False


def test_empty_current_period_raises_no_data():
    empty = {"current": page_frame([]), "previous": page_frame([]), "recent": page_frame([])}
    runner = DecayAnalysisRunner(FakeConnector(periods={"https://example.com/": empty}))

    with pytest.raises(NoDataError):
        runner.analyze_site("https://example.com/", today=TODAY)


def test_fetch_errors_propagate_unchanged():
    connector = FakeConnector(failures={"https://example.com/": RateLimited(status=429)})
    with pytest.raises(RateLimited):
        DecayAnalysisRunner(connector).analyze_site("https://example.com/", today=TODAY)


class SteadyRateConnector:
    """Returns one page whose clicks are a daily rate times each window's length"""

    def __init__(self, daily_clicks, recent_daily_clicks=None):
        self.daily_clicks = daily_clicks
        self.recent_daily_clicks = recent_daily_clicks or daily_clicks

    def fetch_periods(self, site_url, windows, max_rows=None):
        periods = {}
        for name, (start_date, end_date) in windows.items():
            days = (datetime.strptime(end_date, "%Y-%m-%d") - datetime.strptime(start_date, "%Y-%m-%d")).days + 1
            rate = self.recent_daily_clicks if name == "recent" else self.daily_clicks
            periods[name] = page_frame([("https://example.com/a", rate * days, 100 * days, rate / 100, 4.0)])
        return periods


def test_window_lengths_match_requested_days():
    windows = analysis_windows(30, 30, include_recent=True, today=TODAY)
    spans = {
        name: (datetime.strptime(end, "%Y-%m-%d") - datetime.strptime(start, "%Y-%m-%d")).days + 1
        for name, (start, end) in windows.items()
    }
    assert spans == {"current": 30, "previous": 30, "recent": 7}


def test_flat_daily_traffic_has_zero_velocity():
    result = DecayAnalysisRunner(SteadyRateConnector(10)).analyze_site("https://example.com/", today=TODAY)
    diagnosis = result.pages[0].diagnosis

    assert diagnosis.velocity_change_pct == 0
    assert diagnosis.is_cliff is False
    assert diagnosis.decay_class == "healthy"


def test_last_week_drop_past_threshold_is_a_plunge():
    connector = SteadyRateConnector(10, recent_daily_clicks=6.5)
    result = DecayAnalysisRunner(connector).analyze_site("https://example.com/", today=TODAY)
    diagnosis = result.pages[0].diagnosis

    # 45 clicks over 7 days against 300 over 30
    assert diagnosis.velocity_change_pct == pytest.approx(-35.7, abs=0.05)
    assert diagnosis.is_cliff is True
    assert diagnosis.decay_class == "plunge"


# ── Batch refresh ────────────────────────────────────────────────────


def test_analyze_sites_collects_errors_and_totals(no_sleep):
    delays, sleep = no_sleep
    connector = FakeConnector(
        periods={"https://a.example/": decaying_site(), "https://c.example/": decaying_site()},
        failures={"https://b.example/": GSCApiError("GSC API Error: Backend Error", status=500)},
    )
    runner = DecayAnalysisRunner(connector, config=DecayConfig(min_impressions=100), sleep=sleep)

    batch = runner.analyze_sites(
        ["https://a.example/", "https://b.example/", "https://c.example/"],
        delay_seconds=3,
    )

    assert set(batch["results"]) == {"https://a.example/", "https://c.example/"}
    assert isinstance(batch["errors"]["https://b.example/"], GSCApiError)
    assert batch["total_critical"] == 2
    assert delays == [3, 3]


def test_analyze_sites_respects_limit(no_sleep):
    _, sleep = no_sleep
    sites = [f"https://site{i}.example/" for i in range(8)]
    connector = FakeConnector(periods={site: decaying_site() for site in sites})

    batch = DecayAnalysisRunner(connector, sleep=sleep).analyze_sites(sites, limit=5)

    assert len(batch["results"]) == 5
    assert len(connector.fetches) == 5


def test_expired_session_stops_batch(no_sleep):
    _, sleep = no_sleep
    connector = FakeConnector(
        periods={"https://b.example/": decaying_site()},
        failures={"https://a.example/": ReauthenticationRequired(status=401)},
    )
    with pytest.raises(ReauthenticationRequired):
        DecayAnalysisRunner(connector, sleep=sleep).analyze_sites(["https://a.example/", "https://b.example/"])
    assert len(connector.fetches) == 1


# ── Drill-downs ──────────────────────────────────────────────────────


def test_page_query_breakdown_splits_branded():
    queries = pd.DataFrame({
        "query": ["acme running shoes", "best running shoes", "trail shoes"],
        "clicks": [30, 60, 10],
        "impressions": [100, 900, 400],
        "ctr": [0.3, 0.067, 0.025],
        "position": [1.2, 4.5, 8.0],
    })
    runner = DecayAnalysisRunner(FakeConnector(queries=queries), config=DecayConfig(brand_keywords=("Acme",)))

    breakdown = runner.page_query_breakdown("https://example.com/", "https://example.com/shoes", today=TODAY)

    assert list(breakdown["queries"]["query"]) == ["best running shoes", "acme running shoes", "trail shoes"]
    assert breakdown["split"]["branded"]["clicks"] == 30
    assert breakdown["split"]["generic"]["click_share_pct"] == 70.0


def test_page_query_breakdown_without_queries():
    breakdown = DecayAnalysisRunner(FakeConnector()).page_query_breakdown(
        "https://example.com/", "https://example.com/a", today=TODAY
    )
    assert breakdown["queries"].empty
    assert breakdown["split"]["branded"]["queries"] == 0


def test_page_daily_trend_includes_series():
    daily = pd.DataFrame({
        "date": pd.date_range("2026-01-01", periods=28, freq="D"),
        "clicks": list(range(100, 44, -2)),
    })
    trend = DecayAnalysisRunner(FakeConnector(daily=daily)).page_daily_trend(
        "https://example.com/", "https://example.com/a", today=TODAY
    )

    assert trend["trend"] == "declining"
    assert trend["velocity"]["total_weeks_analyzed"] == 4
    assert trend["daily"] is daily
