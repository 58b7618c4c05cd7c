"""Tests for analysis/site_aggregator.py health summary."""

from analysis.decay_diagnoser import DecayDiagnoser
from analysis.models import DiagnosedPage
from analysis.site_aggregator import SiteAggregator
from conftest import comparison, snapshot


def diagnosed(url, current, previous, recent=None):
    page = comparison(url, current=current, previous=previous, recent=recent)
    return DiagnosedPage(comparison=page, diagnosis=DecayDiagnoser().diagnose(page))


def healthy_page(url):
    return diagnosed(url, snapshot(clicks=100, impressions=400), snapshot(clicks=100, impressions=400))


def rank_rot_page(url):
    return diagnosed(
        url,
        snapshot(clicks=20, impressions=300, position=12),
        snapshot(clicks=100, impressions=1000, position=4),
    )


def ghost_page(url):
    return diagnosed(url, snapshot(clicks=0, impressions=50), snapshot(clicks=3, impressions=80))


def zombie_page(url):
    return diagnosed(
        url,
        snapshot(clicks=2, impressions=4000, ctr=0.0005),
        snapshot(clicks=30, impressions=4200, ctr=0.007),
    )


def test_empty_input_is_fully_healthy():
    summary = SiteAggregator().summarize([])
    assert summary.health_score == 100
    assert summary.total_pages == 0
    assert summary.critical_count == 0
    assert summary.warning_count == 0
    assert summary.monitoring_count == 0
    assert summary.healthy_count == 0
    assert summary.avg_score == 0


def test_all_critical_scores_zero():
    pages = [rank_rot_page(f"https://example.com/{i}") for i in range(4)]
    summary = SiteAggregator().summarize(pages)
    assert summary.critical_count == 4
    assert summary.health_score == 0


def test_health_score_counts_healthy_and_monitoring():
    pages = [
        healthy_page("https://example.com/h"),
        ghost_page("https://example.com/g"),
        rank_rot_page("https://example.com/r"),
    ]
    summary = SiteAggregator().summarize(pages)

    assert summary.total_pages == 3
    assert summary.healthy_count == 1
    assert summary.monitoring_count == 1
    assert summary.critical_count == 1
    assert summary.health_score == 67


def test_avg_score_rounded_to_one_decimal():
    pages = [
        healthy_page("https://example.com/a"),   # opportunity 0
        rank_rot_page("https://example.com/b"),  # 300 * 0.2 - 20 = 40
        ghost_page("https://example.com/c"),     # 50 * 0.2 = 10
    ]
    summary = SiteAggregator().summarize(pages)
    assert summary.avg_score == 16.7


def test_top_decaying_pages_lists_critical_then_warning():
    pages = [
        zombie_page("https://example.com/z"),
        rank_rot_page("https://example.com/r"),
        healthy_page("https://example.com/h"),
    ]
    summary = SiteAggregator().summarize(pages)
    assert summary.top_decaying_pages == ("https://example.com/r", "https://example.com/z")


def test_group_by_severity_has_every_bucket():
    groups = SiteAggregator.group_by_severity([healthy_page("https://example.com/h")])
    assert set(groups) == {"critical", "warning", "monitoring", "healthy"}
    assert len(groups["healthy"]) == 1
