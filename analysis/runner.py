"""
Runs a content decay analysis end to end: fetch periods, compare,
diagnose, summarize and cache
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from analysis.brand_classifier import BrandClassifier
from analysis.comparator import PeriodComparator
from analysis.decay_diagnoser import analyze_content_decay
from analysis.models import DecayConfig, DiagnosedPage, PageComparison, SiteSummary
from analysis.trends import summarize_daily_trend
from config.settings import (
    BATCH_SITE_DELAY_SECONDS,
    BATCH_SITE_LIMIT,
    DAILY_TREND_DAYS,
    DATA_DELAY_DAYS,
    DEFAULT_CURRENT_DAYS,
    DEFAULT_PREVIOUS_DAYS,
    RECENT_WINDOW_DAYS
)
from connectors.errors import GSCError, NoDataError, ReauthenticationRequired
from utils.cache import AnalysisCache
from utils.helpers import date_window

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything a front end needs to render one site's analysis"""
    site_url: str
    pages: List[DiagnosedPage]
    summary: SiteSummary
    new_pages: List[PageComparison] = field(default_factory=list)
    periods: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    cached: bool = False
    cache_age_minutes: int = 0


def analysis_windows(
    current_days: int = DEFAULT_CURRENT_DAYS,
    previous_days: int = DEFAULT_PREVIOUS_DAYS,
    include_recent: bool = True,
    today: Optional[datetime] = None
) -> Dict[str, Tuple[str, str]]:
    """
    Date windows for an analysis run

    The previous window ends the day before the current one starts; the
    recent window is the trailing week of the current window. Dates are
    inclusive, so every window spans exactly its number of days.
    """
    windows = {
        'current': date_window(current_days, delay_days=DATA_DELAY_DAYS, today=today),
        'previous': date_window(
            previous_days, offset_days=current_days, delay_days=DATA_DELAY_DAYS, today=today
        )
    }
    if include_recent:
        windows['recent'] = date_window(RECENT_WINDOW_DAYS, delay_days=DATA_DELAY_DAYS, today=today)
    return windows


def cache_bucket(current_days: int, previous_days: int, include_recent: bool) -> str:
    bucket = f"{current_days}d-vs-{previous_days}d"
    return bucket + ('+recent' if include_recent else '')


class DecayAnalysisRunner:
    """
    Orchestrates the fetch layer, the decay engine and the result cache

    The connector is anything exposing fetch_periods, fetch_page_queries and
    fetch_page_daily (see GSCConnector).
    """

    def __init__(
        self,
        connector,
        cache: Optional[AnalysisCache] = None,
        config: Optional[DecayConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.connector = connector
        self.cache = cache if cache is not None else AnalysisCache()
        self.config = config or DecayConfig()
        self._sleep = sleep

    def analyze_site(
        self,
        site_url: str,
        current_days: int = DEFAULT_CURRENT_DAYS,
        previous_days: int = DEFAULT_PREVIOUS_DAYS,
        include_recent: bool = True,
        force_refresh: bool = False,
        today: Optional[datetime] = None
    ) -> AnalysisResult:
        """
        Analyze one property for content decay

        Raises:
            NoDataError: the current period returned no pages
            GSCError: any other fetch failure, unchanged
        """
        bucket = cache_bucket(current_days, previous_days, include_recent)

        if not force_refresh:
            cached = self.cache.get(site_url, bucket)
            if cached is not None:
                logger.info("Returning cached analysis for %s", site_url)
                result = cached.payload
                return AnalysisResult(
                    site_url=result.site_url,
                    pages=result.pages,
                    summary=result.summary,
                    new_pages=result.new_pages,
                    periods=result.periods,
                    cached=True,
                    cache_age_minutes=cached.age_minutes
                )

        logger.info("Running fresh analysis for %s", site_url)
        windows = analysis_windows(current_days, previous_days, include_recent, today=today)
        periods = self.connector.fetch_periods(site_url, windows)

        if periods['current'].empty:
            raise NoDataError()

        comparator = PeriodComparator(
            min_impressions=self.config.min_impressions,
            min_clicks=self.config.min_clicks
        )
        comparison = comparator.compare(
            periods['current'],
            periods['previous'],
            periods.get('recent')
        )

        pages, summary = analyze_content_decay(comparison.comparisons, self.config)

        result = AnalysisResult(
            site_url=site_url,
            pages=pages,
            summary=summary,
            new_pages=comparison.new_pages,
            periods=windows
        )
        self.cache.set(site_url, bucket, result)
        return result

    def analyze_sites(
        self,
        site_urls: Sequence[str],
        limit: int = BATCH_SITE_LIMIT,
        delay_seconds: float = BATCH_SITE_DELAY_SECONDS
    ) -> Dict[str, Any]:
        """
        Refresh several properties in sequence

        A failing site is logged and reported without stopping the batch,
        except that an expired session ends it.

        Returns:
            Dictionary with per-site results, errors and the total number of
            critical pages across the analyzed sites
        """
        results = {}
        errors = {}

        for index, site_url in enumerate(site_urls[:limit]):
            if index:
                self._sleep(delay_seconds)
            try:
                results[site_url] = self.analyze_site(site_url, force_refresh=True)
            except ReauthenticationRequired:
                raise
            except NoDataError as e:
                logger.info("No data for %s", site_url)
                errors[site_url] = e
            except GSCError as e:
                logger.error("Analysis failed for %s: %s", site_url, e)
                errors[site_url] = e

        return {
            'results': results,
            'errors': errors,
            'total_critical': sum(r.summary.critical_count for r in results.values())
        }

    def page_query_breakdown(
        self,
        site_url: str,
        page_url: str,
        days: int = DEFAULT_CURRENT_DAYS,
        today: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Queries for one page, split into branded and generic"""
        start_date, end_date = date_window(days, delay_days=DATA_DELAY_DAYS, today=today)
        queries = self.connector.fetch_page_queries(site_url, page_url, start_date, end_date)

        classifier = BrandClassifier(self.config.brand_keywords)
        if queries.empty:
            classified = queries.assign(query_type=pd.Series(dtype='object'))
        else:
            classified = classifier.classify_dataframe(queries)

        return {
            'queries': classified.sort_values('clicks', ascending=False).reset_index(drop=True),
            'split': classifier.get_click_split(classified)
        }

    def page_daily_trend(
        self,
        site_url: str,
        page_url: str,
        days: int = DAILY_TREND_DAYS,
        algorithm_update_dates: Sequence[str] = (),
        today: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Daily series for one page with trend, velocity and drop patterns"""
        start_date, end_date = date_window(days, delay_days=DATA_DELAY_DAYS, today=today)
        daily = self.connector.fetch_page_daily(site_url, page_url, start_date, end_date)

        analysis = summarize_daily_trend(daily, algorithm_update_dates)
        analysis['daily'] = daily
        return analysis
