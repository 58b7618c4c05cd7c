"""
Period alignment: joins per-URL metrics across the compared windows
"""
import logging
from typing import Dict, Optional

import pandas as pd

from analysis.models import ComparisonResult, MetricsSnapshot, PageComparison
from config.settings import DEFAULT_MIN_IMPRESSIONS, DEFAULT_MIN_CLICKS

logger = logging.getLogger(__name__)


def snapshot_map(df: Optional[pd.DataFrame], key_col: str = 'page') -> Dict[str, MetricsSnapshot]:
    """Index a period's rows by URL"""
    if df is None or df.empty:
        return {}
    return {
        record[key_col]: MetricsSnapshot.from_row(record)
        for record in df.to_dict('records')
    }


class PeriodComparator:
    """
    Builds PageComparisons from current, previous and (optionally) recent
    period reports

    Previous and recent periods are indexed once, so each current row is
    matched with a dictionary lookup.
    """

    def __init__(
        self,
        min_impressions: int = DEFAULT_MIN_IMPRESSIONS,
        min_clicks: int = DEFAULT_MIN_CLICKS
    ):
        self.min_impressions = min_impressions
        self.min_clicks = min_clicks

    def passes_thresholds(self, snapshot: MetricsSnapshot) -> bool:
        return snapshot.impressions >= self.min_impressions and snapshot.clicks >= self.min_clicks

    def compare(
        self,
        current: pd.DataFrame,
        previous: pd.DataFrame,
        recent: Optional[pd.DataFrame] = None,
        key_col: str = 'page'
    ) -> ComparisonResult:
        """
        Align the periods per URL

        Args:
            current: Current period, one row per URL
            previous: Previous period, one row per URL
            recent: Optional short trailing window inside the current period;
                when it has rows, a URL absent from it had no traffic that
                week and gets an all-zero snapshot
            key_col: URL column name

        Returns:
            ComparisonResult; URLs missing from the previous period are
            listed in new_pages with previous set to None
        """
        previous_map = snapshot_map(previous, key_col)
        recent_map = snapshot_map(recent, key_col)

        result = ComparisonResult()
        if current is None or current.empty:
            return result

        skipped = 0
        for record in current.to_dict('records'):
            snapshot = MetricsSnapshot.from_row(record)
            if not self.passes_thresholds(snapshot):
                skipped += 1
                continue

            page_url = record[key_col]
            if snapshot.position < 1:
                logger.warning("Invalid position %.2f for %s", snapshot.position, page_url)

            comparison = PageComparison(
                page_url=page_url,
                current=snapshot,
                previous=previous_map.get(page_url),
                recent=recent_map.get(page_url, MetricsSnapshot()) if recent_map else None
            )
            result.comparisons.append(comparison)
            if comparison.is_new:
                result.new_pages.append(comparison)

        logger.info(
            "Compared %d pages (%d new, %d below thresholds)",
            len(result.comparisons), len(result.new_pages), skipped
        )
        return result
