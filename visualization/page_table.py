"""
Decaying-pages table: sorting and row building driven by an explicit view state
"""
from dataclasses import dataclass, replace
from typing import List

import pandas as pd

from analysis.models import DECAY_CLASS_LABELS, DiagnosedPage
from config.settings import PAGE_TABLE_LIMIT
from utils.helpers import format_page_path

METRICS = ('clicks', 'impressions', 'position')
SORT_COLUMNS = ('current', 'previous', 'diff')


@dataclass(frozen=True)
class PageTableViewState:
    """Selected metric and sort order for the page table"""
    metric: str = 'clicks'
    sort_column: str = 'diff'
    sort_direction: str = 'desc'

    def toggle_sort(self, column: str) -> "PageTableViewState":
        """Clicking the active column flips direction; a new column starts descending"""
        if column not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort column: {column}")
        if column == self.sort_column:
            direction = 'asc' if self.sort_direction == 'desc' else 'desc'
            return replace(self, sort_direction=direction)
        return replace(self, sort_column=column, sort_direction='desc')

    def with_metric(self, metric: str) -> "PageTableViewState":
        if metric not in METRICS:
            raise ValueError(f"Unknown metric: {metric}")
        return replace(self, metric=metric)


def decaying_pages(pages: List[DiagnosedPage]) -> List[DiagnosedPage]:
    """Pages that need action (critical or warning)"""
    return [p for p in pages if p.diagnosis.severity in ('critical', 'warning')]


def _sort_value(page: DiagnosedPage, view_state: PageTableViewState) -> float:
    metric = view_state.metric
    if view_state.sort_column == 'current':
        return getattr(page.comparison.current, metric) or 0
    if view_state.sort_column == 'previous':
        previous = page.comparison.previous
        return getattr(previous, metric) if previous else 0
    return page.diagnosis.changes.for_metric(metric) or 0


def sort_pages(pages: List[DiagnosedPage], view_state: PageTableViewState) -> List[DiagnosedPage]:
    return sorted(
        pages,
        key=lambda page: _sort_value(page, view_state),
        reverse=view_state.sort_direction == 'desc'
    )


def build_page_table(
    pages: List[DiagnosedPage],
    view_state: PageTableViewState,
    limit: int = PAGE_TABLE_LIMIT
) -> pd.DataFrame:
    """
    Rows for the decaying-pages table

    Args:
        pages: Diagnosed pages to show
        view_state: Metric and sort selection
        limit: Maximum rows

    Returns:
        DataFrame with page, diagnosis, current, previous and change columns
    """
    metric = view_state.metric
    rows = []
    for page in sort_pages(pages, view_state)[:limit]:
        previous = page.comparison.previous
        rows.append({
            'page': format_page_path(page.page_url),
            'url': page.page_url,
            'diagnosis': DECAY_CLASS_LABELS.get(page.diagnosis.decay_class, page.diagnosis.decay_class),
            'severity': page.diagnosis.severity,
            'current': getattr(page.comparison.current, metric),
            'previous': getattr(previous, metric) if previous else 0,
            'change': page.diagnosis.changes.for_metric(metric),
            'opportunity': page.diagnosis.score
        })

    return pd.DataFrame(
        rows,
        columns=['page', 'url', 'diagnosis', 'severity', 'current', 'previous', 'change', 'opportunity']
    )
