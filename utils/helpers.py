"""
Utility functions and helpers
"""
import math
import re
import pandas as pd
from datetime import datetime, timedelta
from typing import Optional, Tuple
from urllib.parse import urlparse


def round_half_up(value: float, decimal_places: int = 0) -> float:
    """Round halves away from the floor, the way report consumers expect (2.5 -> 3)"""
    factor = 10 ** decimal_places
    return math.floor(value * factor + 0.5) / factor


def percent_change(current: float, previous: float) -> float:
    """Signed percentage change; a zero baseline yields 100 (growth) or 0 (flat)"""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def format_number(value: float, decimal_places: int = 0) -> str:
    """Format number with thousands separator"""
    if value is None or pd.isna(value):
        return "N/A"
    if decimal_places == 0:
        return f"{int(value):,}"
    return f"{value:,.{decimal_places}f}"


def format_compact(value: float) -> str:
    """Shorten large counts for table cells (1234 -> 1.2k)"""
    if value is None or pd.isna(value):
        return "N/A"
    if value >= 1000:
        return f"{value / 1000:.1f}k"
    return format_number(value)


def format_percentage(value: float, decimal_places: int = 2) -> str:
    """Format a 0-1 ratio as percentage"""
    if value is None or pd.isna(value):
        return "N/A"
    return f"{value * 100:.{decimal_places}f}%"


def format_change(value: float, is_percentage: bool = False) -> str:
    """Format change value with sign"""
    if value is None or pd.isna(value):
        return "N/A"

    sign = "+" if value > 0 else ""
    if is_percentage:
        return f"{sign}{value:.1f}%"
    return f"{sign}{value:.1f}"


def format_site_url(site_url: str) -> str:
    """Strip the property prefix and trailing slash for display"""
    return re.sub(r'^(sc-domain:|https?://)', '', site_url).rstrip('/')


def format_page_path(page_url: str, max_length: int = 40) -> str:
    """Show the path of a page URL, truncated from the left"""
    path = urlparse(page_url).path if '://' in page_url else ''
    if not path:
        return page_url[-max_length:]
    if len(path) > max_length:
        return '...' + path[-(max_length - 3):]
    return path


def date_window(
    days: int,
    offset_days: int = 0,
    delay_days: int = 3,
    today: Optional[datetime] = None
) -> Tuple[str, str]:
    """
    Start/end dates for a window of `days` ending `offset_days` before the
    latest available data.

    Both dates are inclusive, as the Search Console API reads them, so the
    window spans exactly `days` days. A window offset by another window's
    length ends the day before that window starts.

    Args:
        days: Window length
        offset_days: How many days before the latest window this one ends
        delay_days: Reporting delay of the data source
        today: Reference date (defaults to now)

    Returns:
        Tuple of (start_date, end_date) as YYYY-MM-DD strings
    """
    today = today or datetime.now()
    end = today - timedelta(days=delay_days + offset_days)
    start = end - timedelta(days=days - 1)
    return start.strftime('%Y-%m-%d'), end.strftime('%Y-%m-%d')


class DataProcessor:
    """
    Data preprocessing for Search Console page reports
    """

    METRIC_COLUMNS = ['clicks', 'impressions', 'ctr', 'position']

    @staticmethod
    def clean_page_data(df: pd.DataFrame, key_col: str = 'page') -> pd.DataFrame:
        """
        Clean and standardize per-URL metrics

        Args:
            df: Raw DataFrame with a key column and GSC metrics

        Returns:
            Cleaned DataFrame, one row per key
        """
        if df.empty:
            return pd.DataFrame(columns=[key_col] + DataProcessor.METRIC_COLUMNS)

        df = df.copy()
        df.columns = df.columns.str.lower().str.strip()

        for col in DataProcessor.METRIC_COLUMNS:
            if col not in df.columns:
                df[col] = 0
            df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0)

        df['clicks'] = df['clicks'].astype(int)
        df['impressions'] = df['impressions'].astype(int)

        # Keep the first row per key; the API never repeats a key within a period
        df = df.drop_duplicates(subset=[key_col], keep='first')

        return df.reset_index(drop=True)

    @staticmethod
    def clean_daily_data(df: pd.DataFrame, date_col: str = 'date') -> pd.DataFrame:
        """Sort a daily series and coerce its metrics to numbers"""
        if df.empty:
            return df

        df = df.copy()
        df[date_col] = pd.to_datetime(df[date_col])
        for col in DataProcessor.METRIC_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0)

        return df.sort_values(date_col).reset_index(drop=True)

