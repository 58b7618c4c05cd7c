"""
Daily trend analysis for a single page

Works on a page's daily series (date, clicks, impressions, ctr, position)
to complement the two-period diagnosis:
1. Trend direction from 7-day moving averages
2. Week-over-week decay velocity
3. Sudden drops, optionally matched to known algorithm update dates
"""
import pandas as pd
import numpy as np
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union
from scipy import stats

from utils.helpers import round_half_up


MIN_TREND_DAYS = 14
MOVING_AVERAGE_WINDOW = 7
TREND_THRESHOLD_PCT = 15.0
SUDDEN_DROP_PCT = -30.0
ALGORITHM_UPDATE_WINDOW_DAYS = 3


def _sorted_series(daily: pd.DataFrame, date_col: str = 'date') -> pd.DataFrame:
    df = daily.copy()
    df[date_col] = pd.to_datetime(df[date_col])
    return df.sort_values(date_col).reset_index(drop=True)


def detect_decay_trend(daily: pd.DataFrame, date_col: str = 'date') -> str:
    """
    Classify the click trend as 'declining', 'stable', 'growing' or
    'insufficient_data'

    The 7-day moving average is split in half and the half means compared.
    """
    if len(daily) < MIN_TREND_DAYS:
        return 'insufficient_data'

    df = _sorted_series(daily, date_col)
    moving_averages = (
        df['clicks'].rolling(MOVING_AVERAGE_WINDOW).mean().dropna().to_numpy()
    )

    if len(moving_averages) < 4:
        return 'insufficient_data'

    midpoint = len(moving_averages) // 2
    first_half_avg = moving_averages[:midpoint].mean()
    second_half_avg = moving_averages[midpoint:].mean()

    if first_half_avg == 0:
        return 'insufficient_data'

    change_pct = (second_half_avg - first_half_avg) / first_half_avg * 100

    if change_pct < -TREND_THRESHOLD_PCT:
        return 'declining'
    if change_pct > TREND_THRESHOLD_PCT:
        return 'growing'
    return 'stable'


def calculate_decay_velocity(
    daily: pd.DataFrame,
    date_col: str = 'date'
) -> Optional[Dict[str, Any]]:
    """
    Week-over-week decay rate between the first and last week of the series

    Returns:
        Dictionary with weekly clicks, decay rate and a least-squares daily
        click slope, or None with less than a week of data
    """
    if len(daily) < MOVING_AVERAGE_WINDOW:
        return None

    df = _sorted_series(daily, date_col)
    clicks = df['clicks'].astype(float)

    first_week = float(clicks.iloc[:MOVING_AVERAGE_WINDOW].sum())
    last_week = float(clicks.iloc[-MOVING_AVERAGE_WINDOW:].sum())
    total_weeks = len(df) // MOVING_AVERAGE_WINDOW

    if total_weeks > 1 and first_week > 0:
        weekly_decay_rate = (last_week - first_week) / first_week / total_weeks * 100
    else:
        weekly_decay_rate = 0.0

    if clicks.nunique() > 1:
        slope = stats.linregress(np.arange(len(clicks)), clicks.to_numpy()).slope
    else:
        slope = 0.0

    return {
        'first_week_clicks': first_week,
        'last_week_clicks': last_week,
        'weekly_decay_rate': round_half_up(weekly_decay_rate, 1),
        'daily_click_slope': round(float(slope), 3),
        'total_weeks_analyzed': total_weeks
    }


def identify_decay_pattern(
    daily: pd.DataFrame,
    algorithm_update_dates: Sequence[Union[str, datetime]] = (),
    date_col: str = 'date'
) -> List[Dict[str, Any]]:
    """
    Find single-day click drops over 30%

    Drops within a few days after a known algorithm update are reported
    separately as 'algorithm_update'.
    """
    if len(daily) < 2:
        return []

    df = _sorted_series(daily, date_col)
    previous_clicks = df['clicks'].shift(1)
    valid = previous_clicks > 0
    change = (df['clicks'] - previous_clicks) / previous_clicks.where(valid) * 100

    drops = df.loc[valid & (change < SUDDEN_DROP_PCT), date_col]
    if drops.empty:
        return []

    updates = pd.to_datetime(pd.Series(list(algorithm_update_dates), dtype='object'))
    window = pd.Timedelta(days=ALGORITHM_UPDATE_WINDOW_DAYS)

    update_related = []
    unexplained = []
    for drop_date in drops:
        near_update = any(
            update <= drop_date <= update + window for update in updates
        )
        (update_related if near_update else unexplained).append(drop_date.strftime('%Y-%m-%d'))

    patterns = []
    if unexplained:
        patterns.append({
            'type': 'sudden_drop',
            'dates': unexplained,
            'severity': 'high'
        })
    if update_related:
        patterns.append({
            'type': 'algorithm_update',
            'dates': update_related,
            'severity': 'high'
        })

    return patterns


def summarize_daily_trend(
    daily: pd.DataFrame,
    algorithm_update_dates: Sequence[Union[str, datetime]] = ()
) -> Dict[str, Any]:
    """Trend, velocity and drop patterns for a page's daily series"""
    if daily.empty:
        return {'trend': 'insufficient_data', 'velocity': None, 'patterns': []}

    return {
        'trend': detect_decay_trend(daily),
        'velocity': calculate_decay_velocity(daily),
        'patterns': identify_decay_pattern(daily, algorithm_update_dates)
    }
