"""
CSV export of diagnosed pages

Column order and quoting (every cell in double quotes) are read by
downstream tooling and must stay stable.
"""
import csv
import io
import pandas as pd
from typing import Any, List

from analysis.models import DECAY_CLASS_LABELS, DiagnosedPage

CSV_COLUMNS = [
    'URL',
    'Diagnosis',
    'Severity',
    'Score',
    'Clicks Change %',
    'Impressions Change %',
    'CTR Change %',
    'Position Change',
    'Current Clicks',
    'Previous Clicks',
    'Top Recommendation'
]


def _format_cell(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def pages_to_frame(pages: List[DiagnosedPage]) -> pd.DataFrame:
    """One row per diagnosed page, in CSV column order"""
    records = []
    for page in pages:
        diagnosis = page.diagnosis
        changes = diagnosis.changes
        previous = page.comparison.previous
        records.append([
            page.page_url,
            DECAY_CLASS_LABELS.get(diagnosis.decay_class, diagnosis.decay_class),
            diagnosis.severity,
            diagnosis.score,
            changes.clicks_pct,
            changes.impressions_pct,
            changes.ctr_pct,
            changes.position_delta,
            page.comparison.current.clicks,
            previous.clicks if previous else 0,
            diagnosis.top_recommendation
        ])

    return pd.DataFrame(records, columns=CSV_COLUMNS)


def export_to_csv(pages: List[DiagnosedPage]) -> str:
    """Serialize diagnosed pages to fully quoted CSV text"""
    df = pages_to_frame(pages).astype(object).map(_format_cell)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')


def parse_csv(text: str) -> pd.DataFrame:
    """Read an exported CSV back, every value as a string"""
    return pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
