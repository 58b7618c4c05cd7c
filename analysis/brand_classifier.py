"""
Branded vs Generic query split for a page's query drill-down
"""
import pandas as pd
import re
from typing import Dict, Iterable, List, Set


class BrandClassifier:
    """
    Flags search queries that contain a brand keyword

    A decaying page whose remaining clicks are mostly branded is losing its
    generic (discovery) traffic, which the query breakdown makes visible.
    """

    def __init__(self, brand_keywords: Iterable[str] = ()):
        self.brand_keywords = self._normalize_terms(brand_keywords)
        self.brand_patterns = self._compile_patterns()

    def _normalize_terms(self, terms: Iterable[str]) -> Set[str]:
        return {term.lower().strip() for term in terms if term and term.strip()}

    def _compile_patterns(self) -> List[re.Pattern]:
        # Word-start match so "acme" also catches "acmecorp"
        return [
            re.compile(rf'\b{re.escape(term)}', re.IGNORECASE)
            for term in sorted(self.brand_keywords)
        ]

    def is_branded(self, query: str) -> bool:
        if not self.brand_patterns:
            return False
        return any(pattern.search(str(query)) for pattern in self.brand_patterns)

    def classify_dataframe(
        self,
        df: pd.DataFrame,
        query_col: str = 'query'
    ) -> pd.DataFrame:
        """
        Add 'query_type' ('branded' / 'generic') to a query report

        Raises:
            ValueError: query_col is missing
        """
        if query_col not in df.columns:
            raise ValueError(f"Column '{query_col}' not found in DataFrame")

        df_result = df.copy()
        df_result['query_type'] = [
            'branded' if self.is_branded(query) else 'generic'
            for query in df_result[query_col]
        ]
        return df_result

    def get_click_split(self, df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
        """
        Clicks, impressions and share of clicks per query type

        Args:
            df: Output of classify_dataframe
        """
        if 'query_type' not in df.columns:
            raise ValueError("DataFrame must have 'query_type' column. Run classify_dataframe first.")

        total_clicks = df['clicks'].sum() if not df.empty else 0
        split = {}
        for query_type in ['branded', 'generic']:
            type_df = df[df['query_type'] == query_type]
            clicks = type_df['clicks'].sum() if not type_df.empty else 0
            split[query_type] = {
                'queries': len(type_df),
                'clicks': float(clicks),
                'impressions': float(type_df['impressions'].sum()) if not type_df.empty else 0.0,
                'click_share_pct': round(clicks / total_clicks * 100, 1) if total_clicks > 0 else 0.0
            }
        return split
