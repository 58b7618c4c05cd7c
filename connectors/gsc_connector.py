"""
Google Search Console API Connector
"""
import logging
import time
import pandas as pd
from concurrent.futures import ThreadPoolExecutor
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from typing import Any, Callable, Dict, List, Optional, Tuple

from config.settings import (
    GSC_API_SERVICE,
    GSC_API_VERSION,
    MAX_GSC_ROWS,
    PAGE_QUERY_ROWS,
    PAGINATION_DELAY_SECONDS
)
from connectors.errors import ReauthenticationRequired, error_from_http
from utils.helpers import DataProcessor

logger = logging.getLogger(__name__)


class GSCConnector:
    """
    Search Console connector for page-level period reports

    Each call to _build_service returns a fresh API client, so periods can
    be fetched from worker threads without sharing an HTTP connection.
    """

    def __init__(
        self,
        credentials: Credentials,
        service_factory: Optional[Callable[[], Any]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.credentials = credentials
        self._service_factory = service_factory
        self._sleep = sleep
        self.service = self._build_service()

    def _build_service(self):
        """Build the Search Console API service"""
        if self._service_factory is not None:
            return self._service_factory()
        return build(
            GSC_API_SERVICE,
            GSC_API_VERSION,
            credentials=self.credentials,
            cache_discovery=False
        )

    def _execute(self, request):
        """Run an API request, translating failures into fetch error kinds"""
        try:
            return request.execute()
        except HttpError as e:
            error = error_from_http(e)
            logger.error("Search Console request failed: %s", error)
            raise error from e
        except RefreshError as e:
            logger.error("Credential refresh failed: %s", e)
            raise ReauthenticationRequired() from e

    def get_verified_sites(self) -> List[Dict[str, str]]:
        """Sites in the account with their permission level"""
        response = self._execute(self.service.sites().list())
        return [
            {
                'site_url': site['siteUrl'],
                'permission_level': site.get('permissionLevel', '')
            }
            for site in response.get('siteEntry', [])
        ]

    def query(
        self,
        site_url: str,
        body: Dict[str, Any],
        service=None
    ) -> List[Dict[str, Any]]:
        """Single searchAnalytics.query call, returning the raw rows"""
        service = service or self.service
        response = self._execute(
            service.searchanalytics().query(siteUrl=site_url, body=body)
        )
        return response.get('rows', [])

    def fetch_all_rows(
        self,
        site_url: str,
        body: Dict[str, Any],
        max_rows: int = None,
        service=None
    ) -> List[Dict[str, Any]]:
        """
        Page through a report until a short page comes back

        A fixed delay separates requests to stay under the API rate limit.
        With max_rows set, paging also stops once that many rows are in.
        """
        rows_per_request = min(MAX_GSC_ROWS, max_rows) if max_rows else MAX_GSC_ROWS

        all_rows = []
        start_row = 0

        while not max_rows or start_row < max_rows:
            page_body = dict(body, rowLimit=rows_per_request, startRow=start_row)
            rows = self.query(site_url, page_body, service=service)
            all_rows.extend(rows)

            if len(rows) < rows_per_request:
                break

            start_row += len(rows)
            logger.debug("Fetched %d rows for %s, requesting next page", start_row, site_url)
            self._sleep(PAGINATION_DELAY_SECONDS)

        return all_rows

    @staticmethod
    def rows_to_frame(rows: List[Dict[str, Any]], dimensions: List[str]) -> pd.DataFrame:
        """Flatten API rows (keys + metrics) into a DataFrame"""
        records = []
        for row in rows:
            record = {dim: row['keys'][i] for i, dim in enumerate(dimensions)}
            record.update({
                'clicks': row.get('clicks', 0),
                'impressions': row.get('impressions', 0),
                'ctr': row.get('ctr', 0),
                'position': row.get('position', 0)
            })
            records.append(record)

        return pd.DataFrame(records, columns=dimensions + DataProcessor.METRIC_COLUMNS)

    def fetch_page_metrics(
        self,
        site_url: str,
        start_date: str,
        end_date: str,
        max_rows: int = None,
        search_type: str = 'web',
        service=None
    ) -> pd.DataFrame:
        """
        One row of clicks/impressions/ctr/position per page for a date range

        Args:
            site_url: The property ('https://example.com/' or 'sc-domain:example.com')
            start_date: Start date (YYYY-MM-DD)
            end_date: End date (YYYY-MM-DD)
            max_rows: Maximum rows to fetch (None fetches every page)
            search_type: Type of search (web, image, video, news)

        Returns:
            DataFrame with page and metric columns
        """
        body = {
            'startDate': start_date,
            'endDate': end_date,
            'dimensions': ['page'],
            'type': search_type
        }
        rows = self.fetch_all_rows(site_url, body, max_rows=max_rows, service=service)
        logger.info("Fetched %d pages for %s (%s to %s)", len(rows), site_url, start_date, end_date)

        return DataProcessor.clean_page_data(self.rows_to_frame(rows, ['page']))

    def fetch_periods(
        self,
        site_url: str,
        windows: Dict[str, Tuple[str, str]],
        max_rows: int = None
    ) -> Dict[str, pd.DataFrame]:
        """
        Fetch several date windows concurrently

        Args:
            windows: Mapping of period name to (start_date, end_date)

        Returns:
            Mapping of period name to page metrics DataFrame
        """
        def fetch(window: Tuple[str, str]) -> pd.DataFrame:
            start_date, end_date = window
            return self.fetch_page_metrics(
                site_url,
                start_date,
                end_date,
                max_rows=max_rows,
                service=self._build_service()
            )

        with ThreadPoolExecutor(max_workers=max(1, len(windows))) as executor:
            futures = {name: executor.submit(fetch, window) for name, window in windows.items()}
            return {name: future.result() for name, future in futures.items()}

    def _page_filter(self, page_url: str) -> List[Dict[str, Any]]:
        return [{
            'groupType': 'and',
            'filters': [{
                'dimension': 'page',
                'operator': 'equals',
                'expression': page_url
            }]
        }]

    def fetch_page_queries(
        self,
        site_url: str,
        page_url: str,
        start_date: str,
        end_date: str,
        row_limit: int = PAGE_QUERY_ROWS
    ) -> pd.DataFrame:
        """Queries driving traffic to a single page"""
        rows = self.query(site_url, {
            'startDate': start_date,
            'endDate': end_date,
            'dimensions': ['query'],
            'dimensionFilterGroups': self._page_filter(page_url),
            'rowLimit': row_limit
        })
        return DataProcessor.clean_page_data(self.rows_to_frame(rows, ['query']), key_col='query')

    def fetch_page_daily(
        self,
        site_url: str,
        page_url: str,
        start_date: str,
        end_date: str
    ) -> pd.DataFrame:
        """Daily metrics for a single page"""
        rows = self.query(site_url, {
            'startDate': start_date,
            'endDate': end_date,
            'dimensions': ['date'],
            'dimensionFilterGroups': self._page_filter(page_url),
            'rowLimit': PAGE_QUERY_ROWS
        })
        return DataProcessor.clean_daily_data(self.rows_to_frame(rows, ['date']))

    def fetch_site_totals(
        self,
        site_url: str,
        start_date: str,
        end_date: str
    ) -> Optional[Dict[str, float]]:
        """Aggregate metrics for the whole property, None if it has no data"""
        rows = self.query(site_url, {
            'startDate': start_date,
            'endDate': end_date,
            'dimensions': [],
            'rowLimit': 1
        })
        if not rows:
            return None

        row = rows[0]
        return {metric: row.get(metric, 0) for metric in DataProcessor.METRIC_COLUMNS}
