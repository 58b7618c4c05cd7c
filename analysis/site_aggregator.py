"""
Site-level health summary for a set of diagnosed pages
"""
from typing import Dict, List

from analysis.models import SEVERITIES, DiagnosedPage, SiteSummary
from utils.helpers import round_half_up


class SiteAggregator:
    """Reduces diagnosed pages into a SiteSummary"""

    TOP_PER_SEVERITY = 10
    TOP_LIMIT = 15

    @staticmethod
    def group_by_severity(pages: List[DiagnosedPage]) -> Dict[str, List[DiagnosedPage]]:
        groups = {severity: [] for severity in SEVERITIES}
        for page in pages:
            groups[page.diagnosis.severity].append(page)
        return groups

    def summarize(self, pages: List[DiagnosedPage]) -> SiteSummary:
        """
        Summarize site health

        Healthy and monitoring pages count as "healthy" in the health score,
        measured over every analyzed page. An empty run is reported as fully
        healthy.
        """
        if not pages:
            return SiteSummary()

        grouped = self.group_by_severity(pages)
        total_pages = len(pages)

        healthy_and_monitoring = len(grouped['healthy']) + len(grouped['monitoring'])
        health_score = int(round_half_up(healthy_and_monitoring / total_pages * 100))

        avg_score = round_half_up(sum(p.diagnosis.score for p in pages) / total_pages, 1)
        avg_decline_score = round_half_up(
            sum(p.diagnosis.decline_score for p in pages) / total_pages, 1
        )

        top_decaying = (
            grouped['critical'][:self.TOP_PER_SEVERITY]
            + grouped['warning'][:self.TOP_PER_SEVERITY]
        )[:self.TOP_LIMIT]

        return SiteSummary(
            total_pages=total_pages,
            critical_count=len(grouped['critical']),
            warning_count=len(grouped['warning']),
            monitoring_count=len(grouped['monitoring']),
            healthy_count=len(grouped['healthy']),
            health_score=health_score,
            avg_score=avg_score,
            avg_decline_score=avg_decline_score,
            top_decaying_pages=tuple(p.page_url for p in top_decaying)
        )
