"""
Content Decay Diagnosis Module

Turns a page's current/previous (and optionally recent) Search Console
metrics into:
1. A change vector (clicks, impressions, CTR, position)
2. A revival opportunity score (clicks left on the table at an ideal CTR)
3. A decline score (weighted magnitude of the declines)
4. A decay class, severity, signals and prioritized recommendations
"""
from typing import List, Optional, Tuple

from analysis.models import (
    BLEEDER,
    DECAYING,
    GHOST_TOWN,
    HEALTHY,
    PLUNGE,
    RANK_ROT,
    SEVERITY_BY_CLASS,
    ZOMBIE,
    ChangeVector,
    DecayConfig,
    DiagnosedPage,
    Diagnosis,
    MalformedComparisonError,
    MetricsSnapshot,
    PageComparison,
    SiteSummary
)
from analysis.site_aggregator import SiteAggregator
from utils.helpers import percent_change, round_half_up


MONTH_DAYS = 30
WEEK_DAYS = 7

DEFAULT_RECOMMENDATION = 'Monitor performance.'

CLASS_RECOMMENDATIONS = {
    ZOMBIE: [
        'HIGH: Fix title and meta description to win the click, opportunity ≈ {score} clicks',
        'MEDIUM: Check which SERP features sit above this result'
    ],
    PLUNGE: [
        'CRITICAL: Run a technical audit (indexation, canonicals, robots.txt, recent deploys)',
        'HIGH: Compare the drop date against known algorithm updates'
    ],
    BLEEDER: [
        'HIGH: Refresh content freshness signals (current data, dates, examples)',
        'MEDIUM: Review competing results for a shift in search intent'
    ],
    RANK_ROT: [
        'CRITICAL: Run a competitive content gap analysis against the pages now outranking this URL',
        'HIGH: Add internal links from high-authority pages'
    ],
    GHOST_TOWN: [
        'LOW: Retire or redirect this URL to a stronger related page'
    ],
    DECAYING: [],
    HEALTHY: []
}

SIGNAL_RECOMMENDATIONS = {
    'visibility_drop': [
        'HIGH: Review indexation status in Search Console',
        'MEDIUM: Check for technical SEO issues (robots.txt, canonical tags)'
    ],
    'traffic_loss': [
        'HIGH: Perform a comprehensive content refresh',
        'MEDIUM: Consider consolidation if similar pages compete for the same queries'
    ],
    'ctr_decline': [
        'MEDIUM: Update the title tag with a compelling, current hook',
        'MEDIUM: Refresh the meta description with a clear value proposition'
    ],
    'ranking_drop': [
        'HIGH: Analyze top-ranking competitors for this topic',
        'MEDIUM: Expand coverage of related subtopics'
    ],
    'velocity_cliff': [
        'CRITICAL: Traffic fell sharply in the last week, check for recent changes to this URL'
    ],
    'low_ctr_high_imp': []
}


class DecayDiagnoser:
    """
    Classifies page comparisons into decay classes

    Classes, checked in priority order:
    - ghost_town: no clicks and barely any impressions
    - zombie: plenty of impressions, almost no clicks
    - plunge: last week's click rate fell off a cliff
    - bleeder: clicks falling while rank holds (relevance / competition)
    - rank_rot: rank worsened by more than 3 places
    - healthy: clicks stable or growing
    - decaying: small decline matching no specific pattern
    """

    def __init__(self, config: Optional[DecayConfig] = None):
        self.config = config or DecayConfig()

    def calculate_changes(
        self,
        current: MetricsSnapshot,
        previous: MetricsSnapshot
    ) -> ChangeVector:
        """Percentage changes current vs previous; position delta is previous - current"""
        return ChangeVector(
            clicks_pct=percent_change(current.clicks, previous.clicks),
            impressions_pct=percent_change(current.impressions, previous.impressions),
            ctr_pct=percent_change(current.ctr, previous.ctr),
            position_delta=previous.position - current.position
        )

    def calculate_opportunity_score(self, current: MetricsSnapshot) -> float:
        """Clicks the page would gain at the ideal CTR, never negative"""
        potential_clicks = current.impressions * self.config.ideal_ctr
        return max(0, round_half_up(potential_clicks - current.clicks))

    def calculate_decline_score(self, changes: ChangeVector) -> float:
        """
        Weighted sum of declines only.

        Position weight applies per rank lost rather than per percent.
        """
        weights = self.config.weights
        score = 0.0

        if changes.clicks_pct < 0:
            score += abs(changes.clicks_pct) * weights.get('clicks', 0)
        if changes.impressions_pct < 0:
            score += abs(changes.impressions_pct) * weights.get('impressions', 0)
        if changes.ctr_pct < 0:
            score += abs(changes.ctr_pct) * weights.get('ctr', 0)
        if changes.position_delta < 0:
            score += abs(changes.position_delta) * weights.get('position', 0)

        return round_half_up(score, 1)

    @staticmethod
    def severity_from_decline_score(decline_score: float) -> str:
        """Severity under the threshold-only model (no classification)"""
        if decline_score > 30:
            return 'critical'
        if decline_score > 15:
            return 'warning'
        if decline_score > 5:
            return 'monitoring'
        return 'healthy'

    def calculate_velocity(
        self,
        current: MetricsSnapshot,
        recent: Optional[MetricsSnapshot]
    ) -> Tuple[Optional[float], bool]:
        """
        Compare last week's daily click rate to the monthly one.

        Returns:
            Tuple of (velocity change %, is_cliff); (None, False) without recent data
        """
        if recent is None:
            return None, False

        daily_rate_month = current.clicks / MONTH_DAYS
        daily_rate_week = recent.clicks / WEEK_DAYS
        velocity_change_pct = percent_change(daily_rate_week, daily_rate_month)

        return velocity_change_pct, velocity_change_pct < self.config.cliff_threshold_pct

    def is_zombie(self, current: MetricsSnapshot) -> bool:
        # CTR arrives as a 0-1 ratio; the threshold is in percent
        return current.impressions > 1000 and current.ctr * 100 < self.config.zombie_ctr_pct

    def classify(
        self,
        current: MetricsSnapshot,
        changes: ChangeVector,
        is_cliff: bool
    ) -> str:
        """First matching rule wins"""
        if current.clicks == 0 and current.impressions < 100:
            return GHOST_TOWN
        if self.is_zombie(current):
            return ZOMBIE
        if is_cliff:
            return PLUNGE
        if changes.clicks_pct < -10 and changes.position_delta > -2:
            return BLEEDER
        if changes.position_delta < -3:
            return RANK_ROT
        if changes.clicks_pct > -5:
            return HEALTHY
        return DECAYING

    def detect_signals(
        self,
        changes: ChangeVector,
        is_cliff: bool,
        decay_class: str
    ) -> Tuple[str, ...]:
        signals = []
        if changes.impressions_pct < -20:
            signals.append('visibility_drop')
        if changes.clicks_pct < -30:
            signals.append('traffic_loss')
        if changes.ctr_pct < -15:
            signals.append('ctr_decline')
        if changes.position_delta < -3:
            signals.append('ranking_drop')
        if is_cliff:
            signals.append('velocity_cliff')
        if decay_class == ZOMBIE:
            signals.append('low_ctr_high_imp')
        return tuple(signals)

    def build_recommendations(
        self,
        decay_class: str,
        signals: Tuple[str, ...],
        score: float
    ) -> Tuple[str, ...]:
        recommendations: List[str] = []

        for template in CLASS_RECOMMENDATIONS.get(decay_class, []):
            recommendations.append(template.format(score=f"{score:,.0f}"))

        for signal in signals:
            for text in SIGNAL_RECOMMENDATIONS.get(signal, []):
                if text not in recommendations:
                    recommendations.append(text)

        if not recommendations:
            recommendations.append(DEFAULT_RECOMMENDATION)

        return tuple(recommendations)

    def diagnose(self, comparison: PageComparison) -> Diagnosis:
        """
        Diagnose one page comparison

        Args:
            comparison: PageComparison with current and previous metrics

        Returns:
            Diagnosis for the page

        Raises:
            MalformedComparisonError: current or previous metrics are missing
        """
        current = comparison.current
        previous = comparison.previous

        if current is None:
            raise MalformedComparisonError(f"No current metrics for {comparison.page_url}")
        if previous is None:
            raise MalformedComparisonError(f"No baseline metrics for {comparison.page_url}")

        changes = self.calculate_changes(current, previous)
        opportunity_score = self.calculate_opportunity_score(current)
        velocity_change_pct, is_cliff = self.calculate_velocity(current, comparison.recent)

        decay_class = self.classify(current, changes, is_cliff)
        signals = self.detect_signals(changes, is_cliff, decay_class)

        return Diagnosis(
            opportunity_score=opportunity_score,
            decline_score=self.calculate_decline_score(changes),
            decay_class=decay_class,
            severity=SEVERITY_BY_CLASS[decay_class],
            changes=changes.rounded(),
            signals=signals,
            recommendations=self.build_recommendations(decay_class, signals, opportunity_score),
            velocity_change_pct=(
                round_half_up(velocity_change_pct, 1) if velocity_change_pct is not None else None
            ),
            is_cliff=is_cliff
        )


def analyze_content_decay(
    comparisons: List[PageComparison],
    config: Optional[DecayConfig] = None
) -> Tuple[List[DiagnosedPage], SiteSummary]:
    """
    Diagnose every page with a baseline and summarize the site

    Pages without previous-period data are skipped. Results are sorted by
    opportunity score, then decline score, highest first.
    """
    diagnoser = DecayDiagnoser(config)

    pages = []
    for comparison in comparisons:
        if comparison.current is None:
            raise MalformedComparisonError(f"No current metrics for {comparison.page_url}")
        if comparison.is_new:
            continue
        pages.append(DiagnosedPage(comparison=comparison, diagnosis=diagnoser.diagnose(comparison)))

    pages.sort(key=lambda p: (-p.diagnosis.score, -p.diagnosis.decline_score, p.page_url))

    return pages, SiteAggregator().summarize(pages)
