"""
Data types shared by the decay analysis modules
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from config.settings import (
    DECAY_WEIGHTS,
    IDEAL_CTR,
    CLIFF_THRESHOLD_PCT,
    ZOMBIE_CTR_PCT,
    DEFAULT_MIN_IMPRESSIONS,
    DEFAULT_MIN_CLICKS
)
from utils.helpers import round_half_up


# Decay classes, in classification priority order
GHOST_TOWN = 'ghost_town'
ZOMBIE = 'zombie'
PLUNGE = 'plunge'
BLEEDER = 'bleeder'
RANK_ROT = 'rank_rot'
HEALTHY = 'healthy'
DECAYING = 'decaying'

DECAY_CLASSES = (GHOST_TOWN, ZOMBIE, PLUNGE, BLEEDER, RANK_ROT, HEALTHY, DECAYING)

SEVERITIES = ('critical', 'warning', 'monitoring', 'healthy')

SEVERITY_BY_CLASS = {
    PLUNGE: 'critical',
    RANK_ROT: 'critical',
    ZOMBIE: 'warning',
    BLEEDER: 'warning',
    GHOST_TOWN: 'monitoring',
    DECAYING: 'monitoring',
    HEALTHY: 'healthy'
}

DECAY_CLASS_LABELS = {
    GHOST_TOWN: 'Ghost Town',
    ZOMBIE: 'Zombie',
    PLUNGE: 'Plunge',
    BLEEDER: 'Bleeder',
    RANK_ROT: 'Rank Rot',
    HEALTHY: 'Healthy',
    DECAYING: 'Decaying'
}


class MalformedComparisonError(ValueError):
    """A page comparison is missing data the diagnoser requires"""


@dataclass(frozen=True)
class MetricsSnapshot:
    """Search metrics for one URL in one period"""
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float = 0.0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "MetricsSnapshot":
        """Build a snapshot from an API row or DataFrame record"""
        return cls(
            clicks=int(row.get('clicks', 0) or 0),
            impressions=int(row.get('impressions', 0) or 0),
            ctr=float(row.get('ctr', 0) or 0),
            position=float(row.get('position', 0) or 0)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'clicks': self.clicks,
            'impressions': self.impressions,
            'ctr': self.ctr,
            'position': self.position
        }


@dataclass(frozen=True)
class PageComparison:
    """One URL's metrics aligned across the compared periods"""
    page_url: str
    current: Optional[MetricsSnapshot]
    previous: Optional[MetricsSnapshot] = None
    recent: Optional[MetricsSnapshot] = None

    @property
    def is_new(self) -> bool:
        return self.previous is None


@dataclass(frozen=True)
class ChangeVector:
    """Percentage changes current vs previous; position_delta > 0 means improved rank"""
    clicks_pct: float
    impressions_pct: float
    ctr_pct: float
    position_delta: float

    def rounded(self) -> "ChangeVector":
        return ChangeVector(
            clicks_pct=round_half_up(self.clicks_pct, 1),
            impressions_pct=round_half_up(self.impressions_pct, 1),
            ctr_pct=round_half_up(self.ctr_pct, 1),
            position_delta=round_half_up(self.position_delta, 1)
        )

    def for_metric(self, metric: str) -> float:
        """Change value for a page-table metric name"""
        return {
            'clicks': self.clicks_pct,
            'impressions': self.impressions_pct,
            'ctr': self.ctr_pct,
            'position': self.position_delta
        }[metric]


@dataclass(frozen=True)
class Diagnosis:
    """Decay classification for one page comparison"""
    opportunity_score: float
    decline_score: float
    decay_class: str
    severity: str
    changes: ChangeVector
    signals: Tuple[str, ...]
    recommendations: Tuple[str, ...]
    velocity_change_pct: Optional[float] = None
    is_cliff: bool = False

    @property
    def score(self) -> float:
        """Revival opportunity: estimated clicks the page is leaving on the table"""
        return self.opportunity_score

    @property
    def top_recommendation(self) -> str:
        return self.recommendations[0] if self.recommendations else ''


@dataclass(frozen=True)
class DiagnosedPage:
    comparison: PageComparison
    diagnosis: Diagnosis

    @property
    def page_url(self) -> str:
        return self.comparison.page_url


@dataclass(frozen=True)
class SiteSummary:
    """Site-level health derived from a list of diagnosed pages"""
    total_pages: int = 0
    critical_count: int = 0
    warning_count: int = 0
    monitoring_count: int = 0
    healthy_count: int = 0
    health_score: int = 100
    avg_score: float = 0.0
    avg_decline_score: float = 0.0
    top_decaying_pages: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DecayConfig:
    """
    Recognized options for a decay analysis run

    min_impressions and min_clicks are applied by the comparator; pages below
    them never reach the diagnoser.
    """
    weights: Dict[str, float] = field(default_factory=lambda: dict(DECAY_WEIGHTS))
    ideal_ctr: float = IDEAL_CTR
    cliff_threshold_pct: float = CLIFF_THRESHOLD_PCT
    zombie_ctr_pct: float = ZOMBIE_CTR_PCT
    min_impressions: int = DEFAULT_MIN_IMPRESSIONS
    min_clicks: int = DEFAULT_MIN_CLICKS
    brand_keywords: Tuple[str, ...] = ()


@dataclass
class ComparisonResult:
    """Output of the period comparator"""
    comparisons: List[PageComparison] = field(default_factory=list)
    new_pages: List[PageComparison] = field(default_factory=list)

    @property
    def with_baseline(self) -> List[PageComparison]:
        return [c for c in self.comparisons if not c.is_new]
