"""
Assessment Aggregator

Combines per-domain results into a radar vector, an overall risk level and
a rule-based risk index.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional, Tuple
from enum import Enum
import numpy as np

from neurosynapse.config import Settings, get_settings
from neurosynapse.core.scoring.base import Domain, DomainScore, Severity
from neurosynapse.utils import get_logger

logger = get_logger(__name__)


class RiskLevel(str, Enum):
    """Overall risk categories."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    INCOMPLETE = "incomplete"

    @classmethod
    def from_mean_severity(
        cls,
        mean_severity: float,
        low_below: float = 1.25,
        moderate_below: float = 2.5
    ) -> "RiskLevel":
        """Convert a mean 0-4 severity to a risk level."""
        if mean_severity < low_below:
            return cls.LOW
        elif mean_severity < moderate_below:
            return cls.MODERATE
        return cls.HIGH


# (domain, metric, predicate, points, reason)
RISK_RULES: List[Tuple[Domain, str, Any, float, str]] = [
    (Domain.TREMOR, "amplitude_mm", lambda v: v > 1.0, 25.0, "Tremor amplitude above 1 mm"),
    (Domain.TREMOR, "frequency_hz", lambda v: 4.0 <= v <= 6.0, 10.0, "Tremor frequency in the 4-6 Hz rest band"),
    (Domain.TAPPING, "taps_per_10s", lambda v: v < 30.0, 20.0, "Fewer than 30 taps per 10 s"),
    (Domain.VOICE, "jitter_percent", lambda v: v > 1.5, 15.0, "Voice jitter above 1.5%"),
    (Domain.GAIT, "step_interval_cv", lambda v: v > 15.0, 15.0, "Step interval variability above 15%"),
    (Domain.SPIRAL, "smoothness", lambda v: v < 80.0, 10.0, "Spiral smoothness below 80"),
]


@dataclass
class AggregateResult:
    """Cross-domain assessment."""
    radar: Dict[str, float]
    overall_risk: RiskLevel
    mean_severity: Optional[float]
    completed_domains: List[str] = field(default_factory=list)
    risk_index: float = 0.0
    risk_factors: List[str] = field(default_factory=list)
    contributing_domains: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "radar": {k: round(v, 4) for k, v in self.radar.items()},
            "overall_risk": self.overall_risk.value,
            "mean_severity": round(self.mean_severity, 3) if self.mean_severity is not None else None,
            "completed_domains": self.completed_domains,
            "risk_index": round(self.risk_index, 1),
            "risk_factors": self.risk_factors,
            "contributing_domains": self.contributing_domains,
        }


class AssessmentAggregator:
    """
    Aggregates DomainScores across domains.

    Only completed domains enter the radar vector and the mean; an
    assessment with fewer than min_completed domains is incomplete.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.low_below = settings.risk_low_below
        self.moderate_below = settings.risk_moderate_below
        self.min_completed = settings.min_completed_domains

    def aggregate(self, results: Mapping[Any, DomainScore]) -> AggregateResult:
        """
        Aggregate finalized domain results.

        Args:
            results: Domain (or domain name) -> DomainScore

        Returns:
            AggregateResult with radar, overall risk and risk index
        """
        completed: Dict[Domain, DomainScore] = {}
        for key, score in results.items():
            if score is None:
                continue
            if score.insufficient_data:
                logger.warning(f"Skipping {key} result: insufficient data")
                continue
            completed[Domain.from_string(key.value if isinstance(key, Domain) else str(key))] = score

        radar = {
            domain.value: float(np.clip(score.radar, 0.0, 1.0))
            for domain, score in completed.items()
        }

        if completed:
            mean_severity = float(np.mean([s.score for s in completed.values()]))
        else:
            mean_severity = None

        if len(completed) < self.min_completed:
            overall = RiskLevel.INCOMPLETE
        else:
            overall = RiskLevel.from_mean_severity(mean_severity, self.low_below, self.moderate_below)

        risk_index, factors = self.risk_index(completed)
        contributing = [
            domain.value for domain, score in completed.items()
            if score.severity in (Severity.MODERATE, Severity.SEVERE)
        ]

        logger.info(
            f"Aggregated {len(completed)} domains: risk={overall.value}, "
            f"mean_severity={mean_severity}, risk_index={risk_index:.0f}"
        )

        return AggregateResult(
            radar=radar,
            overall_risk=overall,
            mean_severity=mean_severity,
            completed_domains=[d.value for d in completed],
            risk_index=risk_index,
            risk_factors=factors,
            contributing_domains=contributing,
        )

    def risk_index(self, completed: Mapping[Domain, DomainScore]) -> Tuple[float, List[str]]:
        """Additive 0-100 index from the rule table; returns (index, reasons)."""
        points = 0.0
        factors = []
        for domain, metric, predicate, weight, reason in RISK_RULES:
            score = completed.get(domain)
            if score is None or score.insufficient_data:
                continue
            m = score.metrics.get(metric)
            if m is not None and predicate(m.value):
                points += weight
                factors.append(reason)
        return min(100.0, points), factors
