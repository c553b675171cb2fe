"""
Gait Domain Scorer

Counts foot-down events from bilateral vertical ankle positions and derives
cadence, left/right step symmetry and step-interval variability.
"""
from dataclasses import dataclass
from typing import Optional
import numpy as np

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.core.signal import statistics as stats
from neurosynapse.core.signal.peaks import PeakDetector
from neurosynapse.utils import get_logger
from .base import (
    Domain,
    DomainScorer,
    MetricSet,
    ScorerConfig,
    Severity,
    _require_finite,
    _require_positive,
)

logger = get_logger(__name__)

LEFT = "left"
RIGHT = "right"


@dataclass
class GaitConfig(ScorerConfig):
    """Gait test configuration."""
    max_duration_s: float = 20.0
    step_threshold: float = 0.15
    relative_to_mean: bool = False
    slow_cadence: float = 80.0
    fast_cadence: float = 120.0

    settings_fields = {
        "max_duration_s": "gait_test_duration_s",
        "step_threshold": "gait_step_threshold",
        "slow_cadence": "gait_slow_cadence",
        "fast_cadence": "gait_fast_cadence",
    }

    def validate(self) -> None:
        super().validate()
        _require_finite("step_threshold", self.step_threshold)
        _require_positive("slow_cadence", self.slow_cadence)
        _require_positive("fast_cadence", self.fast_cadence)
        if self.slow_cadence >= self.fast_cadence:
            raise InvalidConfigError("slow_cadence must be below fast_cadence")


class GaitScorer(DomainScorer):
    """
    Walking-test scorer.

    Each sample value is a (left, right) pair of vertical ankle positions;
    the two feet are tracked as independent detector channels.
    """

    domain = Domain.GAIT
    config_class = GaitConfig

    def __init__(self, config: Optional[GaitConfig] = None):
        super().__init__(config)
        self.detector = PeakDetector(
            threshold=self.config.step_threshold,
            relative_to_mean=self.config.relative_to_mean,
        )

    def _ingest(self, sample: Sample) -> None:
        left, right = np.asarray(sample.value, dtype=float).ravel()[:2]
        for channel, value in ((LEFT, left), (RIGHT, right)):
            if self.detector.update(channel, value, sample.timestamp_ms):
                logger.debug(f"gait: {channel} step at {sample.timestamp_ms:.0f}ms")

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()

        left_steps = self.detector.count(LEFT)
        right_steps = self.detector.count(RIGHT)
        total = left_steps + right_steps
        cadence = self.detector.rate_per_minute(self.elapsed_s)
        symmetry = gait_symmetry(left_steps, right_steps)

        step_times = np.sort(self.detector.event_times())
        interval_cv = 0.0
        if step_times.size >= 3:
            interval_cv = stats.coefficient_of_variation_percent(np.diff(step_times))

        self._add_metric(metric_set, "cadence", cadence, "steps_per_min",
                         normal_range=(self.config.slow_cadence, self.config.fast_cadence),
                         description="Steps per minute over the test")
        self._add_metric(metric_set, "symmetry", symmetry, "percent",
                         description="Left/right step count balance")
        self._add_metric(metric_set, "step_interval_cv", interval_cv, "percent",
                         normal_range=(0.0, 15.0),
                         description="Variability of time between consecutive steps")
        self._add_metric(metric_set, "left_steps", left_steps, "count")
        self._add_metric(metric_set, "right_steps", right_steps, "count")
        self._add_metric(metric_set, "total_steps", total, "count")

        metric_set.metadata["insufficient_data"] = self.elapsed_s <= 0
        return metric_set

    def classify(self, metrics: MetricSet) -> str:
        cadence = metrics.value("cadence")
        if cadence == 0:
            return "standing"
        elif cadence < self.config.slow_cadence:
            return "slow"
        elif cadence > self.config.fast_cadence:
            return "fast"
        return "normal"

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return GAIT_SEVERITY[status]

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        cadence_ratio = min(1.0, metrics.value("cadence") / self.config.slow_cadence)
        return cadence_ratio * metrics.value("symmetry") / 100.0


GAIT_SEVERITY = {
    "normal": Severity.NORMAL,
    "fast": Severity.MILD,
    "slow": Severity.MODERATE,
    "standing": Severity.SEVERE,
}


def gait_symmetry(left_steps: int, right_steps: int) -> float:
    """100 * min / max of the per-foot step counts; 100 when neither foot stepped."""
    high = max(left_steps, right_steps)
    if high == 0:
        return 100.0
    return 100.0 * min(left_steps, right_steps) / high
