"""
Tapping Domain Scorer

Finger-tapping motor-speed test: one sample per tap. Tap counts are
normalized to a 10 s test so results compare across test durations.
"""
from dataclasses import dataclass
from typing import Optional
import numpy as np

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.core.signal import statistics as stats
from neurosynapse.utils import get_logger
from .base import Domain, DomainScorer, MetricSet, ScorerConfig, Severity, _require_positive

logger = get_logger(__name__)


@dataclass
class TappingConfig(ScorerConfig):
    """Tapping test configuration."""
    normal_taps: float = 30.0
    mild_taps: float = 15.0
    radar_ceiling_taps: float = 50.0

    settings_fields = {
        "max_duration_s": "tapping_test_duration_s",
        "normal_taps": "tapping_normal_taps",
        "mild_taps": "tapping_mild_taps",
    }

    def validate(self) -> None:
        super().validate()
        _require_positive("normal_taps", self.normal_taps)
        _require_positive("mild_taps", self.mild_taps)
        _require_positive("radar_ceiling_taps", self.radar_ceiling_taps)
        if self.mild_taps >= self.normal_taps:
            raise InvalidConfigError("mild_taps must be below normal_taps")


class TappingScorer(DomainScorer):
    """Counts taps; the sample value is ignored."""

    domain = Domain.TAPPING
    config_class = TappingConfig

    def __init__(self, config: Optional[TappingConfig] = None):
        super().__init__(config)
        self._tap_times = []

    def _ingest(self, sample: Sample) -> None:
        self._tap_times.append(float(sample.timestamp_ms))

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()
        count = len(self._tap_times)
        taps_per_10s = count * 10.0 / self.config.max_duration_s

        intervals = np.diff(self._tap_times) if count >= 2 else np.array([])
        rate_hz = (count - 1) / self.elapsed_s if self.elapsed_s > 0 else 0.0

        self._add_metric(metric_set, "taps_per_10s", taps_per_10s, "taps",
                         description="Taps normalized to a 10 s test")
        self._add_metric(metric_set, "tap_count", count, "count")
        self._add_metric(metric_set, "tap_rate_hz", rate_hz, "Hz")
        self._add_metric(metric_set, "inter_tap_cv", stats.coefficient_of_variation_percent(intervals),
                         "percent", description="Rhythm variability between taps")

        metric_set.metadata["insufficient_data"] = count < 2
        return metric_set

    def classify(self, metrics: MetricSet) -> str:
        taps = metrics.value("taps_per_10s")
        if taps > self.config.normal_taps:
            return "normal"
        elif taps > self.config.mild_taps:
            return "mild"
        return "severe"

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return Severity(status)

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        ceiling = self.config.radar_ceiling_taps
        return min(metrics.value("taps_per_10s"), ceiling) / ceiling
