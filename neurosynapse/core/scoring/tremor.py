"""
Tremor Domain Scorer

Rest/postural tremor from a hand position stream:
- Amplitude: standard deviation of the tracked axis over a 5 s window
- Frequency: zero-crossing rate about the window mean, clamped to 3-12 Hz
- Severity score: weighted blend of amplitude and frequency scores (0-100)
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample, SampleBuffer
from neurosynapse.core.signal import statistics as stats
from neurosynapse.core.signal.frequency import BandPolicy, FrequencyBand, zero_crossing_frequency
from neurosynapse.utils import get_logger
from .base import (
    Domain,
    DomainScorer,
    MetricSet,
    ScorerConfig,
    Severity,
    _require_band,
    _require_finite,
    _require_positive,
)

logger = get_logger(__name__)

TREMOR_AXES = ("x", "y", "magnitude")


@dataclass
class TremorConfig(ScorerConfig):
    """Tremor test configuration."""
    sample_rate: float = 60.0
    window_ms: float = 5000.0
    min_samples: int = 30
    band: Tuple[float, float] = (3.0, 12.0)
    position_scale: float = 1000.0
    amplitude_weight: float = 10.0
    frequency_weight: float = 5.0
    axis: str = "x"

    settings_fields = {
        "max_duration_s": "tremor_test_duration_s",
        "sample_rate": "tremor_sample_rate",
        "window_ms": "tremor_window_ms",
        "min_samples": "tremor_min_samples",
        "band": "tremor_band",
        "position_scale": "tremor_position_scale",
        "amplitude_weight": "tremor_amplitude_weight",
        "frequency_weight": "tremor_frequency_weight",
    }

    def validate(self) -> None:
        super().validate()
        _require_positive("sample_rate", self.sample_rate)
        _require_positive("window_ms", self.window_ms)
        _require_positive("min_samples", self.min_samples)
        _require_band("band", self.band)
        _require_positive("position_scale", self.position_scale)
        for name in ("amplitude_weight", "frequency_weight"):
            if _require_finite(name, getattr(self, name)) < 0:
                raise InvalidConfigError(f"{name} must not be negative")
        if self.axis not in TREMOR_AXES:
            raise InvalidConfigError(f"axis must be one of {TREMOR_AXES}, got {self.axis!r}")


class TremorScorer(DomainScorer):
    """Tremor scorer over a sliding position window."""

    domain = Domain.TREMOR
    config_class = TremorConfig

    def __init__(self, config: Optional[TremorConfig] = None):
        super().__init__(config)
        low, high = self.config.band
        self.band = FrequencyBand(float(low), float(high), BandPolicy.CLAMP)
        self._window = SampleBuffer(horizon_ms=self.config.window_ms)

    def _ingest(self, sample: Sample) -> None:
        position = self._project(sample.value)
        if np.isfinite(position):
            self._window.push(Sample(sample.timestamp_ms, position))

    def _project(self, value) -> float:
        """Reduce a scalar or 2D/3D position to the tracked axis."""
        coords = np.atleast_1d(np.asarray(value, dtype=float)).ravel()
        if self.config.axis == "magnitude":
            return float(np.linalg.norm(coords))
        if self.config.axis == "y":
            return float(coords[1]) if coords.size > 1 else float(coords[0])
        return float(coords[0])

    def _effective_sample_rate(self) -> float:
        """Rate implied by the window timestamps, configured rate as fallback."""
        n = len(self._window)
        span_s = self._window.duration_ms / 1000.0
        if n < 2 or span_s <= 0:
            return self.config.sample_rate
        return (n - 1) / span_s

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()
        values = self._window.values()
        insufficient = values.size < self.config.min_samples

        if insufficient:
            amplitude_mm = 0.0
            frequency_hz = 0.0
        else:
            amplitude_mm = stats.stddev(values) * self.config.position_scale
            raw = zero_crossing_frequency(values, self._effective_sample_rate(), reference="mean")
            frequency_hz = self.band.apply(raw)

        severity_score = tremor_severity_score(amplitude_mm, frequency_hz, self.config)

        self._add_metric(metric_set, "amplitude_mm", amplitude_mm, "mm",
                         normal_range=(0.0, 1.0),
                         description="Standard deviation of position over the window")
        self._add_metric(metric_set, "frequency_hz", frequency_hz, "Hz",
                         description="Dominant oscillation frequency")
        self._add_metric(metric_set, "severity_score", severity_score, "score_0_100",
                         normal_range=(0.0, 20.0),
                         description="Weighted amplitude/frequency score")

        metric_set.metadata["window_samples"] = int(values.size)
        metric_set.metadata["axis"] = self.config.axis
        metric_set.metadata["insufficient_data"] = insufficient
        return metric_set

    def classify(self, metrics: MetricSet) -> str:
        return classify_tremor(metrics.value("severity_score")).value

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return Severity(status)

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        return 1.0 - metrics.value("severity_score") / 100.0


def tremor_severity_score(
    amplitude_mm: float,
    frequency_hz: float,
    config: Optional[TremorConfig] = None
) -> float:
    """clamp(0.6 * amplitude score + 0.4 * frequency score, 0, 100)."""
    config = config or TremorConfig()
    amp_score = min(100.0, amplitude_mm * config.amplitude_weight)
    freq_score = min(100.0, frequency_hz * config.frequency_weight)
    return stats.clamp(amp_score * 0.6 + freq_score * 0.4, 0.0, 100.0)


def classify_tremor(severity_score: float) -> Severity:
    if severity_score < 20:
        return Severity.NORMAL
    elif severity_score < 40:
        return Severity.MILD
    elif severity_score < 60:
        return Severity.MODERATE
    return Severity.SEVERE
