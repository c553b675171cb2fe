"""
Facial Domain Scorer

Blink rate and left/right eye symmetry from per-frame eye aspect ratios
(EAR). Landmarks are produced upstream; eye_aspect_ratio() turns six eye
contour points into an EAR when the caller only has the mesh.

References:
- Soukupova & Cech (2016): Real-time eye blink detection using facial landmarks
"""
from dataclasses import dataclass
from typing import Optional, Sequence
import numpy as np

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample, SampleBuffer
from neurosynapse.core.signal.peaks import PeakDetector
from neurosynapse.core.signal import statistics as stats
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

# Face-mesh contour indices, ordered p0..p5 (corners at p0/p3)
LEFT_EYE_INDICES = [33, 160, 158, 133, 153, 144]
RIGHT_EYE_INDICES = [362, 385, 387, 263, 373, 380]

SYMMETRY_MIN_FRAMES = 10
SYMMETRY_WINDOW_FRAMES = 300


def eye_aspect_ratio(points: Sequence[Sequence[float]]) -> float:
    """
    EAR = (|p1 - p5| + |p2 - p4|) / (2 * |p0 - p3|).

    Args:
        points: Six (x, y) or (x, y, z) eye contour points

    Returns:
        Eye aspect ratio; 0.0 when the eye width is degenerate
    """
    p = np.asarray(points, dtype=float)
    if p.shape[0] != 6:
        raise ValueError(f"eye_aspect_ratio needs 6 points, got {p.shape[0]}")

    vertical = np.linalg.norm(p[1] - p[5]) + np.linalg.norm(p[2] - p[4])
    horizontal = np.linalg.norm(p[0] - p[3])
    if horizontal == 0:
        return 0.0
    return float(vertical / (2.0 * horizontal))


def eye_aspect_ratios_from_mesh(landmarks: Sequence[Sequence[float]]) -> tuple:
    """(left EAR, right EAR) from a full face-mesh landmark list."""
    mesh = np.asarray(landmarks, dtype=float)
    return (
        eye_aspect_ratio(mesh[LEFT_EYE_INDICES]),
        eye_aspect_ratio(mesh[RIGHT_EYE_INDICES]),
    )


def facial_symmetry(left: Sequence[float], right: Sequence[float]) -> float:
    """100 * min / max of the mean left/right EAR; 100 with too few frames."""
    left_arr = np.asarray(left, dtype=float)
    right_arr = np.asarray(right, dtype=float)
    if min(left_arr.size, right_arr.size) < SYMMETRY_MIN_FRAMES:
        return 100.0

    mean_left = stats.mean(left_arr)
    mean_right = stats.mean(right_arr)
    high = max(mean_left, mean_right)
    if high <= 0:
        return 100.0
    return 100.0 * min(mean_left, mean_right) / high


@dataclass
class FacialConfig(ScorerConfig):
    """Facial test configuration."""
    max_duration_s: float = 15.0
    ear_threshold: float = 0.2
    refractory_ms: float = 100.0
    reduced_blink_rate: float = 8.0
    increased_blink_rate: float = 20.0
    asymmetry_below: float = 85.0

    settings_fields = {
        "max_duration_s": "facial_test_duration_s",
        "ear_threshold": "facial_ear_threshold",
        "refractory_ms": "facial_refractory_ms",
        "reduced_blink_rate": "facial_reduced_blink_rate",
        "increased_blink_rate": "facial_increased_blink_rate",
        "asymmetry_below": "facial_asymmetry_below",
    }

    def validate(self) -> None:
        super().validate()
        _require_positive("ear_threshold", self.ear_threshold)
        if _require_finite("refractory_ms", self.refractory_ms) < 0:
            raise InvalidConfigError("refractory_ms must not be negative")
        _require_positive("reduced_blink_rate", self.reduced_blink_rate)
        _require_positive("increased_blink_rate", self.increased_blink_rate)
        if self.reduced_blink_rate >= self.increased_blink_rate:
            raise InvalidConfigError("reduced_blink_rate must be below increased_blink_rate")
        _require_finite("asymmetry_below", self.asymmetry_below)


class FacialScorer(DomainScorer):
    """
    Blink and symmetry scorer.

    Each sample value is a (left EAR, right EAR) pair or a full face-mesh
    landmark list. A blink fires when the mean EAR drops from at/above the
    threshold to below it, at most once per refractory period.
    """

    domain = Domain.FACIAL
    config_class = FacialConfig

    def __init__(self, config: Optional[FacialConfig] = None):
        super().__init__(config)
        self.blinks = PeakDetector(
            threshold=self.config.ear_threshold,
            strict_below=True,
            refractory_ms=self.config.refractory_ms,
        )
        self._left = SampleBuffer(max_count=SYMMETRY_WINDOW_FRAMES)
        self._right = SampleBuffer(max_count=SYMMETRY_WINDOW_FRAMES)

    def _ingest(self, sample: Sample) -> None:
        left, right = self._eye_ratios(sample.value)
        self._left.push(Sample(sample.timestamp_ms, left))
        self._right.push(Sample(sample.timestamp_ms, right))

        if self.blinks.update("eyes", (left + right) / 2.0, sample.timestamp_ms):
            logger.debug(f"facial: blink at {sample.timestamp_ms:.0f}ms")

    @staticmethod
    def _eye_ratios(value) -> tuple:
        values = np.asarray(value, dtype=float)
        if values.ndim == 2 and values.shape[0] > max(RIGHT_EYE_INDICES):
            return eye_aspect_ratios_from_mesh(values)
        left, right = values.ravel()[:2]
        return float(left), float(right)

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()
        left = self._left.values()
        right = self._right.values()

        blink_rate = self.blinks.rate_per_minute(self.elapsed_s)
        symmetry = facial_symmetry(left, right)
        mean_ear = stats.mean(np.concatenate([left, right])) if left.size else 0.0

        self._add_metric(metric_set, "blink_rate", blink_rate, "blinks_per_min",
                         normal_range=(self.config.reduced_blink_rate, self.config.increased_blink_rate),
                         description="Spontaneous blinks per minute")
        self._add_metric(metric_set, "symmetry", symmetry, "percent",
                         normal_range=(self.config.asymmetry_below, 100.0),
                         description="Left/right mean EAR balance")
        self._add_metric(metric_set, "blink_count", self.blinks.count(), "count")
        self._add_metric(metric_set, "mean_ear", mean_ear, "ratio",
                         description="Mean eye aspect ratio")

        metric_set.metadata["insufficient_data"] = self.elapsed_s <= 0
        return metric_set

    def classify(self, metrics: MetricSet) -> str:
        blink_rate = metrics.value("blink_rate")
        if blink_rate < self.config.reduced_blink_rate:
            return "reduced"
        elif blink_rate > self.config.increased_blink_rate:
            return "increased"
        elif metrics.value("symmetry", 100.0) < self.config.asymmetry_below:
            return "asymmetric"
        return "normal"

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return FACIAL_SEVERITY[status]

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        blink_ratio = min(1.0, metrics.value("blink_rate") / self.config.reduced_blink_rate)
        return blink_ratio * metrics.value("symmetry") / 100.0


FACIAL_SEVERITY = {
    "normal": Severity.NORMAL,
    "increased": Severity.MILD,
    "asymmetric": Severity.MILD,
    "reduced": Severity.MODERATE,
}
