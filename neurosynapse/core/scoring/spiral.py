"""
Spiral Domain Scorer

Archimedean-spiral drawing test from one ordered pen stroke. Reports the
stroke geometry and a tremor index: the mean deviation of the raw pen path
from a Savitzky-Golay smoothed copy of itself.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence
import numpy as np
from scipy.signal import savgol_filter

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.utils import get_logger
from .base import (
    Domain,
    DomainScorer,
    MetricSet,
    ScorerConfig,
    Severity,
    _require_positive,
)

logger = get_logger(__name__)


@dataclass
class SpiralConfig(ScorerConfig):
    """Spiral test configuration."""
    max_duration_s: float = 20.0
    ideal_tremor_index: float = 5.0
    min_points: int = 10
    smoothing_window: int = 11
    smoothing_polyorder: int = 3

    settings_fields = {
        "max_duration_s": "spiral_test_duration_s",
        "ideal_tremor_index": "spiral_ideal_tremor_index",
        "min_points": "spiral_min_points",
    }

    def validate(self) -> None:
        super().validate()
        _require_positive("ideal_tremor_index", self.ideal_tremor_index)
        _require_positive("smoothing_window", self.smoothing_window)
        if int(self.min_points) < 3:
            raise InvalidConfigError("min_points must be at least 3")
        if self.smoothing_window % 2 == 0 or self.smoothing_window < 3:
            raise InvalidConfigError("smoothing_window must be an odd integer >= 3")
        if not 0 <= self.smoothing_polyorder < self.smoothing_window:
            raise InvalidConfigError("smoothing_polyorder must be in [0, smoothing_window)")


def path_length(points: np.ndarray) -> float:
    """Sum of segment lengths of an (N, 2) path."""
    if len(points) < 2:
        return 0.0
    return float(np.sum(np.linalg.norm(np.diff(points, axis=0), axis=1)))


def smooth_path(points: np.ndarray, window: int = 11, polyorder: int = 3) -> np.ndarray:
    """Savitzky-Golay smoothed copy of the path; window shrinks to fit short strokes."""
    n = len(points)
    window = min(window, n if n % 2 == 1 else n - 1)
    if window < 3:
        return points.copy()
    polyorder = min(polyorder, window - 1)
    return savgol_filter(points, window, polyorder, axis=0)


def tremor_index(points: np.ndarray, window: int = 11, polyorder: int = 3) -> float:
    """Mean Euclidean distance between raw and smoothed pen points."""
    if len(points) < 3:
        return 0.0
    smoothed = smooth_path(points, window, polyorder)
    return float(np.mean(np.linalg.norm(points - smoothed, axis=1)))


def spiral_radar(index: float, ideal: float = 5.0) -> float:
    """max(0, min(1, (ideal - index) / ideal))."""
    return float(max(0.0, min(1.0, (ideal - index) / ideal)))


class SpiralScorer(DomainScorer):
    """Spiral drawing scorer; each sample value is one (x, y) pen point."""

    domain = Domain.SPIRAL
    config_class = SpiralConfig

    def __init__(self, config: Optional[SpiralConfig] = None):
        super().__init__(config)
        self._points: List[Sequence[float]] = []

    def _ingest(self, sample: Sample) -> None:
        point = np.asarray(sample.value, dtype=float).ravel()[:2]
        if np.all(np.isfinite(point)):
            self._points.append(point)

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()
        points = np.asarray(self._points, dtype=float).reshape(-1, 2)
        n = len(points)
        insufficient = n < self.config.min_points

        length = path_length(points)
        velocity = length / n if n else 0.0
        smoothness = max(0.0, 100.0 - velocity)
        index = 0.0 if insufficient else tremor_index(
            points, self.config.smoothing_window, self.config.smoothing_polyorder
        )

        self._add_metric(metric_set, "tremor_index", index, "px",
                         normal_range=(0.0, self.config.ideal_tremor_index),
                         description="Mean deviation from the smoothed stroke")
        self._add_metric(metric_set, "smoothness", smoothness, "score_0_100",
                         normal_range=(80.0, 100.0),
                         description="100 minus mean segment length")
        self._add_metric(metric_set, "path_length", length, "px")
        self._add_metric(metric_set, "velocity", velocity, "px_per_point")
        self._add_metric(metric_set, "point_count", n, "count")

        metric_set.metadata["insufficient_data"] = insufficient
        return metric_set

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        return spiral_radar(metrics.value("tremor_index"), self.config.ideal_tremor_index)

    def classify(self, metrics: MetricSet) -> str:
        radar = self.radar_value("", metrics)
        if radar >= 0.8:
            return Severity.NORMAL.value
        elif radar >= 0.6:
            return Severity.MILD.value
        elif radar >= 0.4:
            return Severity.MODERATE.value
        return Severity.SEVERE.value

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return Severity(status)
