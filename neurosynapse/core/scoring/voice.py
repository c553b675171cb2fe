"""
Voice Domain Scorer

Scores a sustained-phonation task from periodically refreshed audio frames:
- Noise-floor calibration (mean of the quietest 10% of calibration frames)
- Volume (RMS -> dB), pitch (zero-crossing or autocorrelation)
- Loudness stability (coefficient of variation over the last 100 frames)
- Perturbation: jitter, shimmer, harmonics-to-noise ratio on voiced frames
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import numpy as np

from neurosynapse.core.errors import InvalidConfigError
from neurosynapse.core.signal.buffer import Sample, SampleBuffer
from neurosynapse.core.signal import statistics as stats
from neurosynapse.core.signal.frequency import (
    BandPolicy,
    FrequencyBand,
    autocorrelation_frequency,
    hnr_db,
    jitter_percent,
    shimmer_db,
    zero_crossing_frequency,
)
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

PITCH_METHODS = ("zero_crossing", "autocorrelation")


@dataclass
class VoiceConfig(ScorerConfig):
    """Voice test configuration."""
    sample_rate: float = 44100.0
    calibration_s: float = 3.0
    min_calibration_frames: int = 10
    rolling_frames: int = 100
    pitch_band: Tuple[float, float] = (80.0, 400.0)
    pitch_method: str = "zero_crossing"
    silent_db: float = -50.0
    quiet_db: float = -40.0
    loud_db: float = -20.0
    unstable_below: float = 70.0

    settings_fields = {
        "max_duration_s": "voice_test_duration_s",
        "sample_rate": "voice_sample_rate",
        "calibration_s": "voice_calibration_s",
        "min_calibration_frames": "voice_min_calibration_frames",
        "rolling_frames": "voice_rolling_frames",
        "pitch_band": "voice_pitch_band",
        "silent_db": "voice_silent_db",
        "quiet_db": "voice_quiet_db",
        "loud_db": "voice_loud_db",
        "unstable_below": "voice_unstable_below",
    }

    def validate(self) -> None:
        super().validate()
        _require_positive("sample_rate", self.sample_rate)
        if _require_finite("calibration_s", self.calibration_s) < 0:
            raise InvalidConfigError("calibration_s must not be negative")
        if self.calibration_s >= self.max_duration_s:
            raise InvalidConfigError("calibration_s must be shorter than max_duration_s")
        _require_positive("min_calibration_frames", self.min_calibration_frames)
        _require_positive("rolling_frames", self.rolling_frames)
        _require_band("pitch_band", self.pitch_band)
        if self.pitch_method not in PITCH_METHODS:
            raise InvalidConfigError(f"pitch_method must be one of {PITCH_METHODS}")
        for name in ("silent_db", "quiet_db", "loud_db"):
            _require_finite(name, getattr(self, name))
        if not self.silent_db <= self.quiet_db < self.loud_db:
            raise InvalidConfigError("dB thresholds must satisfy silent_db <= quiet_db < loud_db")
        _require_finite("unstable_below", self.unstable_below)


class VoiceScorer(DomainScorer):
    """
    Sustained-phonation scorer.

    Frames inside the calibration period only contribute to the noise-floor
    baseline; every later frame is scored.
    """

    domain = Domain.VOICE
    config_class = VoiceConfig

    def __init__(self, config: Optional[VoiceConfig] = None):
        super().__init__(config)
        low, high = self.config.pitch_band
        self.pitch_band = FrequencyBand(float(low), float(high), BandPolicy.ZERO)

        self._calibration_db: List[float] = []
        self._baseline_db: Optional[float] = None
        self._volume = SampleBuffer(max_count=int(self.config.rolling_frames))

        self._voiced_pitch: List[float] = []
        self._jitter: List[float] = []
        self._shimmer: List[float] = []
        self._hnr: List[float] = []
        self.last_frame: Dict[str, float] = {}

    @property
    def is_calibrated(self) -> bool:
        return self._baseline_db is not None

    def _ingest(self, sample: Sample) -> None:
        frame = np.asarray(sample.value, dtype=float).ravel()
        db = stats.volume_db(frame)
        offset_ms = sample.timestamp_ms - self._start_ms

        if not self.is_calibrated:
            if offset_ms < self.config.calibration_s * 1000.0:
                self._calibration_db.append(db)
                return
            self._baseline_db = self._baseline(current_db=db)
            logger.info(
                f"Voice calibration complete: baseline={self._baseline_db:.2f} dB "
                f"from {len(self._calibration_db)} frames"
            )

        pitch = self.estimate_pitch(frame)
        self._volume.push(Sample(sample.timestamp_ms, db))

        if pitch > 0:
            sr = self.config.sample_rate
            low, high = self.config.pitch_band
            self._voiced_pitch.append(pitch)
            self._jitter.append(jitter_percent(frame, sr))
            self._shimmer.append(shimmer_db(frame, sr))
            self._hnr.append(hnr_db(frame, sr, low, high))

        stability = stats.coefficient_of_variation_stability(self._volume.values())
        self.last_frame = {"volume_db": db, "pitch_hz": pitch, "stability": stability}
        logger.debug(f"voice frame: {db:.2f} dB, {pitch:.1f} Hz, stability {stability:.1f}%")

    def estimate_pitch(self, frame: np.ndarray) -> float:
        """Pitch of one frame in Hz, 0.0 when outside the voice band."""
        sr = self.config.sample_rate
        if self.config.pitch_method == "autocorrelation":
            low, high = self.config.pitch_band
            raw = autocorrelation_frequency(frame, sr, low, high)
        else:
            raw = zero_crossing_frequency(frame, sr, reference="zero")
        return self.pitch_band.apply(raw)

    def _baseline(self, current_db: Optional[float]) -> float:
        """Noise floor: mean of the lowest 10% of calibration frames."""
        samples = sorted(self._calibration_db)
        if len(samples) < self.config.min_calibration_frames:
            if current_db is not None:
                return float(current_db)
            if samples:
                return float(samples[-1])
            return stats.rms_to_db(0.0)

        k = max(1, int(len(samples) * 0.1))
        return float(np.mean(samples[:k]))

    def compute_metrics(self) -> MetricSet:
        metric_set = self._create_metric_set()
        volumes = self._volume.values()

        if volumes.size == 0:
            # Test ended inside calibration: report what the calibration heard
            volume_db = stats.mean(self._calibration_db) if self._calibration_db else stats.rms_to_db(0.0)
            baseline = self._baseline(current_db=None)
        else:
            volume_db = stats.mean(volumes)
            baseline = self._baseline_db

        stability = stats.coefficient_of_variation_stability(volumes)
        pitch = float(np.median(self._voiced_pitch)) if self._voiced_pitch else 0.0
        low, high = self.config.pitch_band

        self._add_metric(metric_set, "volume_db", volume_db, "dB",
                         normal_range=(self.config.quiet_db, self.config.loud_db),
                         description="Mean RMS volume over the rolling window")
        self._add_metric(metric_set, "pitch_hz", pitch, "Hz",
                         normal_range=(low, high),
                         description="Median pitch of voiced frames")
        self._add_metric(metric_set, "stability", stability, "percent",
                         normal_range=(self.config.unstable_below, 100.0),
                         description="Loudness stability (100 - CV%)")
        self._add_metric(metric_set, "baseline_db", baseline, "dB",
                         description="Calibrated noise floor")
        self._add_metric(metric_set, "jitter_percent", stats.mean(self._jitter), "percent",
                         normal_range=(0.0, 1.5),
                         description="Cycle-to-cycle period perturbation")
        self._add_metric(metric_set, "shimmer_db", stats.mean(self._shimmer), "dB",
                         description="Cycle-to-cycle amplitude perturbation")
        self._add_metric(metric_set, "hnr_db", stats.mean(self._hnr), "dB",
                         description="Harmonics-to-noise ratio")
        self._add_metric(metric_set, "voiced_frames", len(self._voiced_pitch), "count")

        metric_set.metadata["calibration_frames"] = len(self._calibration_db)
        metric_set.metadata["insufficient_data"] = volumes.size < 2
        return metric_set

    def classify(self, metrics: MetricSet) -> str:
        return classify_voice(
            metrics.value("volume_db"),
            metrics.value("stability", 100.0),
            self.config,
        )

    def severity(self, status: str, metrics: MetricSet) -> Severity:
        return VOICE_SEVERITY[status]

    def radar_value(self, status: str, metrics: MetricSet) -> float:
        if status == "silent":
            return 0.0
        return metrics.value("stability") / 100.0


VOICE_SEVERITY = {
    "normal": Severity.NORMAL,
    "loud": Severity.NORMAL,
    "quiet": Severity.MILD,
    "unstable": Severity.MODERATE,
    "silent": Severity.SEVERE,
}


def classify_voice(volume_db: float, stability: float, config: Optional[VoiceConfig] = None) -> str:
    """Voice status; ordered rules, first match wins."""
    config = config or VoiceConfig()
    if volume_db < config.silent_db:
        return "silent"
    if stability < config.unstable_below:
        return "unstable"
    if volume_db > config.loud_db:
        return "loud"
    if volume_db < config.quiet_db:
        return "quiet"
    return "normal"
