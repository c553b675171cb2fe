"""
Base Scorer Classes

Provides the abstract base class, configuration base and data structures
shared by all domain scorers.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, Any, List, Optional, Tuple, ClassVar
from enum import Enum
import math
import numpy as np

from neurosynapse.config import Settings, get_settings
from neurosynapse.core.errors import InvalidConfigError, OutOfOrderSampleError
from neurosynapse.core.signal.buffer import Sample
from neurosynapse.utils import get_logger

logger = get_logger(__name__)

MAX_TEST_DURATION_S = 600.0


class Domain(str, Enum):
    """Screening domains (one test modality each)."""
    VOICE = "voice"
    TREMOR = "tremor"
    GAIT = "gait"
    FACIAL = "facial"
    SPIRAL = "spiral"
    TAPPING = "tapping"
    QUESTIONNAIRE = "questionnaire"

    @classmethod
    def from_string(cls, name: str) -> "Domain":
        """Parse domain name string to enum with common aliases."""
        name_lower = name.lower().strip().replace(" ", "_")

        mapping = {
            "voice": cls.VOICE,
            "speech": cls.VOICE,
            "audio": cls.VOICE,
            "tremor": cls.TREMOR,
            "motion": cls.TREMOR,
            "gait": cls.GAIT,
            "walking": cls.GAIT,
            "facial": cls.FACIAL,
            "face": cls.FACIAL,
            "blink": cls.FACIAL,
            "spiral": cls.SPIRAL,
            "handwriting": cls.SPIRAL,
            "drawing": cls.SPIRAL,
            "tapping": cls.TAPPING,
            "tap": cls.TAPPING,
            "finger_tapping": cls.TAPPING,
            "motor_speed": cls.TAPPING,
            "questionnaire": cls.QUESTIONNAIRE,
            "questions": cls.QUESTIONNAIRE,
        }

        if name_lower in mapping:
            return mapping[name_lower]

        try:
            return cls(name_lower)
        except ValueError:
            raise ValueError(f"Unknown domain: {name}")


class Severity(str, Enum):
    """Ordinal severity classification."""
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def ordinal(self) -> int:
        return _SEVERITY_ORDER.index(self)

    @classmethod
    def from_ordinal(cls, value: float) -> "Severity":
        """Map a 0-4 score onto the ordinal set (3 and above is severe)."""
        idx = int(np.clip(round(value), 0, len(_SEVERITY_ORDER) - 1))
        return _SEVERITY_ORDER[idx]


_SEVERITY_ORDER = [Severity.NORMAL, Severity.MILD, Severity.MODERATE, Severity.SEVERE]


@dataclass
class Metric:
    """Single scalar metric."""
    name: str
    value: float
    unit: str
    normal_range: Optional[tuple] = None
    description: str = ""

    def is_abnormal(self) -> Optional[bool]:
        """Check if value is outside normal range."""
        if self.normal_range is None:
            return None
        low, high = self.normal_range
        return bool(self.value < low or self.value > high)

    @property
    def status(self) -> str:
        if self.normal_range is None:
            return "not_assessed"
        if self.is_abnormal():
            return "low" if self.value < self.normal_range[0] else "high"
        return "normal"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (native Python types for JSON safety)."""
        abnormal = self.is_abnormal()
        return {
            "name": self.name,
            "value": float(self.value),
            "unit": self.unit,
            "normal_range": [float(x) for x in self.normal_range] if self.normal_range else None,
            "is_abnormal": bool(abnormal) if abnormal is not None else None,
            "status": self.status,
            "description": self.description,
        }


@dataclass
class MetricSet:
    """Collection of metrics for one domain."""
    domain: Domain
    metrics: List[Metric] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    _frozen: bool = field(default=False, repr=False, compare=False)

    def add(self, metric: Metric) -> None:
        """Add a metric to the set."""
        if self._frozen:
            raise RuntimeError(f"MetricSet for {self.domain.value} is finalized")
        self.metrics.append(metric)

    def get(self, name: str) -> Optional[Metric]:
        for m in self.metrics:
            if m.name == name:
                return m
        return None

    def value(self, name: str, default: float = 0.0) -> float:
        """Value of a metric, or default when absent."""
        m = self.get(name)
        return m.value if m is not None else default

    def freeze(self) -> "MetricSet":
        self._frozen = True
        return self

    def as_mapping(self) -> Dict[str, float]:
        return {m.name: m.value for m in self.metrics}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain.value,
            "metrics": [m.to_dict() for m in self.metrics],
            "metadata": self.metadata,
        }

    def __len__(self) -> int:
        return len(self.metrics)


@dataclass(frozen=True)
class DomainScore:
    """Finalized per-domain result handed to the aggregator."""
    domain: Domain
    metrics: MetricSet
    status: str
    severity: Severity
    score: float              # 0-4 ordinal scale
    radar: float              # 0-1, 1 = unimpaired
    insufficient_data: bool = False
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain.value,
            "status": self.status,
            "severity": self.severity.value,
            "score": round(float(self.score), 3),
            "radar": round(float(self.radar), 4),
            "insufficient_data": self.insufficient_data,
            "warnings": list(self.warnings),
            "metrics": self.metrics.as_mapping(),
            "metric_details": self.metrics.to_dict()["metrics"],
        }


# =========================================================================
# CONFIGURATION
# =========================================================================

@dataclass
class ScorerConfig:
    """
    Base configuration for a domain test.

    Subclasses list the Settings attribute each field defaults from in
    settings_fields, so every threshold stays a named, overridable value.
    """
    max_duration_s: float = 10.0

    settings_fields: ClassVar[Dict[str, str]] = {}

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides: Any) -> "ScorerConfig":
        """Build a config from settings defaults plus per-session overrides."""
        settings = settings or get_settings()
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise InvalidConfigError(f"Unknown {cls.__name__} fields: {sorted(unknown)}")

        values = {name: getattr(settings, attr) for name, attr in cls.settings_fields.items()}
        values.update(overrides)
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise InvalidConfigError when any value is outside its valid range."""
        _require_range("max_duration_s", self.max_duration_s, 0.0, MAX_TEST_DURATION_S, low_inclusive=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _require_finite(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidConfigError(f"{name} must be finite, got {value!r}")
    return number


def _require_positive(name: str, value: Any) -> None:
    if _require_finite(name, value) <= 0:
        raise InvalidConfigError(f"{name} must be positive, got {value!r}")


def _require_range(
    name: str,
    value: Any,
    low: float,
    high: float,
    low_inclusive: bool = True
) -> None:
    number = _require_finite(name, value)
    below = number < low if low_inclusive else number <= low
    if below or number > high:
        raise InvalidConfigError(f"{name}={value!r} outside valid range ({low}, {high}]")


def _require_band(name: str, band: Any) -> None:
    try:
        low, high = band
    except (TypeError, ValueError):
        raise InvalidConfigError(f"{name} must be a (low, high) pair, got {band!r}")
    _require_positive(f"{name}[0]", low)
    _require_positive(f"{name}[1]", high)
    if float(low) >= float(high):
        raise InvalidConfigError(f"{name} must satisfy low < high, got {band!r}")


# =========================================================================
# SCORER
# =========================================================================

class DomainScorer(ABC):
    """
    Abstract base class for all domain scorers.

    A scorer exclusively owns the window and derived statistics for its
    modality while a test is active. Samples are fed through ingest(); the
    live or final result is read through score().
    """

    domain: Domain
    config_class: type = ScorerConfig

    def __init__(self, config: Optional[ScorerConfig] = None):
        self.config = config if config is not None else self.config_class.from_settings()
        self.config.validate()
        self._start_ms: Optional[float] = None
        self._last_ms: Optional[float] = None
        self._sample_count = 0
        self._warnings: List[str] = []
        logger.info(f"{self.__class__.__name__} initialized for {self.domain.value}")

    # ---- stream handling ----

    def start(self, start_ms: float) -> None:
        """Anchor elapsed time (defaults to the first sample's timestamp)."""
        if self._start_ms is None:
            self._start_ms = float(start_ms)

    def ingest(self, sample: Sample) -> None:
        """Feed one raw sample. Raises OutOfOrderSampleError without changing state."""
        if self._last_ms is not None and sample.timestamp_ms < self._last_ms:
            raise OutOfOrderSampleError(sample.timestamp_ms, self._last_ms)

        self.start(sample.timestamp_ms)
        self._ingest(sample)
        self._last_ms = float(sample.timestamp_ms)
        self._sample_count += 1

    @property
    def elapsed_s(self) -> float:
        if self._start_ms is None or self._last_ms is None:
            return 0.0
        return max(0.0, (self._last_ms - self._start_ms) / 1000.0)

    @property
    def sample_count(self) -> int:
        return self._sample_count

    # ---- scoring ----

    @abstractmethod
    def _ingest(self, sample: Sample) -> None:
        """Domain-specific handling of one sample."""
        pass

    @abstractmethod
    def compute_metrics(self) -> MetricSet:
        """Compute the current MetricSet from everything ingested so far."""
        pass

    @abstractmethod
    def classify(self, metrics: MetricSet) -> str:
        """Map a MetricSet to the domain's status label."""
        pass

    @abstractmethod
    def severity(self, status: str, metrics: MetricSet) -> Severity:
        pass

    @abstractmethod
    def radar_value(self, status: str, metrics: MetricSet) -> float:
        """Normalize the MetricSet to [0, 1], 1 meaning unimpaired."""
        pass

    def ordinal_score(self, severity: Severity, metrics: MetricSet) -> float:
        """Score on the 0-4 aggregation scale (severity ordinal by default)."""
        return float(severity.ordinal)

    def is_insufficient(self, metrics: MetricSet) -> bool:
        return bool(metrics.metadata.get("insufficient_data", False))

    def score(self) -> DomainScore:
        """Build a DomainScore from the current state."""
        metrics = self.compute_metrics()
        status = self.classify(metrics)
        severity = self.severity(status, metrics)
        radar = float(np.clip(self.radar_value(status, metrics), 0.0, 1.0))
        insufficient = self.is_insufficient(metrics)

        warnings = list(self._warnings)
        if insufficient:
            warnings.append(f"Insufficient {self.domain.value} data: {self._sample_count} samples")

        metrics.metadata.setdefault("sample_count", self._sample_count)
        metrics.metadata.setdefault("elapsed_s", round(self.elapsed_s, 3))
        metrics.freeze()

        return DomainScore(
            domain=self.domain,
            metrics=metrics,
            status=status,
            severity=severity,
            score=float(np.clip(self.ordinal_score(severity, metrics), 0.0, 4.0)),
            radar=radar,
            insufficient_data=insufficient,
            warnings=tuple(warnings),
        )

    # ---- helpers ----

    def _create_metric_set(self) -> MetricSet:
        return MetricSet(domain=self.domain)

    def _add_metric(
        self,
        metric_set: MetricSet,
        name: str,
        value: float,
        unit: str,
        normal_range: Optional[tuple] = None,
        description: str = ""
    ) -> None:
        """Helper to add a metric, coercing numpy types and non-finite values."""
        value = float(value)
        if not math.isfinite(value):
            logger.warning(f"{self.domain.value}: non-finite {name}={value}, reporting 0.0")
            value = 0.0

        metric_set.add(Metric(
            name=name,
            value=value,
            unit=unit,
            normal_range=tuple(float(x) for x in normal_range) if normal_range else None,
            description=description
        ))
