"""
Sample Buffer

Bounded, time-ordered window of samples with sliding-window eviction.
"""
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional, Tuple
import numpy as np

from neurosynapse.core.errors import OutOfOrderSampleError


@dataclass(frozen=True)
class Sample:
    """Single timestamped sample (scalar, vector, audio frame or mapping)."""
    timestamp_ms: float
    value: Any


class SampleBuffer:
    """
    Sliding window over a sample stream.

    Samples must arrive with non-decreasing timestamps. The oldest samples
    are evicted once the window spans more than horizon_ms or holds more
    than max_count samples, whichever is hit first.
    """

    def __init__(self, horizon_ms: Optional[float] = None, max_count: Optional[int] = None):
        """
        Args:
            horizon_ms: Keep samples no older than this relative to the newest one
            max_count: Maximum number of samples held
        """
        if horizon_ms is not None and horizon_ms <= 0:
            raise ValueError("horizon_ms must be positive")
        if max_count is not None and max_count <= 0:
            raise ValueError("max_count must be a positive integer")

        self.horizon_ms = horizon_ms
        self.max_count = max_count
        self._samples: deque = deque()

    def push(self, sample: Sample) -> None:
        """Append a sample, rejecting it if it is older than the last one."""
        if self._samples and sample.timestamp_ms < self._samples[-1].timestamp_ms:
            raise OutOfOrderSampleError(sample.timestamp_ms, self._samples[-1].timestamp_ms)

        self._samples.append(sample)
        self._evict(sample.timestamp_ms)

    def _evict(self, newest_ms: float) -> None:
        if self.horizon_ms is not None:
            cutoff = newest_ms - self.horizon_ms
            while self._samples and self._samples[0].timestamp_ms < cutoff:
                self._samples.popleft()

        if self.max_count is not None:
            while len(self._samples) > self.max_count:
                self._samples.popleft()

    def snapshot(self) -> Tuple[Sample, ...]:
        """Current ordered contents (read-only copy)."""
        return tuple(self._samples)

    def values(self) -> np.ndarray:
        """Sample values as a float array (vectors become rows)."""
        if not self._samples:
            return np.array([], dtype=float)
        return np.asarray([s.value for s in self._samples], dtype=float)

    def timestamps(self) -> np.ndarray:
        return np.asarray([s.timestamp_ms for s in self._samples], dtype=float)

    @property
    def last_timestamp_ms(self) -> Optional[float]:
        return self._samples[-1].timestamp_ms if self._samples else None

    @property
    def duration_ms(self) -> float:
        """Time spanned by the window (0 with fewer than 2 samples)."""
        if len(self._samples) < 2:
            return 0.0
        return self._samples[-1].timestamp_ms - self._samples[0].timestamp_ms

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)
