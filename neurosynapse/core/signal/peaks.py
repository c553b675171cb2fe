"""
Peak / Event Detection

Counts step, blink and cycle events as falling-through-threshold
transitions. Each channel (e.g. left/right foot) keeps its own last value,
so independent channels never contaminate each other.
"""
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional
import numpy as np

from .statistics import Series


@dataclass(frozen=True)
class PeakEvent:
    """One detected event."""
    channel: Hashable
    timestamp_ms: float
    value: float


class PeakDetector:
    """
    Streaming multi-channel falling-crossing detector.

    An event fires when the previous value was above the threshold and the
    current value is at/below it (strict_below: previous >= threshold and
    current < threshold). A noisy plateau below the threshold never fires
    twice because the previous value must be above it first.
    """

    def __init__(
        self,
        threshold: float,
        relative_to_mean: bool = False,
        strict_below: bool = False,
        refractory_ms: float = 0.0
    ):
        """
        Args:
            threshold: Absolute threshold, or offset from the running channel
                mean when relative_to_mean is set
            relative_to_mean: Interpret threshold relative to the running mean
            strict_below: Use the >= / < transition instead of > / <=
            refractory_ms: Minimum gap between two events on one channel
        """
        self.threshold = float(threshold)
        self.relative_to_mean = relative_to_mean
        self.strict_below = strict_below
        self.refractory_ms = float(refractory_ms)

        self._last_value: Dict[Hashable, float] = {}
        self._sum: Dict[Hashable, float] = {}
        self._n: Dict[Hashable, int] = {}
        self._events: List[PeakEvent] = []

    def _effective_threshold(self, channel: Hashable) -> float:
        if not self.relative_to_mean or not self._n.get(channel):
            return self.threshold
        return self._sum[channel] / self._n[channel] + self.threshold

    def _crossed(self, last: float, current: float, threshold: float) -> bool:
        if self.strict_below:
            return last >= threshold and current < threshold
        return last > threshold and current <= threshold

    def update(self, channel: Hashable, value: float, timestamp_ms: float) -> bool:
        """
        Feed one value for a channel.

        Returns:
            True if this value completed an event
        """
        value = float(value)
        fired = False
        last = self._last_value.get(channel)

        if last is not None and np.isfinite(value):
            threshold = self._effective_threshold(channel)
            if self._crossed(last, value, threshold):
                last_event = self.last_event(channel)
                if last_event is None or timestamp_ms - last_event.timestamp_ms >= self.refractory_ms:
                    self._events.append(PeakEvent(channel, timestamp_ms, value))
                    fired = True

        if np.isfinite(value):
            self._last_value[channel] = value
            self._sum[channel] = self._sum.get(channel, 0.0) + value
            self._n[channel] = self._n.get(channel, 0) + 1

        return fired

    def last_event(self, channel: Hashable) -> Optional[PeakEvent]:
        for event in reversed(self._events):
            if event.channel == channel:
                return event
        return None

    @property
    def events(self) -> List[PeakEvent]:
        return list(self._events)

    def count(self, channel: Optional[Hashable] = None) -> int:
        """Event count for one channel, or all channels when channel is None."""
        if channel is None:
            return len(self._events)
        return sum(1 for e in self._events if e.channel == channel)

    def event_times(self, channel: Optional[Hashable] = None) -> np.ndarray:
        return np.array([
            e.timestamp_ms for e in self._events
            if channel is None or e.channel == channel
        ], dtype=float)

    def rate_per_minute(self, elapsed_s: float, channel: Optional[Hashable] = None) -> float:
        """Events per minute over the elapsed time (0.0 when nothing elapsed)."""
        if elapsed_s <= 0:
            return 0.0
        return float(self.count(channel) / elapsed_s * 60.0)

    def reset(self) -> None:
        self._last_value.clear()
        self._sum.clear()
        self._n.clear()
        self._events.clear()


def count_falling_crossings(series: Series, threshold: float, strict_below: bool = False) -> int:
    """Batch count of falling-through-threshold transitions in a series."""
    arr = np.asarray(series, dtype=float).ravel()
    if arr.size < 2:
        return 0
    prev, cur = arr[:-1], arr[1:]
    if strict_below:
        hits = (prev >= threshold) & (cur < threshold)
    else:
        hits = (prev > threshold) & (cur <= threshold)
    return int(np.count_nonzero(hits))
