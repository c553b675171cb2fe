"""
Frequency Estimation

Dominant-frequency estimators for windowed signals:
- Zero-crossing rate (tremor and pitch, cheap, frame-by-frame)
- Normalized autocorrelation (pitch, more robust to harmonics)

Also provides the per-domain band policy and the cycle-level voice
perturbation measures (jitter, shimmer, harmonics-to-noise ratio).

References:
- Boersma (1993): Autocorrelation pitch and HNR estimation
- Teixeira et al. (2013): Jitter/shimmer measurement for voice pathology
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import numpy as np
from scipy import signal

from .statistics import Series, DB_EPSILON


class BandPolicy(str, Enum):
    """What to do with an estimate that falls outside the plausible band."""
    ZERO = "zero"      # Discard (voice pitch)
    CLAMP = "clamp"    # Clamp to band edges (tremor)


@dataclass(frozen=True)
class FrequencyBand:
    """Physiologically plausible frequency band for one domain."""
    low_hz: float
    high_hz: float
    policy: BandPolicy = BandPolicy.ZERO

    def apply(self, frequency_hz: float) -> float:
        """Apply the band policy. A zero estimate (no oscillation) stays zero."""
        if frequency_hz <= 0.0:
            return 0.0
        if self.low_hz <= frequency_hz <= self.high_hz:
            return float(frequency_hz)
        if self.policy == BandPolicy.ZERO:
            return 0.0
        return float(min(self.high_hz, max(self.low_hz, frequency_hz)))


def _as_array(series: Series) -> np.ndarray:
    return np.asarray(series, dtype=float).ravel()


# =========================================================================
# ZERO-CROSSING RATE
# =========================================================================

def count_crossings(series: Series, reference: float = 0.0) -> int:
    """
    Count sign changes of (series - reference).

    A crossing is a move from strictly below the reference to at/above it,
    or from strictly above to at/below it, so a sample sitting exactly on
    the reference is never counted twice.
    """
    arr = _as_array(series)
    if arr.size < 2:
        return 0

    shifted = arr - reference
    prev, cur = shifted[:-1], shifted[1:]
    rising = (prev < 0) & (cur >= 0)
    falling = (prev > 0) & (cur <= 0)
    return int(np.count_nonzero(rising | falling))


def zero_crossing_frequency(
    series: Series,
    sample_rate: float,
    reference: str = "zero"
) -> float:
    """
    Estimate dominant frequency from the zero-crossing rate.

    frequency = crossings / (2 * duration_s), duration_s = N / sample_rate.

    Args:
        series: Windowed signal
        sample_rate: Sampling rate in Hz
        reference: "zero" or "mean" (crossings about the series mean)

    Returns:
        Frequency in Hz; 0.0 for a flat or too-short signal. Non-finite
        values are dropped before counting.
    """
    arr = _as_array(series)
    arr = arr[np.isfinite(arr)]
    if arr.size < 2 or sample_rate <= 0:
        return 0.0

    ref = float(np.mean(arr)) if reference == "mean" else 0.0
    crossings = count_crossings(arr, ref)
    duration_s = arr.size / sample_rate
    return float(crossings / (2.0 * duration_s))


# =========================================================================
# AUTOCORRELATION
# =========================================================================

def normalized_autocorrelation(series: Series) -> np.ndarray:
    """Biased autocorrelation of the mean-removed signal, 1.0 at lag 0."""
    arr = _as_array(series)
    if arr.size < 2:
        return np.zeros(arr.size)

    centered = arr - np.mean(arr)
    ac = signal.correlate(centered, centered, mode="full")[arr.size - 1:]
    if ac[0] <= 0:
        return np.zeros(arr.size)
    return ac / ac[0]


def _best_lag(ac: np.ndarray, sample_rate: float, min_hz: float, max_hz: float) -> Optional[int]:
    """Lag of the highest local maximum inside the [min_hz, max_hz] lag range."""
    if ac.size < 3 or min_hz <= 0 or max_hz <= min_hz:
        return None

    min_lag = max(1, int(np.floor(sample_rate / max_hz)))
    max_lag = min(ac.size - 2, int(np.ceil(sample_rate / min_hz)))
    if min_lag >= max_lag:
        return None

    lags = np.arange(min_lag, max_lag + 1)
    is_peak = (ac[lags] > ac[lags - 1]) & (ac[lags] >= ac[lags + 1])
    candidates = lags[is_peak]
    if candidates.size == 0:
        return None

    best = int(candidates[np.argmax(ac[candidates])])
    if ac[best] <= 0:
        return None
    return best


def autocorrelation_frequency(
    series: Series,
    sample_rate: float,
    min_hz: float,
    max_hz: float
) -> float:
    """
    Estimate dominant frequency from the autocorrelation peak.

    Searches the lag range corresponding to [min_hz, max_hz] and refines
    the peak lag with parabolic interpolation.

    Returns:
        Frequency in Hz; 0.0 when no periodicity is found
    """
    if sample_rate <= 0:
        return 0.0

    ac = normalized_autocorrelation(series)
    lag = _best_lag(ac, sample_rate, min_hz, max_hz)
    if lag is None:
        return 0.0

    a, b, c = ac[lag - 1], ac[lag], ac[lag + 1]
    denom = a - 2 * b + c
    shift = 0.5 * (a - c) / denom if denom != 0 else 0.0
    refined = lag + float(np.clip(shift, -0.5, 0.5))
    return float(sample_rate / refined)


# =========================================================================
# VOICE PERTURBATION (jitter / shimmer / HNR)
# =========================================================================

def cycle_boundaries(series: Series, sample_rate: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Upward zero crossings of the mean-removed signal.

    Returns:
        Tuple of (interpolated crossing times in seconds, integer sample indices)
    """
    arr = _as_array(series)
    if arr.size < 2 or sample_rate <= 0:
        return np.array([]), np.array([], dtype=int)

    centered = arr - np.mean(arr)
    prev, cur = centered[:-1], centered[1:]
    idx = np.nonzero((prev < 0) & (cur >= 0))[0]
    if idx.size == 0:
        return np.array([]), np.array([], dtype=int)

    frac = -prev[idx] / (cur[idx] - prev[idx])
    times = (idx + frac) / sample_rate
    return times, idx + 1


def cycle_periods(series: Series, sample_rate: float) -> np.ndarray:
    """Durations (s) of consecutive glottal cycles."""
    times, _ = cycle_boundaries(series, sample_rate)
    if times.size < 2:
        return np.array([])
    return np.diff(times)


def jitter_percent(series: Series, sample_rate: float) -> float:
    """Local jitter: mean |T[i+1] - T[i]| / mean T, in percent."""
    periods = cycle_periods(series, sample_rate)
    if periods.size < 2:
        return 0.0
    mean_period = float(np.mean(periods))
    if mean_period <= 0:
        return 0.0
    return float(np.mean(np.abs(np.diff(periods))) / mean_period * 100.0)


def shimmer_db(series: Series, sample_rate: float) -> float:
    """Local shimmer in dB: mean |20*log10(A[i+1]/A[i])| of cycle peak amplitudes."""
    arr = _as_array(series)
    _, bounds = cycle_boundaries(arr, sample_rate)
    if bounds.size < 3:
        return 0.0

    centered = arr - np.mean(arr)
    amplitudes = np.array([
        np.max(np.abs(centered[start:end]))
        for start, end in zip(bounds[:-1], bounds[1:])
    ])
    amplitudes = amplitudes[amplitudes > 0]
    if amplitudes.size < 2:
        return 0.0

    ratios = amplitudes[1:] / amplitudes[:-1]
    return float(np.mean(np.abs(20.0 * np.log10(ratios))))


def hnr_db(series: Series, sample_rate: float, min_hz: float, max_hz: float) -> float:
    """
    Harmonics-to-noise ratio from the autocorrelation at the pitch lag.

    HNR = 10*log10(r / (1 - r)), with r the unbiased normalized
    autocorrelation at the fundamental period. 0.0 when unvoiced.
    """
    arr = _as_array(series)
    ac = normalized_autocorrelation(arr)
    lag = _best_lag(ac, sample_rate, min_hz, max_hz)
    if lag is None:
        return 0.0

    # Undo the (N - lag) / N taper of the biased estimate
    r = ac[lag] * arr.size / (arr.size - lag)
    r = float(np.clip(r, DB_EPSILON, 1.0 - DB_EPSILON))
    return float(10.0 * np.log10(r / (1.0 - r)))
