"""
Statistical Summary

Pure numeric primitives shared by every domain scorer. All functions
accept any numeric sequence and never raise on degenerate input.
"""
from typing import Sequence, Union
import numpy as np

DB_EPSILON = 1e-6

Series = Union[Sequence[float], np.ndarray]


def _as_array(series: Series) -> np.ndarray:
    arr = np.asarray(series, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def mean(series: Series) -> float:
    """Arithmetic mean (0.0 for empty input)."""
    arr = _as_array(series)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def variance(series: Series) -> float:
    """Population variance (divisor N); 0.0 for fewer than 2 samples."""
    arr = _as_array(series)
    if arr.size < 2:
        return 0.0
    return float(np.var(arr))


def stddev(series: Series) -> float:
    """Population standard deviation."""
    return float(np.sqrt(variance(series)))


def rms(series: Series) -> float:
    """Root-mean-square of a signal (0.0 for empty input)."""
    arr = _as_array(series)
    if arr.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(arr ** 2)))


def rms_to_db(value: float) -> float:
    """Convert an RMS amplitude to dB; epsilon keeps silence finite."""
    return float(20.0 * np.log10(max(value, 0.0) + DB_EPSILON))


def volume_db(frame: Series) -> float:
    """Volume of an audio frame in dB (RMS based)."""
    return rms_to_db(rms(frame))


def coefficient_of_variation_stability(series: Series) -> float:
    """
    Stability percentage from the coefficient of variation.

    stability = max(0, 100 - 100 * stddev / |mean|). Fewer than 2 samples
    are perfectly stable (100). A zero mean with any spread is 0.
    """
    arr = _as_array(series)
    if arr.size < 2:
        return 100.0

    sd = float(np.std(arr))
    mu = abs(float(np.mean(arr)))
    if sd == 0.0:
        return 100.0
    if mu == 0.0:
        return 0.0

    cv = sd / mu * 100.0
    return float(max(0.0, 100.0 - cv))


def coefficient_of_variation_percent(series: Series) -> float:
    """CV in percent (0.0 for fewer than 2 samples or zero mean)."""
    arr = _as_array(series)
    if arr.size < 2:
        return 0.0
    mu = abs(float(np.mean(arr)))
    if mu == 0.0:
        return 0.0
    return float(np.std(arr) / mu * 100.0)


def clamp(value: float, low: float, high: float) -> float:
    return float(min(high, max(low, value)))
