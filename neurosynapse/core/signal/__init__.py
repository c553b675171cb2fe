"""
Signal Primitives

Windowing, statistics, frequency estimation and event detection shared by
all domain scorers.
"""
from .buffer import Sample, SampleBuffer
from .frequency import (
    BandPolicy,
    FrequencyBand,
    zero_crossing_frequency,
    autocorrelation_frequency,
)
from .peaks import PeakDetector, PeakEvent, count_falling_crossings
from . import statistics

__all__ = [
    "Sample",
    "SampleBuffer",
    "BandPolicy",
    "FrequencyBand",
    "zero_crossing_frequency",
    "autocorrelation_frequency",
    "PeakDetector",
    "PeakEvent",
    "count_falling_crossings",
    "statistics",
]
