"""Online noise and sampling statistics."""

from .statistics import RunningStatistics
from .accumulated import (
    AccumulatedMeasurementNoiseEstimator,
    AccumulatedTriadNoiseEstimator,
)
from .windowed import (
    SampleWindow,
    WindowedMeasurementNoiseEstimator,
    WindowedTriadNoiseEstimator,
)
from .time_interval import TimeIntervalEstimator

__all__ = [
    "RunningStatistics",
    "AccumulatedMeasurementNoiseEstimator",
    "AccumulatedTriadNoiseEstimator",
    "SampleWindow",
    "WindowedMeasurementNoiseEstimator",
    "WindowedTriadNoiseEstimator",
    "TimeIntervalEstimator",
]
