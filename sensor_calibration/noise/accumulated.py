"""Noise estimators accumulating every sample since their last reset.

Used to measure the noise of an IMU kept static: the average is the
sensor bias plus gravity/field, while the variance gives the white noise
power spectral density (PSD = variance * time_interval).
"""

from typing import Optional, Union
import numpy as np
from numpy.typing import NDArray

from ..core.errors import ConfigurationError
from ..core.types import Triad, triad_values
from ..core.units import Unit
from .statistics import RunningStatistics

DEFAULT_TIME_INTERVAL = 0.02  # seconds


def check_time_interval(time_interval: float) -> float:
    if not time_interval > 0.0:
        raise ConfigurationError(f"time_interval must be > 0, got {time_interval}")
    return float(time_interval)


class AccumulatedMeasurementNoiseEstimator:
    """Accumulated noise estimator for a scalar measurement."""

    def __init__(self, time_interval: float = DEFAULT_TIME_INTERVAL):
        self._time_interval = check_time_interval(time_interval)
        self._stats = RunningStatistics(1)

    @property
    def time_interval(self) -> float:
        """Time between consecutive samples in seconds."""
        return self._time_interval

    @time_interval.setter
    def time_interval(self, value: float) -> None:
        self._time_interval = check_time_interval(value)

    @property
    def num_samples(self) -> int:
        return self._stats.count

    @property
    def last_value(self) -> Optional[float]:
        last = self._stats.last
        return None if last is None else float(last[0])

    @property
    def avg(self) -> float:
        return float(self._stats.mean[0])

    @property
    def variance(self) -> float:
        return float(self._stats.variance[0])

    @property
    def standard_deviation(self) -> float:
        return float(np.sqrt(self.variance))

    @property
    def psd(self) -> float:
        """Noise power spectral density (variance * time_interval)."""
        return self.variance * self._time_interval

    @property
    def root_psd(self) -> float:
        return float(np.sqrt(self.psd))

    def add(self, value: float) -> None:
        self._stats.add(value)

    def reset(self) -> bool:
        """Clear accumulated samples, returning False if already empty."""
        return self._stats.reset()


class AccumulatedTriadNoiseEstimator:
    """Accumulated noise estimator for three-axis measurements.

    Triads added in another unit of the same quantity are converted into
    the estimator's unit first.
    """

    def __init__(self, unit: Unit, time_interval: float = DEFAULT_TIME_INTERVAL):
        """Initialize estimator.

        Args:
            unit: Unit in which statistics are kept and reported.
            time_interval: Time between consecutive samples in seconds.

        Raises:
            ConfigurationError: If time_interval is not positive.
        """
        self._unit = unit
        self._time_interval = check_time_interval(time_interval)
        self._stats = RunningStatistics(3)

    @property
    def unit(self) -> Unit:
        return self._unit

    @property
    def time_interval(self) -> float:
        """Time between consecutive samples in seconds."""
        return self._time_interval

    @time_interval.setter
    def time_interval(self, value: float) -> None:
        self._time_interval = check_time_interval(value)

    @property
    def num_samples(self) -> int:
        return self._stats.count

    @property
    def last_triad(self) -> Optional[Triad]:
        """Last triad added, None when empty."""
        last = self._stats.last
        return None if last is None else Triad.from_array(last, self._unit)

    @property
    def avg(self) -> Triad:
        return Triad.from_array(self._stats.mean, self._unit)

    @property
    def avg_norm(self) -> float:
        return float(np.linalg.norm(self._stats.mean))

    @property
    def variance(self) -> NDArray[np.float64]:
        """Per-axis population variance."""
        return self._stats.variance

    @property
    def standard_deviation(self) -> Triad:
        return Triad.from_array(self._stats.standard_deviation, self._unit)

    @property
    def standard_deviation_norm(self) -> float:
        """Norm of the per-axis standard deviations."""
        return float(np.sqrt(np.sum(self._stats.variance)))

    @property
    def average_standard_deviation(self) -> float:
        """Mean of the per-axis standard deviations."""
        return float(np.mean(self._stats.standard_deviation))

    @property
    def psd(self) -> NDArray[np.float64]:
        """Per-axis noise PSD (variance * time_interval)."""
        return self._stats.variance * self._time_interval

    @property
    def root_psd(self) -> NDArray[np.float64]:
        return np.sqrt(self.psd)

    @property
    def avg_noise_psd(self) -> float:
        """Mean of the per-axis PSDs."""
        return float(np.mean(self.psd))

    @property
    def noise_root_psd_norm(self) -> float:
        """Square root of the summed per-axis PSDs."""
        return float(np.sqrt(np.sum(self.psd)))

    def add(self, x: Union[Triad, float], y: Optional[float] = None,
            z: Optional[float] = None) -> None:
        """Add a triad, or its three components in the estimator's unit."""
        self._stats.add(triad_values(x, y, z, self._unit))

    def reset(self) -> bool:
        """Clear accumulated samples, returning False if already empty."""
        return self._stats.reset()

