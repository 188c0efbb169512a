"""Noise estimators over a sliding window of the most recent samples.

The window is a fixed-capacity ring buffer backed by a numpy array: once
full, every new sample overwrites the oldest one. Statistics are
recomputed over exactly the samples currently held, using the sample
variance (n - 1), so they reflect the instantaneous noise level.
"""

from typing import Optional, Union
import numpy as np
from numpy.typing import NDArray

from ..core.errors import ConfigurationError
from ..core.types import Triad, triad_values
from ..core.units import Unit
from .accumulated import DEFAULT_TIME_INTERVAL, check_time_interval

DEFAULT_WINDOW_SIZE = 101
MIN_WINDOW_SIZE = 3


def _check_window_size(window_size: int) -> int:
    if window_size < MIN_WINDOW_SIZE:
        raise ConfigurationError(
            f"window_size must be >= {MIN_WINDOW_SIZE}, got {window_size}"
        )
    return int(window_size)


class SampleWindow:
    """Ring buffer holding the last ``window_size`` vector samples."""

    def __init__(self, window_size: int, dimension: int):
        self._buffer = np.zeros((window_size, dimension), dtype=np.float64)
        self._head = 0  # index of the oldest sample
        self._length = 0

    @property
    def capacity(self) -> int:
        return self._buffer.shape[0]

    def __len__(self) -> int:
        return self._length

    @property
    def is_full(self) -> bool:
        return self._length == self.capacity

    def push(self, value: NDArray[np.float64]) -> None:
        """Append a sample, evicting the oldest one when full."""
        if self._length < self.capacity:
            self._buffer[(self._head + self._length) % self.capacity] = value
            self._length += 1
        else:
            self._buffer[self._head] = value
            self._head = (self._head + 1) % self.capacity

    def contents(self) -> NDArray[np.float64]:
        """Samples in insertion order, oldest first."""
        idx = (self._head + np.arange(self._length)) % self.capacity
        return self._buffer[idx]

    def first(self) -> Optional[NDArray[np.float64]]:
        if self._length == 0:
            return None
        return self._buffer[self._head].copy()

    def last(self) -> Optional[NDArray[np.float64]]:
        if self._length == 0:
            return None
        return self._buffer[(self._head + self._length - 1) % self.capacity].copy()

    def clear(self) -> None:
        self._head = 0
        self._length = 0


class _WindowedEstimator:
    """Shared window bookkeeping and statistics."""

    _dimension = 1

    def __init__(self, window_size: int, time_interval: float):
        self._window = SampleWindow(_check_window_size(window_size), self._dimension)
        self._time_interval = check_time_interval(time_interval)
        self._num_processed = 0
        self._mean = np.zeros(self._dimension, dtype=np.float64)
        self._variance = np.zeros(self._dimension, dtype=np.float64)

    @property
    def window_size(self) -> int:
        return self._window.capacity

    @window_size.setter
    def window_size(self, value: int) -> None:
        """Change the window size, discarding the current window."""
        self._window = SampleWindow(_check_window_size(value), self._dimension)
        self._clear_statistics()

    @property
    def time_interval(self) -> float:
        """Time between consecutive samples in seconds."""
        return self._time_interval

    @time_interval.setter
    def time_interval(self, value: float) -> None:
        self._time_interval = check_time_interval(value)

    @property
    def num_samples_in_window(self) -> int:
        return len(self._window)

    @property
    def num_processed_samples(self) -> int:
        """Samples added since the last reset, including evicted ones."""
        return self._num_processed

    @property
    def is_window_filled(self) -> bool:
        return self._window.is_full

    def _push(self, value: NDArray[np.float64]) -> None:
        self._window.push(value)
        self._num_processed += 1
        values = self._window.contents()
        self._mean = values.mean(axis=0)
        if len(values) > 1:
            self._variance = values.var(axis=0, ddof=1)
        else:
            self._variance = np.zeros(self._dimension, dtype=np.float64)

    def _clear_statistics(self) -> None:
        self._num_processed = 0
        self._mean = np.zeros(self._dimension, dtype=np.float64)
        self._variance = np.zeros(self._dimension, dtype=np.float64)

    def reset(self) -> bool:
        """Empty the window, returning False if nothing was processed."""
        if self._num_processed == 0:
            return False
        self._window.clear()
        self._clear_statistics()
        return True


class WindowedMeasurementNoiseEstimator(_WindowedEstimator):
    """Windowed noise estimator for a scalar measurement."""

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE,
                 time_interval: float = DEFAULT_TIME_INTERVAL):
        super().__init__(window_size, time_interval)

    @property
    def avg(self) -> float:
        return float(self._mean[0])

    @property
    def variance(self) -> float:
        return float(self._variance[0])

    @property
    def standard_deviation(self) -> float:
        return float(np.sqrt(self._variance[0]))

    @property
    def psd(self) -> float:
        return self.variance * self._time_interval

    @property
    def root_psd(self) -> float:
        return float(np.sqrt(self.psd))

    @property
    def first_windowed_value(self) -> Optional[float]:
        first = self._window.first()
        return None if first is None else float(first[0])

    @property
    def last_windowed_value(self) -> Optional[float]:
        last = self._window.last()
        return None if last is None else float(last[0])

    def add(self, value: float) -> None:
        self._push(np.array([value], dtype=np.float64))


class WindowedTriadNoiseEstimator(_WindowedEstimator):
    """Windowed noise estimator for three-axis measurements."""

    _dimension = 3

    def __init__(self, unit: Unit, window_size: int = DEFAULT_WINDOW_SIZE,
                 time_interval: float = DEFAULT_TIME_INTERVAL):
        """Initialize estimator.

        Args:
            unit: Unit in which statistics are kept and reported.
            window_size: Number of most recent samples kept (>= 3).
            time_interval: Time between consecutive samples in seconds.

        Raises:
            ConfigurationError: If a parameter is out of range.
        """
        super().__init__(window_size, time_interval)
        self._unit = unit

    @property
    def unit(self) -> Unit:
        return self._unit

    @property
    def avg(self) -> Triad:
        return Triad.from_array(self._mean, self._unit)

    @property
    def variance(self) -> NDArray[np.float64]:
        """Per-axis sample variance over the window."""
        return self._variance.copy()

    @property
    def standard_deviation(self) -> Triad:
        return Triad.from_array(np.sqrt(self._variance), self._unit)

    @property
    def standard_deviation_norm(self) -> float:
        """Norm of the per-axis standard deviations."""
        return float(np.sqrt(np.sum(self._variance)))

    @property
    def average_standard_deviation(self) -> float:
        return float(np.mean(np.sqrt(self._variance)))

    @property
    def psd(self) -> NDArray[np.float64]:
        return self._variance * self._time_interval

    @property
    def root_psd(self) -> NDArray[np.float64]:
        return np.sqrt(self.psd)

    @property
    def avg_noise_psd(self) -> float:
        return float(np.mean(self.psd))

    @property
    def noise_root_psd_norm(self) -> float:
        return float(np.sqrt(np.sum(self.psd)))

    @property
    def first_windowed_triad(self) -> Optional[Triad]:
        """Oldest triad in the window."""
        first = self._window.first()
        return None if first is None else Triad.from_array(first, self._unit)

    @property
    def last_windowed_triad(self) -> Optional[Triad]:
        """Most recent triad in the window."""
        last = self._window.last()
        return None if last is None else Triad.from_array(last, self._unit)

    def add(self, x: Union[Triad, float], y: Optional[float] = None,
            z: Optional[float] = None) -> None:
        """Add a triad, or its three components in the estimator's unit."""
        self._push(triad_values(x, y, z, self._unit))
