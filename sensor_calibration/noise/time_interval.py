"""Sampling interval estimation from timestamps."""

import logging
from typing import Optional
import numpy as np

from ..core.errors import ConfigurationError
from .statistics import RunningStatistics

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_SAMPLES = 100000


class TimeIntervalEstimator:
    """Estimates the mean and jitter of the time between samples.

    Generators assume a constant sampling interval; this is used to
    measure it from recorded timestamps before processing them.
    """

    def __init__(self, total_samples: int = DEFAULT_TOTAL_SAMPLES):
        """Initialize estimator.

        Args:
            total_samples: Number of timestamps to process before the
                estimation is considered finished.
        """
        if total_samples <= 0:
            raise ConfigurationError(f"total_samples must be > 0, got {total_samples}")
        self._total_samples = total_samples
        self._intervals = RunningStatistics(1)
        self._num_processed = 0
        self._last_timestamp: Optional[float] = None

    @property
    def total_samples(self) -> int:
        return self._total_samples

    @property
    def num_processed_samples(self) -> int:
        return self._num_processed

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._last_timestamp

    @property
    def is_finished(self) -> bool:
        return self._num_processed >= self._total_samples

    @property
    def average_time_interval(self) -> float:
        """Mean time between consecutive timestamps in seconds."""
        return float(self._intervals.mean[0])

    @property
    def time_interval_variance(self) -> float:
        return float(self._intervals.variance[0])

    @property
    def time_interval_standard_deviation(self) -> float:
        return float(np.sqrt(self.time_interval_variance))

    def add_timestamp(self, timestamp: float) -> bool:
        """Add a timestamp in seconds.

        Returns:
            False if the estimation was already finished, True otherwise.
        """
        if self.is_finished:
            return False

        if self._last_timestamp is not None:
            self._intervals.add(timestamp - self._last_timestamp)

        self._last_timestamp = float(timestamp)
        self._num_processed += 1

        if self.is_finished:
            logger.debug(
                "Time interval estimated over %d samples: %.3fms (std %.3fms)",
                self._num_processed,
                self.average_time_interval * 1000,
                self.time_interval_standard_deviation * 1000,
            )
        return True

    def reset(self) -> bool:
        """Clear all timestamps, returning False if none were added."""
        if self._num_processed == 0:
            return False
        self._intervals.reset()
        self._num_processed = 0
        self._last_timestamp = None
        return True
