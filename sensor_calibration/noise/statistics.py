"""Incremental mean and variance."""

from typing import Optional, Union
import numpy as np
from numpy.typing import NDArray


class RunningStatistics:
    """Welford's online mean/variance over scalar or vector samples.

    Every component is tracked independently. Variance is the population
    variance (divided by the number of samples), which is what noise
    PSD estimation expects.
    """

    def __init__(self, dimension: int = 1):
        """Initialize statistics.

        Args:
            dimension: Number of components per sample.
        """
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self._dimension = dimension
        self._count = 0
        self._mean = np.zeros(dimension, dtype=np.float64)
        self._m2 = np.zeros(dimension, dtype=np.float64)
        self._last: Optional[NDArray[np.float64]] = None

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def count(self) -> int:
        """Number of samples added since the last reset."""
        return self._count

    @property
    def mean(self) -> NDArray[np.float64]:
        return self._mean.copy()

    @property
    def variance(self) -> NDArray[np.float64]:
        """Population variance, zero when no sample was added."""
        if self._count == 0:
            return np.zeros(self._dimension, dtype=np.float64)
        # Rounding may leave tiny negative values on constant input
        return np.maximum(self._m2 / self._count, 0.0)

    @property
    def standard_deviation(self) -> NDArray[np.float64]:
        return np.sqrt(self.variance)

    @property
    def last(self) -> Optional[NDArray[np.float64]]:
        """Last sample added, None when empty."""
        return None if self._last is None else self._last.copy()

    def add(self, value: Union[float, NDArray[np.float64]]) -> None:
        """Add one sample."""
        x = np.asarray(value, dtype=np.float64).reshape(self._dimension)
        self._count += 1
        delta = x - self._mean
        self._mean += delta / self._count
        self._m2 += delta * (x - self._mean)
        self._last = x.copy()

    def reset(self) -> bool:
        """Clear all samples.

        Returns:
            True if anything was cleared, False if already empty.
        """
        if self._count == 0:
            return False
        self._count = 0
        self._mean.fill(0.0)
        self._m2.fill(0.0)
        self._last = None
        return True
