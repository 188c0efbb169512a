"""Input validation for sensor samples."""

from typing import Optional
import numpy as np

from .types import TimedKinematicsSample, ValidationResult
from .config import Config


class SampleValidator:
    """Validates timestamped IMU samples before they enter a generator.

    Generators expect finite values in non-decreasing timestamp order and
    never reorder samples themselves.
    """

    def __init__(self, config: Config):
        """Initialize validator with configuration.

        Args:
            config: System configuration with validation thresholds.
        """
        self._config = config
        self._last_timestamp: Optional[float] = None

    def validate(self, sample: TimedKinematicsSample) -> ValidationResult:
        """Validate a sample.

        Only valid samples advance the timestamp reference.

        Args:
            sample: IMU sample to validate.

        Returns:
            ValidationResult with validation status and any errors/warnings.
        """
        result = ValidationResult(is_valid=True)

        self._check_finite(sample, result)
        self._check_magnetometer(sample, result)
        self._check_timestamp(sample, result)

        if result.is_valid:
            self._last_timestamp = sample.timestamp

        return result

    def _check_finite(self, sample: TimedKinematicsSample, result: ValidationResult) -> None:
        """Check all values are finite (not NaN or Inf)."""
        if not np.isfinite(sample.timestamp):
            result.add_error(f"Non-finite timestamp: {sample.timestamp}")

        triads = {
            "specific_force": sample.specific_force,
            "angular_rate": sample.angular_rate,
            "magnetic_flux_density": sample.magnetic_flux_density,
        }
        for name, triad in triads.items():
            if triad is None:
                continue
            values = triad.as_array()
            if not np.all(np.isfinite(values)):
                result.add_error(f"Non-finite {name}: {values.tolist()}")

    def _check_magnetometer(self, sample: TimedKinematicsSample, result: ValidationResult) -> None:
        if sample.magnetic_flux_density is None and self._config.validation.require_magnetometer:
            result.add_error("Missing magnetic flux density")

    def _check_timestamp(self, sample: TimedKinematicsSample, result: ValidationResult) -> None:
        """Validate timestamp monotonicity and dt."""
        if self._last_timestamp is None:
            return

        cfg = self._config.validation.timestamp
        dt = sample.timestamp - self._last_timestamp

        if dt < 0:
            result.add_error(f"Non-monotonic timestamp: dt={dt:.6f}s")
        elif dt == 0:
            result.add_warning("Repeated timestamp")
        elif dt > cfg.max_dt_s:
            result.add_warning(f"dt too large: {dt*1000:.2f}ms")

    def reset(self) -> None:
        """Reset validator state."""
        self._last_timestamp = None
