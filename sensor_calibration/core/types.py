"""Data types for inertial sensor calibration."""

from dataclasses import dataclass, field
from typing import List, Optional, Union
import numpy as np
from numpy.typing import NDArray

from .units import (
    AccelerationUnit,
    AngularSpeedUnit,
    MagneticFluxDensityUnit,
    Unit,
    convert,
)


@dataclass(frozen=True)
class Triad:
    """Three-axis value tagged with its unit.

    Used for specific force, angular rate and magnetic flux density
    alike, as well as for their averages and standard deviations.
    """
    x: float
    y: float
    z: float
    unit: Unit

    @classmethod
    def zeros(cls, unit: Unit) -> "Triad":
        """Return a triad with all components set to zero."""
        return cls(0.0, 0.0, 0.0, unit)

    @classmethod
    def from_array(cls, arr: Union[NDArray[np.float64], List[float]],
                   unit: Unit) -> "Triad":
        """Create from an array-like [x, y, z]."""
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]), unit=unit)

    def as_array(self) -> NDArray[np.float64]:
        """Convert to numpy array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def norm(self) -> float:
        """Euclidean norm of the triad."""
        return float(np.sqrt(self.x**2 + self.y**2 + self.z**2))

    def to(self, unit: Unit) -> "Triad":
        """Return a copy expressed in another unit of the same quantity.

        Raises:
            ValueError: If ``unit`` measures a different quantity.
        """
        values = convert(self.as_array(), self.unit, unit)
        return Triad.from_array(values, unit)

    def copy(self) -> "Triad":
        """Return an independent copy."""
        return Triad(self.x, self.y, self.z, self.unit)


@dataclass(frozen=True)
class TimedKinematicsSample:
    """Single timestamped IMU sample.

    The magnetic flux density is optional: only magnetometer based
    generators require it.
    """
    timestamp: float  # seconds
    specific_force: Triad
    angular_rate: Triad
    magnetic_flux_density: Optional[Triad] = None

    @classmethod
    def from_arrays(
        cls,
        timestamp: float,
        specific_force: NDArray[np.float64],
        angular_rate: NDArray[np.float64],
        magnetic_flux_density: Optional[NDArray[np.float64]] = None,
    ) -> "TimedKinematicsSample":
        """Create a sample from SI arrays (m/s^2, rad/s and T)."""
        mag = None
        if magnetic_flux_density is not None:
            mag = Triad.from_array(magnetic_flux_density, MagneticFluxDensityUnit.TESLA)
        return cls(
            timestamp=float(timestamp),
            specific_force=Triad.from_array(
                specific_force, AccelerationUnit.METERS_PER_SQUARED_SECOND),
            angular_rate=Triad.from_array(
                angular_rate, AngularSpeedUnit.RADIANS_PER_SECOND),
            magnetic_flux_density=mag,
        )


@dataclass
class TriadMeasurement:
    """Averaged triad and its dispersion over one static interval.

    Produced by accelerometer and magnetometer generators.
    """
    average: Triad
    standard_deviation: Triad
    num_samples: int

    @property
    def standard_deviation_norm(self) -> float:
        """Norm of the per-axis standard deviations."""
        return self.standard_deviation.norm

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "average": [self.average.x, self.average.y, self.average.z],
            "standard_deviation": [
                self.standard_deviation.x,
                self.standard_deviation.y,
                self.standard_deviation.z,
            ],
            "unit": self.average.unit.name,
            "num_samples": self.num_samples,
        }


@dataclass
class SequenceItem:
    """One sample of a dynamic interval, with the base noise levels."""
    sample: TimedKinematicsSample
    specific_force_standard_deviation: float  # m/s^2
    angular_rate_standard_deviation: float  # rad/s

    @property
    def timestamp(self) -> float:
        return self.sample.timestamp


@dataclass
class KinematicsSequence:
    """Dynamic interval bracketed by the mean specific force around it.

    Produced by gyroscope generators.
    """
    items: List[SequenceItem] = field(default_factory=list)
    before_mean_specific_force: Optional[Triad] = None
    after_mean_specific_force: Optional[Triad] = None

    @property
    def start_timestamp(self) -> float:
        """Timestamp of the first item, 0 when empty."""
        return self.items[0].timestamp if self.items else 0.0

    @property
    def end_timestamp(self) -> float:
        """Timestamp of the last item, 0 when empty."""
        return self.items[-1].timestamp if self.items else 0.0

    @property
    def duration(self) -> float:
        """Time span covered by the items in seconds."""
        return self.end_timestamp - self.start_timestamp

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        def _triad(t: Optional[Triad]) -> Optional[list]:
            return None if t is None else [t.x, t.y, t.z]

        return {
            "num_items": len(self.items),
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "before_mean_specific_force": _triad(self.before_mean_specific_force),
            "after_mean_specific_force": _triad(self.after_mean_specific_force),
        }


@dataclass
class ValidationResult:
    """Result of sample validation."""
    is_valid: bool
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.is_valid = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def triad_values(x: Union[Triad, float], y: Optional[float], z: Optional[float],
                 unit: Unit) -> NDArray[np.float64]:
    """Return [x, y, z] in ``unit`` from a Triad or three components.

    Raises:
        ValueError: If a Triad measures another quantity, or components
            are missing.
    """
    if isinstance(x, Triad):
        return x.to(unit).as_array()
    if y is None or z is None:
        raise ValueError("Expected a Triad or three components")
    return np.array([x, y, z], dtype=np.float64)
