"""Core module for inertial sensor calibration."""

from .units import (
    AccelerationUnit,
    AngularSpeedUnit,
    MagneticFluxDensityUnit,
    convert,
)
from .types import (
    Triad,
    TimedKinematicsSample,
    TriadMeasurement,
    SequenceItem,
    KinematicsSequence,
    ValidationResult,
)
from .errors import CalibrationError, ConfigurationError, LockedError
from .validation import SampleValidator
from .config import Config, DetectorConfig, GeneratorConfig, load_config

__all__ = [
    "AccelerationUnit",
    "AngularSpeedUnit",
    "MagneticFluxDensityUnit",
    "convert",
    "Triad",
    "TimedKinematicsSample",
    "TriadMeasurement",
    "SequenceItem",
    "KinematicsSequence",
    "ValidationResult",
    "CalibrationError",
    "ConfigurationError",
    "LockedError",
    "SampleValidator",
    "Config",
    "DetectorConfig",
    "GeneratorConfig",
    "load_config",
]
