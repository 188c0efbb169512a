"""Calibration measurement generators."""

from .base import ArtifactStrategy, MeasurementsGenerator, MeasurementsGeneratorListener
from .accelerometer import AccelerometerMeasurementsGenerator
from .gyroscope import GyroscopeMeasurementsGenerator
from .magnetometer import MagnetometerMeasurementsGenerator
from .combined import ImuMeasurementsGenerator, ImuMeasurementsGeneratorListener

__all__ = [
    "ArtifactStrategy",
    "MeasurementsGenerator",
    "MeasurementsGeneratorListener",
    "AccelerometerMeasurementsGenerator",
    "GyroscopeMeasurementsGenerator",
    "MagnetometerMeasurementsGenerator",
    "ImuMeasurementsGenerator",
    "ImuMeasurementsGeneratorListener",
]
