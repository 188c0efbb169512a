"""Static interval detection and measurement generation for IMU calibration.

Streams of timed accelerometer, gyroscope and magnetometer samples are
split into static and dynamic intervals. Averaged static measurements and
dynamic kinematics sequences are handed to listeners for calibration.
"""

from .core import Config, load_config
from .intervals import DetectorStatus, TriadStaticIntervalDetector
from .generators import (
    AccelerometerMeasurementsGenerator,
    GyroscopeMeasurementsGenerator,
    ImuMeasurementsGenerator,
    MagnetometerMeasurementsGenerator,
)

__version__ = "0.1.0"

__all__ = [
    "Config",
    "load_config",
    "DetectorStatus",
    "TriadStaticIntervalDetector",
    "AccelerometerMeasurementsGenerator",
    "GyroscopeMeasurementsGenerator",
    "ImuMeasurementsGenerator",
    "MagnetometerMeasurementsGenerator",
]
