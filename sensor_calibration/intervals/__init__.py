"""Static/dynamic interval detection."""

from .detector import (
    DetectorStatus,
    ErrorReason,
    StaticIntervalDetectorListener,
    TriadStaticIntervalDetector,
)

__all__ = [
    "DetectorStatus",
    "ErrorReason",
    "StaticIntervalDetectorListener",
    "TriadStaticIntervalDetector",
]
