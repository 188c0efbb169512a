"""Exceptions raised by calibration components."""


class CalibrationError(Exception):
    """Base class for calibration pipeline errors."""
    pass


class LockedError(CalibrationError):
    """Raised when a component is modified while it is running.

    Configuration is also locked once the first sample of an epoch has
    been processed, until the component is reset.
    """
    pass


class ConfigurationError(CalibrationError, ValueError):
    """Raised when a configuration parameter is out of range."""
    pass
