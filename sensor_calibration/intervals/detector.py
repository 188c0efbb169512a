"""Static/dynamic interval detection on a stream of triads.

The detector first measures the noise of the sensor while it is kept
static during an initialization period. That base noise level, scaled by
a threshold factor, becomes the boundary between static and dynamic
samples: once initialized, every sample is classified by comparing the
standard deviation norm over a sliding window against it.

Detection is unit agnostic: typically it runs on specific force, but any
triad quantity can be classified.
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from typing import Iterator, Optional, Union
import numpy as np

from ..core.config import DetectorConfig
from ..core.errors import LockedError
from ..core.types import Triad, triad_values
from ..core.units import AccelerationUnit, Unit
from ..noise.accumulated import AccumulatedTriadNoiseEstimator
from ..noise.windowed import WindowedTriadNoiseEstimator

logger = logging.getLogger(__name__)


class DetectorStatus(Enum):
    """Detector lifecycle and classification status."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    INITIALIZATION_COMPLETED = "initialization_completed"
    STATIC_INTERVAL = "static_interval"
    DYNAMIC_INTERVAL = "dynamic_interval"
    FAILED = "failed"


class ErrorReason(Enum):
    """Reason why initialization failed."""
    SUDDEN_EXCESSIVE_MOVEMENT_DETECTED = "sudden_excessive_movement"
    OVERALL_EXCESSIVE_MOVEMENT_DETECTED = "overall_excessive_movement"


class StaticIntervalDetectorListener:
    """Receives detector events. All methods are no-ops by default."""

    def on_initialization_started(self, detector: "TriadStaticIntervalDetector") -> None:
        pass

    def on_initialization_completed(self, detector: "TriadStaticIntervalDetector",
                                    base_noise_level: float) -> None:
        pass

    def on_error(self, detector: "TriadStaticIntervalDetector",
                 accumulated_noise_level: float, instantaneous_noise_level: float,
                 reason: ErrorReason) -> None:
        pass

    def on_static_interval_detected(self, detector: "TriadStaticIntervalDetector",
                                    instantaneous_avg: Triad,
                                    instantaneous_std: Triad) -> None:
        pass

    def on_dynamic_interval_detected(self, detector: "TriadStaticIntervalDetector",
                                     instantaneous_avg: Triad, instantaneous_std: Triad,
                                     accumulated_avg: Triad,
                                     accumulated_std: Triad) -> None:
        pass

    def on_reset(self, detector: "TriadStaticIntervalDetector") -> None:
        pass


class TriadStaticIntervalDetector:
    """Classifies a triad stream into static and dynamic intervals.

    Lifecycle:
        IDLE -> INITIALIZING on the first sample. INITIALIZING ends with
        either FAILED (too much movement) or INITIALIZATION_COMPLETED,
        after which every sample is STATIC_INTERVAL or DYNAMIC_INTERVAL.
        FAILED is sticky until reset().

    Configuration can only be changed while IDLE: after the first sample
    of an epoch it is locked until reset().
    """

    def __init__(
        self,
        unit: Unit = AccelerationUnit.METERS_PER_SQUARED_SECOND,
        config: Optional[DetectorConfig] = None,
        listener: Optional[StaticIntervalDetectorListener] = None,
    ):
        """Initialize detector.

        Args:
            unit: Unit of the classified triads. Triads in other units of
                the same quantity are converted.
            config: Detector configuration. Defaults are used if None.
            listener: Receives detector events.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        self._config = replace(config) if config is not None else DetectorConfig()
        self._config.validate()
        self._unit = unit
        self._listener = listener

        self._windowed = WindowedTriadNoiseEstimator(
            unit, self._config.window_size, self._config.time_interval)
        self._accumulated = AccumulatedTriadNoiseEstimator(
            unit, self._config.time_interval)

        self._running = False
        self._status = DetectorStatus.IDLE
        self._processed_samples = 0
        self._base_noise_level = 0.0
        self._threshold = 0.0
        self._accumulated_avg = Triad.zeros(unit)
        self._accumulated_std = Triad.zeros(unit)
        self._instantaneous_avg = Triad.zeros(unit)
        self._instantaneous_std = Triad.zeros(unit)

    # ------------------------------------------------------------------
    # Configuration

    @property
    def unit(self) -> Unit:
        return self._unit

    @property
    def config(self) -> DetectorConfig:
        return replace(self._config)

    @config.setter
    def config(self, value: DetectorConfig) -> None:
        self._check_configurable()
        value = replace(value)
        value.validate()
        self._config = value
        if self._windowed.window_size != value.window_size:
            self._windowed.window_size = value.window_size
        self._windowed.time_interval = value.time_interval
        self._accumulated.time_interval = value.time_interval

    def _update(self, **changes) -> None:
        self._check_configurable()
        self.config = replace(self._config, **changes)

    @property
    def window_size(self) -> int:
        """Number of samples in the sliding window."""
        return self._config.window_size

    @window_size.setter
    def window_size(self, value: int) -> None:
        self._update(window_size=value)

    @property
    def initial_static_samples(self) -> int:
        """Number of samples used to measure the base noise level."""
        return self._config.initial_static_samples

    @initial_static_samples.setter
    def initial_static_samples(self, value: int) -> None:
        self._update(initial_static_samples=value)

    @property
    def threshold_factor(self) -> float:
        return self._config.threshold_factor

    @threshold_factor.setter
    def threshold_factor(self, value: float) -> None:
        self._update(threshold_factor=value)

    @property
    def instantaneous_noise_level_factor(self) -> float:
        return self._config.instantaneous_noise_level_factor

    @instantaneous_noise_level_factor.setter
    def instantaneous_noise_level_factor(self, value: float) -> None:
        self._update(instantaneous_noise_level_factor=value)

    @property
    def base_noise_level_absolute_threshold(self) -> float:
        return self._config.base_noise_level_absolute_threshold

    @base_noise_level_absolute_threshold.setter
    def base_noise_level_absolute_threshold(self, value: float) -> None:
        self._update(base_noise_level_absolute_threshold=value)

    @property
    def time_interval(self) -> float:
        """Time between consecutive samples in seconds."""
        return self._config.time_interval

    @time_interval.setter
    def time_interval(self, value: float) -> None:
        self._update(time_interval=value)

    @property
    def listener(self) -> Optional[StaticIntervalDetectorListener]:
        return self._listener

    @listener.setter
    def listener(self, value: Optional[StaticIntervalDetectorListener]) -> None:
        if self._running:
            raise LockedError("Cannot change listener while running")
        self._listener = value

    def _check_configurable(self) -> None:
        if self._running:
            raise LockedError("Cannot change configuration while running")
        if self._status != DetectorStatus.IDLE:
            raise LockedError("Configuration is locked until reset")

    # ------------------------------------------------------------------
    # Status

    @property
    def status(self) -> DetectorStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed_samples(self) -> int:
        """Samples processed since the last reset."""
        return self._processed_samples

    @property
    def base_noise_level(self) -> float:
        """Standard deviation norm measured during initialization."""
        return self._base_noise_level

    @property
    def base_noise_level_psd(self) -> float:
        return self._base_noise_level ** 2 * self._config.time_interval

    @property
    def base_noise_level_root_psd(self) -> float:
        return self._base_noise_level * float(np.sqrt(self._config.time_interval))

    @property
    def threshold(self) -> float:
        """Windowed standard deviation norm separating static from dynamic."""
        return self._threshold

    @property
    def accumulated_avg(self) -> Triad:
        """Average over initialization or over the last finished static interval."""
        return self._accumulated_avg

    @property
    def accumulated_std(self) -> Triad:
        return self._accumulated_std

    @property
    def instantaneous_avg(self) -> Triad:
        """Average over the current window."""
        return self._instantaneous_avg

    @property
    def instantaneous_std(self) -> Triad:
        return self._instantaneous_std

    # ------------------------------------------------------------------
    # Processing

    @contextmanager
    def _running_guard(self) -> Iterator[None]:
        self._running = True
        try:
            yield
        finally:
            self._running = False

    def process(self, x: Union[Triad, float], y: Optional[float] = None,
                z: Optional[float] = None) -> bool:
        """Process one triad.

        Args:
            x: Triad, or its x component in the detector unit.
            y: y component when x is a component.
            z: z component when x is a component.

        Returns:
            False if the detector has failed and must be reset, True otherwise.

        Raises:
            LockedError: If called while already processing.
        """
        if self._running:
            raise LockedError("Detector is already processing a sample")

        if self._status == DetectorStatus.FAILED:
            return False

        values = triad_values(x, y, z, self._unit)

        with self._running_guard():
            if self._status == DetectorStatus.IDLE:
                self._status = DetectorStatus.INITIALIZING
                logger.debug("Initialization started")
                self._notify("on_initialization_started")

            self._processed_samples += 1

            self._windowed.add(values[0], values[1], values[2])
            self._instantaneous_avg = self._windowed.avg
            self._instantaneous_std = self._windowed.standard_deviation
            windowed_std_norm = self._windowed.standard_deviation_norm

            if self._status == DetectorStatus.INITIALIZING:
                self._process_initialization(values, windowed_std_norm)
            else:
                self._classify(values, windowed_std_norm)

        return True

    def _process_initialization(self, values: np.ndarray, windowed_std_norm: float) -> None:
        self._accumulated.add(values[0], values[1], values[2])
        accumulated_std_norm = self._accumulated.standard_deviation_norm

        if self._processed_samples < self._config.initial_static_samples:
            if (self._windowed.is_window_filled
                    and self._is_sudden_movement(windowed_std_norm, accumulated_std_norm)):
                self._fail(accumulated_std_norm, windowed_std_norm,
                           ErrorReason.SUDDEN_EXCESSIVE_MOVEMENT_DETECTED)
            return

        if not self._windowed.is_window_filled:
            return

        self._base_noise_level = accumulated_std_norm
        self._threshold = accumulated_std_norm * self._config.threshold_factor
        self._accumulated_avg = self._accumulated.avg
        self._accumulated_std = self._accumulated.standard_deviation
        self._accumulated.reset()

        if self._base_noise_level > self._config.base_noise_level_absolute_threshold:
            self._fail(accumulated_std_norm, windowed_std_norm,
                       ErrorReason.OVERALL_EXCESSIVE_MOVEMENT_DETECTED)
            return

        self._status = DetectorStatus.INITIALIZATION_COMPLETED
        logger.info(
            "Initialization completed after %d samples: base noise level %.6g, threshold %.6g",
            self._processed_samples, self._base_noise_level, self._threshold
        )
        self._notify("on_initialization_completed", self._base_noise_level)

    def _is_sudden_movement(self, windowed_std_norm: float,
                            accumulated_std_norm: float) -> bool:
        if accumulated_std_norm > 0.0:
            ratio = windowed_std_norm / accumulated_std_norm
            return ratio > self._config.instantaneous_noise_level_factor
        return windowed_std_norm > 0.0

    def _fail(self, accumulated_noise_level: float, instantaneous_noise_level: float,
              reason: ErrorReason) -> None:
        self._status = DetectorStatus.FAILED
        logger.warning(
            "Initialization failed (%s): accumulated noise %.6g, instantaneous noise %.6g",
            reason.value, accumulated_noise_level, instantaneous_noise_level
        )
        self._notify("on_error", accumulated_noise_level, instantaneous_noise_level, reason)

    def _classify(self, values: np.ndarray, windowed_std_norm: float) -> None:
        previous = self._status
        if windowed_std_norm < self._threshold:
            self._status = DetectorStatus.STATIC_INTERVAL
            self._accumulated.add(values[0], values[1], values[2])
        else:
            self._status = DetectorStatus.DYNAMIC_INTERVAL

        if previous == self._status:
            return

        if self._status == DetectorStatus.STATIC_INTERVAL:
            logger.debug("Static interval detected at sample %d", self._processed_samples)
            self._notify("on_static_interval_detected",
                         self._instantaneous_avg, self._instantaneous_std)
        else:
            self._accumulated_avg = self._accumulated.avg
            self._accumulated_std = self._accumulated.standard_deviation
            self._accumulated.reset()
            logger.debug("Dynamic interval detected at sample %d", self._processed_samples)
            self._notify("on_dynamic_interval_detected",
                         self._instantaneous_avg, self._instantaneous_std,
                         self._accumulated_avg, self._accumulated_std)

    def _notify(self, event: str, *args) -> None:
        if self._listener is not None:
            getattr(self._listener, event)(self, *args)

    def reset(self) -> None:
        """Clear all statistics and return to IDLE.

        Raises:
            LockedError: If called while processing.
        """
        if self._running:
            raise LockedError("Cannot reset while running")

        self._status = DetectorStatus.IDLE
        self._processed_samples = 0
        self._base_noise_level = 0.0
        self._threshold = 0.0
        self._windowed.reset()
        self._accumulated.reset()
        self._accumulated_avg = Triad.zeros(self._unit)
        self._accumulated_std = Triad.zeros(self._unit)
        self._instantaneous_avg = Triad.zeros(self._unit)
        self._instantaneous_std = Triad.zeros(self._unit)

        logger.info("Detector reset")
        self._notify("on_reset")
