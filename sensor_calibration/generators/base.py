"""Shared pipeline turning raw IMU samples into calibration measurements.

A generator feeds the specific force of every sample to a static interval
detector and reacts to its transitions: runs that are too short (static)
or too long (dynamic) are skipped, admitted runs are handed to an
artifact strategy which builds the measurement emitted to the listener.

Strategies differ only in what they buffer and emit:

- Accelerometer: averaged specific force over each static run.
- Magnetometer: averaged magnetic flux density over each static run.
- Gyroscope: the full kinematics sequence of each dynamic run.
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Iterator, Optional

from ..core.config import GeneratorConfig
from ..core.errors import LockedError
from ..core.types import TimedKinematicsSample, Triad
from ..core.units import AccelerationUnit
from ..intervals.detector import (
    DetectorStatus,
    ErrorReason,
    StaticIntervalDetectorListener,
    TriadStaticIntervalDetector,
)

logger = logging.getLogger(__name__)


class MeasurementsGeneratorListener:
    """Receives generator events. All methods are no-ops by default."""

    def on_initialization_started(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_initialization_completed(self, generator: "MeasurementsGenerator",
                                    base_noise_level: float) -> None:
        pass

    def on_error(self, generator: "MeasurementsGenerator", reason: ErrorReason) -> None:
        pass

    def on_static_interval_detected(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_dynamic_interval_detected(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_static_interval_skipped(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_dynamic_interval_skipped(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_generated_measurement(self, generator: "MeasurementsGenerator",
                                 measurement: Any) -> None:
        pass

    def on_reset(self, generator: "MeasurementsGenerator") -> None:
        pass


class ArtifactStrategy:
    """Buffers run data and builds the measurements of a generator.

    Hooks are called by MeasurementsGenerator in this order for each
    sample: check_sample, pre_process, the detector transition hooks
    (if any), post_process.
    """

    def configure(self, config: GeneratorConfig) -> None:
        """Called at construction and whenever the configuration changes."""
        pass

    def check_sample(self, sample: TimedKinematicsSample) -> None:
        """Raise ValueError if the sample cannot be used."""
        pass

    def pre_process(self, generator: "MeasurementsGenerator",
                    sample: TimedKinematicsSample) -> None:
        """Called before the detector sees the sample."""
        pass

    def on_initialization_completed(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_initialization_failed(self, generator: "MeasurementsGenerator") -> None:
        pass

    def on_static_to_dynamic(self, generator: "MeasurementsGenerator",
                             accumulated_avg: Triad, accumulated_std: Triad,
                             skipped: bool) -> None:
        """Called when a static run ends.

        Args:
            accumulated_avg: Average specific force over the finished run.
            accumulated_std: Standard deviation over the finished run.
            skipped: True if the run was too short to be used.
        """
        pass

    def on_dynamic_to_static(self, generator: "MeasurementsGenerator") -> None:
        """Called when a dynamic run ends."""
        pass

    def post_process(self, generator: "MeasurementsGenerator",
                     sample: TimedKinematicsSample) -> None:
        """Called after the detector and counters have been updated."""
        pass

    def reset(self) -> None:
        pass


class _DetectorEvents(StaticIntervalDetectorListener):
    """Translates detector events into generator events."""

    def __init__(self, generator: "MeasurementsGenerator"):
        self._generator = generator

    def on_initialization_started(self, detector):
        self._generator._notify("on_initialization_started")

    def on_initialization_completed(self, detector, base_noise_level):
        gen = self._generator
        gen._strategy.on_initialization_completed(gen)
        gen._notify("on_initialization_completed", base_noise_level)

    def on_error(self, detector, accumulated_noise_level, instantaneous_noise_level, reason):
        gen = self._generator
        gen._strategy.on_initialization_failed(gen)
        gen._notify("on_error", reason)

    def on_static_interval_detected(self, detector, instantaneous_avg, instantaneous_std):
        gen = self._generator
        gen._strategy.on_dynamic_to_static(gen)
        gen._dynamic_interval_skipped = False
        gen._notify("on_static_interval_detected")

    def on_dynamic_interval_detected(self, detector, instantaneous_avg, instantaneous_std,
                                     accumulated_avg, accumulated_std):
        gen = self._generator
        if gen._processed_static_samples < gen._config.min_static_samples:
            gen._static_interval_skipped = True
            logger.debug(
                "Static interval skipped: %d samples (min %d)",
                gen._processed_static_samples, gen._config.min_static_samples
            )
            gen._notify("on_static_interval_skipped")

        gen._strategy.on_static_to_dynamic(
            gen, accumulated_avg, accumulated_std, gen._static_interval_skipped)
        gen._static_interval_skipped = False
        gen._notify("on_dynamic_interval_detected")

    def on_reset(self, detector):
        pass


class MeasurementsGenerator:
    """Generic measurement generator driven by an artifact strategy.

    Samples must be supplied in non-decreasing timestamp order. Processing
    is synchronous: listener callbacks run inside process() and cannot
    modify the generator (LockedError).
    """

    def __init__(
        self,
        strategy: ArtifactStrategy,
        config: Optional[GeneratorConfig] = None,
        listener: Optional[MeasurementsGeneratorListener] = None,
    ):
        """Initialize generator.

        Args:
            strategy: Builds the emitted measurements.
            config: Generator configuration. Defaults are used if None.
            listener: Receives generator events and measurements.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        if config is None:
            config = GeneratorConfig()
        self._config = replace(config, detector=replace(config.detector))
        self._config.validate()
        self._strategy = strategy
        self._listener = listener
        self._detector = TriadStaticIntervalDetector(
            AccelerationUnit.METERS_PER_SQUARED_SECOND,
            self._config.detector,
            _DetectorEvents(self),
        )
        self._strategy.configure(self._config)

        self._running = False
        self._processed_static_samples = 0
        self._processed_dynamic_samples = 0
        self._static_interval_skipped = False
        self._dynamic_interval_skipped = False

    # ------------------------------------------------------------------
    # Configuration

    @property
    def config(self) -> GeneratorConfig:
        return replace(self._config, detector=replace(self._config.detector))

    @config.setter
    def config(self, value: GeneratorConfig) -> None:
        self._check_configurable()
        value = replace(value, detector=replace(value.detector))
        value.validate()
        self._detector.config = value.detector
        self._config = value
        self._strategy.configure(value)

    def _update(self, **changes) -> None:
        self.config = replace(self._config, **changes)

    def _update_detector(self, **changes) -> None:
        self._update(detector=replace(self._config.detector, **changes))

    @property
    def min_static_samples(self) -> int:
        """Static runs shorter than this are skipped."""
        return self._config.min_static_samples

    @min_static_samples.setter
    def min_static_samples(self, value: int) -> None:
        self._update(min_static_samples=value)

    @property
    def max_dynamic_samples(self) -> int:
        """Dynamic runs longer than this are skipped."""
        return self._config.max_dynamic_samples

    @max_dynamic_samples.setter
    def max_dynamic_samples(self, value: int) -> None:
        self._update(max_dynamic_samples=value)

    @property
    def window_size(self) -> int:
        return self._config.detector.window_size

    @window_size.setter
    def window_size(self, value: int) -> None:
        self._update_detector(window_size=value)

    @property
    def initial_static_samples(self) -> int:
        return self._config.detector.initial_static_samples

    @initial_static_samples.setter
    def initial_static_samples(self, value: int) -> None:
        self._update_detector(initial_static_samples=value)

    @property
    def threshold_factor(self) -> float:
        return self._config.detector.threshold_factor

    @threshold_factor.setter
    def threshold_factor(self, value: float) -> None:
        self._update_detector(threshold_factor=value)

    @property
    def instantaneous_noise_level_factor(self) -> float:
        return self._config.detector.instantaneous_noise_level_factor

    @instantaneous_noise_level_factor.setter
    def instantaneous_noise_level_factor(self, value: float) -> None:
        self._update_detector(instantaneous_noise_level_factor=value)

    @property
    def base_noise_level_absolute_threshold(self) -> float:
        return self._config.detector.base_noise_level_absolute_threshold

    @base_noise_level_absolute_threshold.setter
    def base_noise_level_absolute_threshold(self, value: float) -> None:
        self._update_detector(base_noise_level_absolute_threshold=value)

    @property
    def time_interval(self) -> float:
        """Time between consecutive samples in seconds."""
        return self._config.detector.time_interval

    @time_interval.setter
    def time_interval(self, value: float) -> None:
        self._update_detector(time_interval=value)

    @property
    def listener(self) -> Optional[MeasurementsGeneratorListener]:
        return self._listener

    @listener.setter
    def listener(self, value: Optional[MeasurementsGeneratorListener]) -> None:
        if self._running:
            raise LockedError("Cannot change listener while running")
        self._listener = value

    def _check_configurable(self) -> None:
        if self._running:
            raise LockedError("Cannot change configuration while running")
        if self._detector.status != DetectorStatus.IDLE:
            raise LockedError("Configuration is locked until reset")

    # ------------------------------------------------------------------
    # Status

    @property
    def detector(self) -> TriadStaticIntervalDetector:
        """Underlying detector, for inspection only."""
        return self._detector

    @property
    def status(self) -> DetectorStatus:
        return self._detector.status

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed_static_samples(self) -> int:
        """Samples in the current static run."""
        return self._processed_static_samples

    @property
    def processed_dynamic_samples(self) -> int:
        """Samples in the current dynamic run."""
        return self._processed_dynamic_samples

    @property
    def static_interval_skipped(self) -> bool:
        return self._static_interval_skipped

    @property
    def dynamic_interval_skipped(self) -> bool:
        return self._dynamic_interval_skipped

    @property
    def accelerometer_base_noise_level(self) -> float:
        """Specific force noise (std norm) measured during initialization."""
        return self._detector.base_noise_level

    @property
    def accelerometer_base_noise_level_psd(self) -> float:
        return self._detector.base_noise_level_psd

    @property
    def accelerometer_base_noise_level_root_psd(self) -> float:
        return self._detector.base_noise_level_root_psd

    @property
    def threshold(self) -> float:
        return self._detector.threshold

    # ------------------------------------------------------------------
    # Processing

    @contextmanager
    def _running_guard(self) -> Iterator[None]:
        self._running = True
        try:
            yield
        finally:
            self._running = False

    def process(self, sample: TimedKinematicsSample) -> bool:
        """Process one sample.

        Args:
            sample: Timestamped IMU sample.

        Returns:
            False if detection has failed and the generator must be
            reset, True otherwise.

        Raises:
            LockedError: If called from a listener callback.
            ValueError: If the sample lacks data required by the generator.
        """
        if self._running:
            raise LockedError("Generator is already processing a sample")

        if self._detector.status == DetectorStatus.FAILED:
            return False

        self._strategy.check_sample(sample)

        with self._running_guard():
            self._strategy.pre_process(self, sample)
            self._detector.process(sample.specific_force)
            self._update_counters()
            self._check_dynamic_samples()
            self._strategy.post_process(self, sample)

        return True

    def _update_counters(self) -> None:
        status = self._detector.status
        if status == DetectorStatus.STATIC_INTERVAL:
            self._processed_static_samples += 1
            self._processed_dynamic_samples = 0
        elif status == DetectorStatus.DYNAMIC_INTERVAL:
            self._processed_dynamic_samples += 1
            self._processed_static_samples = 0

    def _check_dynamic_samples(self) -> None:
        if (self._processed_dynamic_samples > self._config.max_dynamic_samples
                and not self._dynamic_interval_skipped):
            self._dynamic_interval_skipped = True
            logger.debug(
                "Dynamic interval skipped: more than %d samples",
                self._config.max_dynamic_samples
            )
            self._notify("on_dynamic_interval_skipped")

    def _emit(self, measurement: Any) -> None:
        logger.debug("Generated %s", type(measurement).__name__)
        self._notify("on_generated_measurement", measurement)

    def _notify(self, event: str, *args) -> None:
        if self._listener is not None:
            getattr(self._listener, event)(self, *args)

    def reset(self) -> None:
        """Clear detector, counters and buffers so a new epoch can start.

        Raises:
            LockedError: If called from a listener callback.
        """
        if self._running:
            raise LockedError("Cannot reset while running")

        with self._running_guard():
            self._detector.reset()
            self._processed_static_samples = 0
            self._processed_dynamic_samples = 0
            self._static_interval_skipped = False
            self._dynamic_interval_skipped = False
            self._strategy.reset()
            self._notify("on_reset")
