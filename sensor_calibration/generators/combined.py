"""Accelerometer, gyroscope and magnetometer measurements from one stream."""

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional

from ..core.config import GeneratorConfig
from ..core.errors import LockedError
from ..core.types import KinematicsSequence, TimedKinematicsSample, TriadMeasurement
from ..intervals.detector import DetectorStatus, ErrorReason
from .accelerometer import AccelerometerMeasurementsGenerator
from .base import MeasurementsGenerator, MeasurementsGeneratorListener
from .gyroscope import GyroscopeMeasurementsGenerator
from .magnetometer import MagnetometerMeasurementsGenerator

logger = logging.getLogger(__name__)


class ImuMeasurementsGeneratorListener:
    """Receives combined generator events. All methods are no-ops by default.

    Lifecycle events mirror those of the accelerometer generator.
    """

    def on_initialization_started(self, generator: "ImuMeasurementsGenerator") -> None:
        pass

    def on_initialization_completed(self, generator: "ImuMeasurementsGenerator",
                                    base_noise_level: float) -> None:
        pass

    def on_error(self, generator: "ImuMeasurementsGenerator", reason: ErrorReason) -> None:
        pass

    def on_static_interval_detected(self, generator: "ImuMeasurementsGenerator") -> None:
        pass

    def on_dynamic_interval_detected(self, generator: "ImuMeasurementsGenerator") -> None:
        pass

    def on_static_interval_skipped(self, generator: "ImuMeasurementsGenerator") -> None:
        pass

    def on_dynamic_interval_skipped(self, generator: "ImuMeasurementsGenerator") -> None:
        pass

    def on_generated_accelerometer_measurement(self, generator: "ImuMeasurementsGenerator",
                                               measurement: TriadMeasurement) -> None:
        pass

    def on_generated_gyroscope_measurement(self, generator: "ImuMeasurementsGenerator",
                                           sequence: KinematicsSequence) -> None:
        pass

    def on_generated_magnetometer_measurement(self, generator: "ImuMeasurementsGenerator",
                                              measurement: TriadMeasurement) -> None:
        pass

    def on_reset(self, generator: "ImuMeasurementsGenerator") -> None:
        pass


class _Forwarder(MeasurementsGeneratorListener):
    """Forwards events of one inner generator to the combined listener."""

    def __init__(self, owner: "ImuMeasurementsGenerator", measurement_event: str,
                 lifecycle: bool = False):
        self._owner = owner
        self._measurement_event = measurement_event
        self._lifecycle = lifecycle

    def _forward(self, event: str, *args) -> None:
        if self._lifecycle:
            self._owner._notify(event, *args)

    def on_initialization_started(self, generator):
        self._forward("on_initialization_started")

    def on_initialization_completed(self, generator, base_noise_level):
        self._forward("on_initialization_completed", base_noise_level)

    def on_error(self, generator, reason):
        self._forward("on_error", reason)

    def on_static_interval_detected(self, generator):
        self._forward("on_static_interval_detected")

    def on_dynamic_interval_detected(self, generator):
        self._forward("on_dynamic_interval_detected")

    def on_static_interval_skipped(self, generator):
        self._forward("on_static_interval_skipped")

    def on_dynamic_interval_skipped(self, generator):
        self._forward("on_dynamic_interval_skipped")

    def on_generated_measurement(self, generator, measurement):
        self._owner._notify(self._measurement_event, measurement)


class ImuMeasurementsGenerator:
    """Runs accelerometer, gyroscope and magnetometer generators together.

    All inner generators share one configuration, so they detect the same
    intervals; the accelerometer generator is the reference for status
    and lifecycle events.
    """

    def __init__(
        self,
        config: Optional[GeneratorConfig] = None,
        listener: Optional[ImuMeasurementsGeneratorListener] = None,
        with_magnetometer: bool = True,
    ):
        """Initialize generator.

        Args:
            config: Shared generator configuration. Defaults are used if None.
            listener: Receives events and measurements of all sensors.
            with_magnetometer: Also generate magnetometer measurements.
                Samples must then carry a magnetic flux density.
        """
        self._listener = listener
        self._running = False
        self._accelerometer = AccelerometerMeasurementsGenerator(
            config, _Forwarder(self, "on_generated_accelerometer_measurement", lifecycle=True))
        self._gyroscope = GyroscopeMeasurementsGenerator(
            config, _Forwarder(self, "on_generated_gyroscope_measurement"))
        self._magnetometer: Optional[MagnetometerMeasurementsGenerator] = None
        if with_magnetometer:
            self._magnetometer = MagnetometerMeasurementsGenerator(
                config, _Forwarder(self, "on_generated_magnetometer_measurement"))

    @property
    def generators(self) -> List[MeasurementsGenerator]:
        gens: List[MeasurementsGenerator] = [self._accelerometer, self._gyroscope]
        if self._magnetometer is not None:
            gens.append(self._magnetometer)
        return gens

    @property
    def accelerometer(self) -> AccelerometerMeasurementsGenerator:
        return self._accelerometer

    @property
    def gyroscope(self) -> GyroscopeMeasurementsGenerator:
        return self._gyroscope

    @property
    def magnetometer(self) -> Optional[MagnetometerMeasurementsGenerator]:
        return self._magnetometer

    @property
    def with_magnetometer(self) -> bool:
        return self._magnetometer is not None

    # ------------------------------------------------------------------
    # Configuration

    @property
    def config(self) -> GeneratorConfig:
        return self._accelerometer.config

    @config.setter
    def config(self, value: GeneratorConfig) -> None:
        if self._running:
            raise LockedError("Cannot change configuration while running")
        value = replace(value, detector=replace(value.detector))
        value.validate()
        for gen in self.generators:
            gen.config = value

    def _set(self, name: str, value) -> None:
        if self._running:
            raise LockedError("Cannot change configuration while running")
        # Check on the reference generator first so a rejected value leaves
        # the others untouched
        setattr(self._accelerometer, name, value)
        for gen in self.generators[1:]:
            setattr(gen, name, value)

    @property
    def min_static_samples(self) -> int:
        return self._accelerometer.min_static_samples

    @min_static_samples.setter
    def min_static_samples(self, value: int) -> None:
        self._set("min_static_samples", value)

    @property
    def max_dynamic_samples(self) -> int:
        return self._accelerometer.max_dynamic_samples

    @max_dynamic_samples.setter
    def max_dynamic_samples(self, value: int) -> None:
        self._set("max_dynamic_samples", value)

    @property
    def window_size(self) -> int:
        return self._accelerometer.window_size

    @window_size.setter
    def window_size(self, value: int) -> None:
        self._set("window_size", value)

    @property
    def initial_static_samples(self) -> int:
        return self._accelerometer.initial_static_samples

    @initial_static_samples.setter
    def initial_static_samples(self, value: int) -> None:
        self._set("initial_static_samples", value)

    @property
    def threshold_factor(self) -> float:
        return self._accelerometer.threshold_factor

    @threshold_factor.setter
    def threshold_factor(self, value: float) -> None:
        self._set("threshold_factor", value)

    @property
    def instantaneous_noise_level_factor(self) -> float:
        return self._accelerometer.instantaneous_noise_level_factor

    @instantaneous_noise_level_factor.setter
    def instantaneous_noise_level_factor(self, value: float) -> None:
        self._set("instantaneous_noise_level_factor", value)

    @property
    def base_noise_level_absolute_threshold(self) -> float:
        return self._accelerometer.base_noise_level_absolute_threshold

    @base_noise_level_absolute_threshold.setter
    def base_noise_level_absolute_threshold(self, value: float) -> None:
        self._set("base_noise_level_absolute_threshold", value)

    @property
    def time_interval(self) -> float:
        return self._accelerometer.time_interval

    @time_interval.setter
    def time_interval(self, value: float) -> None:
        self._set("time_interval", value)

    @property
    def listener(self) -> Optional[ImuMeasurementsGeneratorListener]:
        return self._listener

    @listener.setter
    def listener(self, value: Optional[ImuMeasurementsGeneratorListener]) -> None:
        if self._running:
            raise LockedError("Cannot change listener while running")
        self._listener = value

    # ------------------------------------------------------------------
    # Status

    @property
    def status(self) -> DetectorStatus:
        return self._accelerometer.status

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed_static_samples(self) -> int:
        return self._accelerometer.processed_static_samples

    @property
    def processed_dynamic_samples(self) -> int:
        return self._accelerometer.processed_dynamic_samples

    @property
    def static_interval_skipped(self) -> bool:
        return self._accelerometer.static_interval_skipped

    @property
    def dynamic_interval_skipped(self) -> bool:
        return self._accelerometer.dynamic_interval_skipped

    @property
    def accelerometer_base_noise_level(self) -> float:
        return self._accelerometer.accelerometer_base_noise_level

    @property
    def gyroscope_base_noise_level(self) -> float:
        return self._gyroscope.gyroscope_base_noise_level

    @property
    def magnetometer_base_noise_level(self) -> Optional[float]:
        if self._magnetometer is None:
            return None
        return self._magnetometer.magnetometer_base_noise_level

    @property
    def threshold(self) -> float:
        return self._accelerometer.threshold

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
        """Process one sample with every inner generator.

        Returns:
            False if detection has failed and the generator must be
            reset, True otherwise.

        Raises:
            LockedError: If called from a listener callback.
            ValueError: If magnetometer measurements are generated and the
                sample has no magnetic flux density.
        """
        if self._running:
            raise LockedError("Generator is already processing a sample")

        if self.status == DetectorStatus.FAILED:
            return False

        if self._magnetometer is not None and sample.magnetic_flux_density is None:
            raise ValueError("Sample has no magnetic flux density")

        with self._running_guard():
            result = self._accelerometer.process(sample)
            for gen in self.generators[1:]:
                gen.process(sample)
        return result

    def _notify(self, event: str, *args) -> None:
        if self._listener is not None:
            getattr(self._listener, event)(self, *args)

    def reset(self) -> None:
        """Reset every inner generator.

        Raises:
            LockedError: If called from a listener callback.
        """
        if self._running:
            raise LockedError("Cannot reset while running")

        with self._running_guard():
            for gen in self.generators:
                gen.reset()
            logger.info("IMU measurements generator reset")
            self._notify("on_reset")
