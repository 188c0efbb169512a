"""Tests for the combined IMU measurements generator."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from sensor_calibration.core.errors import ConfigurationError, LockedError
from sensor_calibration.core.types import TimedKinematicsSample
from sensor_calibration.generators import (
    ImuMeasurementsGenerator,
    ImuMeasurementsGeneratorListener,
)
from sensor_calibration.intervals import DetectorStatus
from sensor_calibration.tests.streams import GRAVITY, MAGNETIC_FIELD


class ImuRecorder(ImuMeasurementsGeneratorListener):
    """Records combined generator events."""

    def __init__(self):
        self.events = []
        self.accelerometer = []
        self.gyroscope = []
        self.magnetometer = []

    def on_initialization_started(self, generator):
        self.events.append("initialization_started")

    def on_initialization_completed(self, generator, base_noise_level):
        self.events.append("initialization_completed")

    def on_static_interval_detected(self, generator):
        self.events.append("static_interval_detected")

    def on_dynamic_interval_detected(self, generator):
        self.events.append("dynamic_interval_detected")

    def on_generated_accelerometer_measurement(self, generator, measurement):
        self.accelerometer.append(measurement)

    def on_generated_gyroscope_measurement(self, generator, sequence):
        self.gyroscope.append(sequence)

    def on_generated_magnetometer_measurement(self, generator, measurement):
        self.magnetometer.append(measurement)

    def on_reset(self, generator):
        self.events.append("reset")


class TestImuMeasurementsGenerator:
    """Tests for ImuMeasurementsGenerator."""

    def test_all_sensors(self, generator_config, cycle_stream):
        """Test measurements of all three sensors from one stream."""
        recorder = ImuRecorder()
        generator = ImuMeasurementsGenerator(generator_config, recorder)

        for sample in cycle_stream:
            assert generator.process(sample)

        assert len(recorder.accelerometer) == 3
        assert len(recorder.gyroscope) == 3
        assert len(recorder.magnetometer) == 3
        assert_allclose(recorder.accelerometer[0].average.as_array(), GRAVITY, atol=0.01)
        assert_allclose(recorder.magnetometer[0].average.as_array(), MAGNETIC_FIELD, atol=5e-8)

    def test_lifecycle_events_once(self, generator_config, cycle_stream):
        """Test lifecycle events are reported once, not per sensor."""
        recorder = ImuRecorder()
        generator = ImuMeasurementsGenerator(generator_config, recorder)

        for sample in cycle_stream:
            generator.process(sample)

        assert recorder.events.count("initialization_started") == 1
        assert recorder.events.count("initialization_completed") == 1
        assert recorder.events.count("static_interval_detected") == 4
        assert recorder.events.count("dynamic_interval_detected") == 3

    def test_without_magnetometer(self, generator_config, cycle_stream):
        """Test samples without magnetic field when magnetometer is disabled."""
        recorder = ImuRecorder()
        generator = ImuMeasurementsGenerator(generator_config, recorder, with_magnetometer=False)

        for sample in cycle_stream:
            generator.process(TimedKinematicsSample(
                sample.timestamp, sample.specific_force, sample.angular_rate))

        assert generator.magnetometer is None
        assert generator.magnetometer_base_noise_level is None
        assert len(recorder.accelerometer) == 3
        assert len(recorder.gyroscope) == 3
        assert recorder.magnetometer == []

    def test_missing_magnetic_field(self, generator_config):
        """Test missing magnetic field is refused before any processing."""
        generator = ImuMeasurementsGenerator(generator_config)
        sample = TimedKinematicsSample.from_arrays(0.0, GRAVITY, np.zeros(3))

        with pytest.raises(ValueError):
            generator.process(sample)
        for inner in generator.generators:
            assert inner.status == DetectorStatus.IDLE

    def test_shared_configuration(self, generator_config):
        """Test setters reach every inner generator."""
        generator = ImuMeasurementsGenerator(generator_config)
        generator.min_static_samples = 40
        generator.time_interval = 0.01

        for inner in generator.generators:
            assert inner.min_static_samples == 40
            assert inner.time_interval == 0.01

    def test_caller_config_not_shared(self, generator_config):
        """Test inner generators keep their own copy of the configuration."""
        generator = ImuMeasurementsGenerator(generator_config)
        generator_config.detector.threshold_factor = -5.0

        for inner in generator.generators:
            assert inner.threshold_factor == 2.0
        generator.accelerometer.threshold_factor = 3.0
        assert generator.gyroscope.threshold_factor == 2.0

    def test_invalid_value_leaves_all_unchanged(self, generator_config):
        """Test a refused value does not reach any inner generator."""
        generator = ImuMeasurementsGenerator(generator_config)

        with pytest.raises(ConfigurationError):
            generator.window_size = 1
        for inner in generator.generators:
            assert inner.window_size == generator_config.detector.window_size

    def test_reset(self, generator_config, cycle_stream):
        """Test reset clears every inner generator and notifies once."""
        recorder = ImuRecorder()
        generator = ImuMeasurementsGenerator(generator_config, recorder)
        for sample in cycle_stream:
            generator.process(sample)

        generator.reset()

        assert recorder.events.count("reset") == 1
        assert generator.status == DetectorStatus.IDLE
        assert generator.gyroscope_base_noise_level == 0.0
        for inner in generator.generators:
            assert inner.status == DetectorStatus.IDLE

    def test_reentrant_calls_locked(self, generator_config, cycle_stream):
        """Test callbacks cannot modify the combined generator."""
        outcomes = []

        class Reentrant(ImuMeasurementsGeneratorListener):
            def on_generated_gyroscope_measurement(self, generator, sequence):
                for action in (generator.reset,
                               lambda: setattr(generator, "threshold_factor", 3.0),
                               lambda: setattr(generator, "listener", None)):
                    try:
                        action()
                    except LockedError:
                        outcomes.append("locked")

        generator = ImuMeasurementsGenerator(generator_config, Reentrant())
        for sample in cycle_stream:
            generator.process(sample)

        assert outcomes == ["locked"] * 3 * 3
        assert not generator.is_running


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
