"""Tests for the static/dynamic interval detector."""

import numpy as np
import pytest
from dataclasses import replace
from numpy.testing import assert_allclose

from sensor_calibration.core.config import DetectorConfig
from sensor_calibration.core.errors import ConfigurationError, LockedError
from sensor_calibration.core.types import Triad
from sensor_calibration.core.units import AccelerationUnit
from sensor_calibration.intervals import (
    DetectorStatus,
    ErrorReason,
    StaticIntervalDetectorListener,
    TriadStaticIntervalDetector,
)
from sensor_calibration.tests.streams import (
    ACC_NOISE,
    GRAVITY,
    INITIAL_STATIC_SAMPLES,
    TIME_INTERVAL,
    WINDOW_SIZE,
    SampleStream,
)


class DetectorRecorder(StaticIntervalDetectorListener):
    """Records detector events."""

    def __init__(self):
        self.events = []
        self.static_avgs = []
        self.dynamic_accumulated_avgs = []
        self.reasons = []

    def on_initialization_started(self, detector):
        self.events.append("initialization_started")

    def on_initialization_completed(self, detector, base_noise_level):
        self.events.append("initialization_completed")

    def on_error(self, detector, accumulated_noise_level, instantaneous_noise_level, reason):
        self.events.append("error")
        self.reasons.append(reason)

    def on_static_interval_detected(self, detector, instantaneous_avg, instantaneous_std):
        self.events.append("static")
        self.static_avgs.append(instantaneous_avg)

    def on_dynamic_interval_detected(self, detector, instantaneous_avg, instantaneous_std,
                                     accumulated_avg, accumulated_std):
        self.events.append("dynamic")
        self.dynamic_accumulated_avgs.append(accumulated_avg)

    def on_reset(self, detector):
        self.events.append("reset")


def feed(detector, stream):
    for sample in stream:
        detector.process(sample.specific_force)


class TestDetectorInitialization:
    """Tests for the initialization phase."""

    def test_fresh_detector(self, detector_config):
        """Test a new detector is idle with zero statistics."""
        detector = TriadStaticIntervalDetector(config=detector_config)

        assert detector.status == DetectorStatus.IDLE
        assert detector.processed_samples == 0
        assert detector.base_noise_level == 0.0
        assert detector.threshold == 0.0
        assert not detector.is_running

    def test_initialization_completes(self, detector_config):
        """Test base noise level and threshold after initialization."""
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(config=detector_config, listener=recorder)
        stream = SampleStream(seed=1).static(INITIAL_STATIC_SAMPLES)

        samples = list(stream)
        for sample in samples[:-1]:
            detector.process(sample.specific_force)
            assert detector.status == DetectorStatus.INITIALIZING

        detector.process(samples[-1].specific_force)

        assert detector.status == DetectorStatus.INITIALIZATION_COMPLETED
        assert recorder.events == ["initialization_started", "initialization_completed"]
        assert detector.base_noise_level == pytest.approx(ACC_NOISE * np.sqrt(3), rel=0.3)
        assert detector.threshold == pytest.approx(2.0 * detector.base_noise_level)
        assert_allclose(detector.accumulated_avg.as_array(), GRAVITY, atol=0.01)

        acc = np.array([s.specific_force.as_array() for s in samples])
        assert detector.base_noise_level == pytest.approx(np.sqrt(acc.var(axis=0).sum()))

    def test_base_noise_psd(self, detector_config):
        """Test PSD relations of the base noise level."""
        detector = TriadStaticIntervalDetector(config=detector_config)
        feed(detector, SampleStream(seed=2).static(INITIAL_STATIC_SAMPLES))

        level = detector.base_noise_level
        assert detector.base_noise_level_psd == pytest.approx(level ** 2 * TIME_INTERVAL)
        assert detector.base_noise_level_root_psd == pytest.approx(level * np.sqrt(TIME_INTERVAL))

    def test_waits_for_filled_window(self):
        """Test initialization waits for the window when it is larger."""
        config = DetectorConfig(window_size=21, initial_static_samples=5)
        detector = TriadStaticIntervalDetector(config=config)
        stream = SampleStream(seed=3).static(21)

        samples = list(stream)
        for sample in samples[:20]:
            detector.process(sample.specific_force)
        assert detector.status == DetectorStatus.INITIALIZING

        detector.process(samples[20].specific_force)
        assert detector.status == DetectorStatus.INITIALIZATION_COMPLETED

    def test_sudden_movement_fails(self):
        """Test movement during initialization fails with a sudden movement."""
        config = DetectorConfig(window_size=11, initial_static_samples=500)
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(config=config, listener=recorder)

        feed(detector, SampleStream(seed=4).static(300).dynamic(20))

        assert detector.status == DetectorStatus.FAILED
        assert recorder.reasons == [ErrorReason.SUDDEN_EXCESSIVE_MOVEMENT_DETECTED]

    def test_overall_movement_fails(self, detector_config):
        """Test base noise above the absolute threshold fails."""
        config = replace(detector_config, base_noise_level_absolute_threshold=5e-324)
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(config=config, listener=recorder)

        feed(detector, SampleStream(seed=5).static(INITIAL_STATIC_SAMPLES))

        assert detector.status == DetectorStatus.FAILED
        assert recorder.reasons == [ErrorReason.OVERALL_EXCESSIVE_MOVEMENT_DETECTED]

    def test_failed_is_sticky(self, detector_config):
        """Test a failed detector refuses samples until reset."""
        config = replace(detector_config, base_noise_level_absolute_threshold=5e-324)
        detector = TriadStaticIntervalDetector(config=config)
        feed(detector, SampleStream(seed=5).static(INITIAL_STATIC_SAMPLES))

        assert not detector.process(0.0, 0.0, 9.81)
        assert detector.processed_samples == INITIAL_STATIC_SAMPLES

        detector.reset()
        assert detector.status == DetectorStatus.IDLE
        assert detector.process(0.0, 0.0, 9.81)
        assert detector.status == DetectorStatus.INITIALIZING


class TestDetectorClassification:
    """Tests for static/dynamic classification."""

    def test_static_after_initialization(self, detector_config):
        """Test a static stream is classified static."""
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(config=detector_config, listener=recorder)

        feed(detector, SampleStream(seed=6).static(INITIAL_STATIC_SAMPLES + 50))

        assert detector.status == DetectorStatus.STATIC_INTERVAL
        assert recorder.events[-1] == "static"
        assert recorder.events.count("static") == 1

    def test_transitions(self, detector_config):
        """Test static and dynamic transitions alternate."""
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(config=detector_config, listener=recorder)
        stream = SampleStream(seed=7).static(INITIAL_STATIC_SAMPLES + 100).cycles(2)

        feed(detector, stream)

        transitions = [e for e in recorder.events if e in ("static", "dynamic")]
        assert transitions == ["static", "dynamic", "static", "dynamic", "static"]
        for avg in recorder.dynamic_accumulated_avgs:
            assert_allclose(avg.as_array(), GRAVITY, atol=0.01)

    def test_dynamic_run_length(self, detector_config):
        """Test a dynamic run lasts until the window is static again."""
        detector = TriadStaticIntervalDetector(config=detector_config)
        stream = SampleStream(seed=8).static(INITIAL_STATIC_SAMPLES + 20).dynamic(15).static(30)

        statuses = []
        for sample in stream:
            detector.process(sample.specific_force)
            statuses.append(detector.status)

        dynamic = [s for s in statuses if s == DetectorStatus.DYNAMIC_INTERVAL]
        assert len(dynamic) == 15 + detector_config.window_size - 1

    def test_tie_is_dynamic(self, detector_config):
        """Test a window noise level equal to the threshold counts as dynamic."""
        detector = TriadStaticIntervalDetector(config=detector_config)

        for _ in range(INITIAL_STATIC_SAMPLES + 5):
            detector.process(0.0, 0.0, 8.0)

        assert detector.threshold == 0.0
        assert detector.instantaneous_std.norm == 0.0
        assert detector.status == DetectorStatus.DYNAMIC_INTERVAL

    def test_instantaneous_statistics(self, detector_config):
        """Test instantaneous average covers the window."""
        detector = TriadStaticIntervalDetector(config=detector_config)
        stream = SampleStream(seed=9).static(INITIAL_STATIC_SAMPLES + 5)
        feed(detector, stream)

        window = np.array([s.specific_force.as_array()
                           for s in stream.samples[-detector_config.window_size:]])
        assert_allclose(detector.instantaneous_avg.as_array(), window.mean(axis=0))
        assert_allclose(detector.instantaneous_std.as_array(), window.std(axis=0, ddof=1))

    def test_accepts_other_units(self, detector_config):
        """Test triads in standard gravity are classified like m/s^2."""
        g = AccelerationUnit.STANDARD_GRAVITY
        detector_mps2 = TriadStaticIntervalDetector(config=detector_config)
        detector_g = TriadStaticIntervalDetector(config=detector_config)
        stream = SampleStream(seed=10).static(INITIAL_STATIC_SAMPLES + 10)

        for sample in stream:
            detector_mps2.process(sample.specific_force)
            detector_g.process(sample.specific_force.to(g))

        assert detector_g.status == detector_mps2.status
        assert detector_g.base_noise_level == pytest.approx(detector_mps2.base_noise_level)

    def test_deterministic_after_reset(self, detector_config):
        """Test identical input yields identical results after reset."""
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(config=detector_config, listener=recorder)
        stream = SampleStream(seed=11).static(INITIAL_STATIC_SAMPLES + 60).cycles(2)

        feed(detector, stream)
        first_events = list(recorder.events)
        first_level = detector.base_noise_level

        detector.reset()
        recorder.events.clear()
        feed(detector, stream)

        assert recorder.events == first_events
        assert detector.base_noise_level == first_level


class TestDetectorConfiguration:
    """Tests for configuration and locking."""

    def test_defaults(self):
        """Test default configuration."""
        detector = TriadStaticIntervalDetector()

        assert detector.window_size == 101
        assert detector.initial_static_samples == 5000
        assert detector.threshold_factor == 2.0
        assert detector.instantaneous_noise_level_factor == 2.0
        assert detector.time_interval == 0.02

    @pytest.mark.parametrize("name,value", [
        ("window_size", 2),
        ("initial_static_samples", 1),
        ("threshold_factor", 0.0),
        ("instantaneous_noise_level_factor", -1.0),
        ("base_noise_level_absolute_threshold", 0.0),
        ("time_interval", 0.0),
    ])
    def test_invalid_values(self, name, value):
        """Test out-of-range values are refused and leave state unchanged."""
        detector = TriadStaticIntervalDetector()
        before = getattr(detector, name)

        with pytest.raises(ConfigurationError):
            setattr(detector, name, value)
        assert getattr(detector, name) == before

    def test_locked_after_first_sample(self, detector_config):
        """Test configuration is locked until reset."""
        detector = TriadStaticIntervalDetector(config=detector_config)
        detector.process(0.0, 0.0, 9.81)

        with pytest.raises(LockedError):
            detector.window_size = 21

        detector.reset()
        detector.window_size = 21
        assert detector.window_size == 21

    def test_reentrant_calls_locked(self, detector_config):
        """Test processing and reset from a callback are refused."""
        outcomes = []

        class Reentrant(StaticIntervalDetectorListener):
            def on_initialization_started(self, detector):
                for action in (lambda: detector.process(0.0, 0.0, 9.81),
                               detector.reset,
                               lambda: setattr(detector, "listener", None)):
                    try:
                        action()
                    except LockedError:
                        outcomes.append("locked")

        detector = TriadStaticIntervalDetector(config=detector_config, listener=Reentrant())
        detector.process(0.0, 0.0, 9.81)

        assert outcomes == ["locked"] * 3
        assert detector.processed_samples == 1
        assert not detector.is_running

    def test_caller_config_not_shared(self, detector_config):
        """Test changes to the caller's configuration do not reach the detector."""
        detector = TriadStaticIntervalDetector(config=detector_config)
        detector.process(0.0, 0.0, 9.81)

        detector_config.window_size = 1
        detector_config.threshold_factor = -5.0

        assert detector.window_size == WINDOW_SIZE
        assert detector.threshold_factor == 2.0

    def test_non_integer_window_refused(self):
        """Test a fractional window size is refused."""
        with pytest.raises(ConfigurationError):
            TriadStaticIntervalDetector(config=DetectorConfig(window_size=3.5))

    def test_reset_fires_on_fresh_detector(self):
        """Test reset notifies even when nothing was processed."""
        recorder = DetectorRecorder()
        detector = TriadStaticIntervalDetector(listener=recorder)
        detector.reset()

        assert recorder.events == ["reset"]
        assert detector.status == DetectorStatus.IDLE

    def test_components_in_other_unit_rejected(self, detector_config):
        """Test triads of another quantity are refused."""
        from sensor_calibration.core.units import AngularSpeedUnit

        detector = TriadStaticIntervalDetector(config=detector_config)
        with pytest.raises(ValueError):
            detector.process(Triad(0.0, 0.0, 1.0, AngularSpeedUnit.RADIANS_PER_SECOND))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
