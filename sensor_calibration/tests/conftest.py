"""Pytest fixtures for sensor calibration tests."""

import pytest
import numpy as np

from sensor_calibration.core.config import Config, DetectorConfig, GeneratorConfig
from sensor_calibration.core.types import TimedKinematicsSample
from sensor_calibration.tests.streams import (
    INITIAL_STATIC_SAMPLES,
    MAX_DYNAMIC_SAMPLES,
    MIN_STATIC_SAMPLES,
    TIME_INTERVAL,
    WINDOW_SIZE,
    RecordingListener,
    SampleStream,
)


@pytest.fixture
def detector_config() -> DetectorConfig:
    """Create a small detector configuration for fast tests."""
    return DetectorConfig(
        window_size=WINDOW_SIZE,
        initial_static_samples=INITIAL_STATIC_SAMPLES,
        threshold_factor=2.0,
        instantaneous_noise_level_factor=2.0,
        time_interval=TIME_INTERVAL,
    )


@pytest.fixture
def generator_config(detector_config) -> GeneratorConfig:
    """Create a small generator configuration for fast tests."""
    return GeneratorConfig(
        min_static_samples=MIN_STATIC_SAMPLES,
        max_dynamic_samples=MAX_DYNAMIC_SAMPLES,
        detector=detector_config,
    )


@pytest.fixture
def stream() -> SampleStream:
    """Create an empty synthetic stream."""
    return SampleStream(seed=42)


@pytest.fixture
def cycle_stream() -> SampleStream:
    """Create a stream with initialization, a static run and three cycles.

    Detected runs (window of 11): static 100, then three times dynamic 50
    and static 90.
    """
    return SampleStream(seed=7).static(INITIAL_STATIC_SAMPLES + 100).cycles(3)


@pytest.fixture
def recorder() -> RecordingListener:
    """Create an event recording listener."""
    return RecordingListener()


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


@pytest.fixture
def sample() -> TimedKinematicsSample:
    """Create a stationary sample with gravity along +Z."""
    return TimedKinematicsSample.from_arrays(
        1000.0,
        np.array([0.0, 0.0, 9.81]),
        np.zeros(3),
        np.array([20e-6, 5e-6, 45e-6]),
    )
