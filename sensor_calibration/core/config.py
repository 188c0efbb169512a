"""Configuration management for sensor calibration."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import numbers
import os
import sys

import yaml

from .errors import ConfigurationError


def _check_count(name: str, value: int, lower: int) -> None:
    """Raise ConfigurationError unless value is an integer greater than lower."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value <= lower:
        raise ConfigurationError(f"{name} must be > {lower}, got {value}")


@dataclass
class DetectorConfig:
    """Static/dynamic interval detector configuration."""
    window_size: int = 101
    initial_static_samples: int = 5000
    threshold_factor: float = 2.0
    instantaneous_noise_level_factor: float = 2.0
    base_noise_level_absolute_threshold: float = sys.float_info.max
    time_interval: float = 0.02  # seconds

    def validate(self) -> None:
        """Check parameter ranges.

        Raises:
            ConfigurationError: If any parameter is out of range.
        """
        _check_count("window_size", self.window_size, 2)
        _check_count("initial_static_samples", self.initial_static_samples, 1)
        if not self.threshold_factor > 0.0:
            raise ConfigurationError(
                f"threshold_factor must be > 0, got {self.threshold_factor}"
            )
        if not self.instantaneous_noise_level_factor > 0.0:
            raise ConfigurationError(
                "instantaneous_noise_level_factor must be > 0, "
                f"got {self.instantaneous_noise_level_factor}"
            )
        if not self.base_noise_level_absolute_threshold > 0.0:
            raise ConfigurationError(
                "base_noise_level_absolute_threshold must be > 0, "
                f"got {self.base_noise_level_absolute_threshold}"
            )
        if not self.time_interval > 0.0:
            raise ConfigurationError(f"time_interval must be > 0, got {self.time_interval}")


@dataclass
class GeneratorConfig:
    """Measurement generator configuration."""
    min_static_samples: int = 2 * 101
    max_dynamic_samples: int = 30 * 101
    detector: DetectorConfig = field(default_factory=DetectorConfig)

    def validate(self) -> None:
        """Check parameter ranges, including the detector's.

        Raises:
            ConfigurationError: If any parameter is out of range.
        """
        _check_count("min_static_samples", self.min_static_samples, 1)
        _check_count("max_dynamic_samples", self.max_dynamic_samples, 1)
        self.detector.validate()


@dataclass
class TimestampValidationConfig:
    """Timestamp validation configuration."""
    max_dt_s: float = 1.0


@dataclass
class ValidationConfig:
    """Sample validation configuration."""
    timestamp: TimestampValidationConfig = field(default_factory=TimestampValidationConfig)
    require_magnetometer: bool = False


@dataclass
class ReplayConfig:
    """Log replay configuration."""
    output_format: str = "minimal"
    with_magnetometer: bool = True
    estimate_time_interval: bool = True

    def validate(self) -> None:
        if self.output_format not in ("minimal", "json"):
            raise ConfigurationError(
                f"output_format must be 'minimal' or 'json', got {self.output_format!r}"
            )


@dataclass
class Config:
    """Complete configuration for sensor calibration."""
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)

    def validate(self) -> None:
        self.generator.validate()
        self.replay.validate()


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses the
            SENSOR_CALIBRATION_CONFIG environment variable, then the
            packaged default.

    Returns:
        Configuration object with all settings.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ConfigurationError: If a parameter is out of range.
    """
    if config_path is None:
        env_path = os.environ.get("SENSOR_CALIBRATION_CONFIG")
        if env_path:
            config_path = env_path
        else:
            default_path = Path(__file__).parent.parent / "config" / "default.yaml"
            if default_path.exists():
                config_path = str(default_path)
            else:
                return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    config = _build_config(data)
    config.validate()
    return config


def _build_config(data: dict) -> Config:
    """Build Config object from dictionary."""
    gen_data = data.get("generator", {})
    detector = DetectorConfig(**gen_data.get("detector", {}))
    generator = GeneratorConfig(
        min_static_samples=gen_data.get("min_static_samples", 2 * 101),
        max_dynamic_samples=gen_data.get("max_dynamic_samples", 30 * 101),
        detector=detector,
    )

    val_data = data.get("validation", {})
    validation = ValidationConfig(
        timestamp=TimestampValidationConfig(**val_data.get("timestamp", {})),
        require_magnetometer=val_data.get("require_magnetometer", False),
    )

    replay = ReplayConfig(**data.get("replay", {}))

    return Config(
        generator=generator,
        validation=validation,
        replay=replay,
    )
