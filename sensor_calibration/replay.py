#!/usr/bin/env python3
"""Replay a recorded IMU log through the calibration measurement generators.

Usage:
    python -m sensor_calibration.replay imu_log.csv
    python -m sensor_calibration.replay imu_log.csv --output json
    python -m sensor_calibration.replay imu_log.csv --time-interval 0.01 --no-mag

The log uses the recorder CSV format (``#`` comment lines, then a
``time_abs,seq,ax,ay,az,gx,gy,gz,mx,my,mz,temp`` header) with specific
force in m/s^2, angular rate in rad/s and magnetic field in uT.
Generated measurements are printed to stdout, never written to disk.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Iterator, List, Optional

import numpy as np

from .core import Config, load_config
from .core.errors import ConfigurationError
from .core.types import TimedKinematicsSample, Triad
from .core.units import MagneticFluxDensityUnit
from .core.validation import SampleValidator
from .generators.combined import ImuMeasurementsGenerator, ImuMeasurementsGeneratorListener
from .intervals.detector import DetectorStatus
from .noise.time_interval import TimeIntervalEstimator

logger = logging.getLogger(__name__)

LOG_COLUMNS = ("time_abs", "seq", "ax", "ay", "az", "gx", "gy", "gz", "mx", "my", "mz", "temp")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def read_log(path: str) -> np.ndarray:
    """Read a recorded IMU log into a structured array.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If required columns are missing.
    """
    # genfromtxt would take a leading comment line for the header
    with open(path, "r", encoding="utf-8") as f:
        lines = [line for line in f if line.strip() and not line.lstrip().startswith("#")]
    if not lines:
        raise ValueError(f"No header in {path}")

    data = np.genfromtxt(lines, delimiter=",", names=True, dtype=np.float64)
    data = np.atleast_1d(data)
    missing = [c for c in LOG_COLUMNS[:11] if data.dtype.names is None or c not in data.dtype.names]
    if missing:
        raise ValueError(f"Missing columns in {path}: {', '.join(missing)}")
    return data


def iter_samples(data: np.ndarray, with_magnetometer: bool = True) -> Iterator[TimedKinematicsSample]:
    """Convert log rows to samples, magnetic field from uT to T."""
    for row in data:
        mag = None
        if with_magnetometer:
            mag = Triad(
                float(row["mx"]), float(row["my"]), float(row["mz"]),
                MagneticFluxDensityUnit.MICROTESLA,
            ).to(MagneticFluxDensityUnit.TESLA)
        sample = TimedKinematicsSample.from_arrays(
            row["time_abs"],
            np.array([row["ax"], row["ay"], row["az"]]),
            np.array([row["gx"], row["gy"], row["gz"]]),
        )
        yield replace(sample, magnetic_flux_density=mag)


def estimate_time_interval(data: np.ndarray) -> float:
    """Mean sampling interval of the log in seconds."""
    estimator = TimeIntervalEstimator(total_samples=len(data))
    for t in data["time_abs"]:
        estimator.add_timestamp(float(t))
    return estimator.average_time_interval


class ReplayListener(ImuMeasurementsGeneratorListener):
    """Prints generated measurements and counts events."""

    def __init__(self, output_format: str = "minimal"):
        self.output_format = output_format
        self.accelerometer: List[dict] = []
        self.gyroscope: List[dict] = []
        self.magnetometer: List[dict] = []
        self.static_skipped = 0
        self.dynamic_skipped = 0
        self.error: Optional[str] = None

    def _print(self, kind: str, record: dict) -> None:
        if self.output_format == "json":
            print(json.dumps({"type": kind, **record}), flush=True)
        elif kind == "gyroscope":
            print(f"GYR n={record['num_items']:5d} "
                  f"t=[{record['start_timestamp']:.3f}, {record['end_timestamp']:.3f}]")
        else:
            avg = record["average"]
            print(f"{kind[:3].upper()} n={record['num_samples']:5d} "
                  f"avg=[{avg[0]:.6g}, {avg[1]:.6g}, {avg[2]:.6g}] {record['unit']}")

    def on_initialization_completed(self, generator, base_noise_level):
        logger.info("Accelerometer base noise level: %.6g m/s^2", base_noise_level)

    def on_error(self, generator, reason):
        self.error = reason.value

    def on_static_interval_skipped(self, generator):
        self.static_skipped += 1

    def on_dynamic_interval_skipped(self, generator):
        self.dynamic_skipped += 1

    def on_generated_accelerometer_measurement(self, generator, measurement):
        record = measurement.to_dict()
        self.accelerometer.append(record)
        self._print("accelerometer", record)

    def on_generated_gyroscope_measurement(self, generator, sequence):
        record = sequence.to_dict()
        self.gyroscope.append(record)
        self._print("gyroscope", record)

    def on_generated_magnetometer_measurement(self, generator, measurement):
        record = measurement.to_dict()
        self.magnetometer.append(record)
        self._print("magnetometer", record)


def run_replay(
    path: str,
    config: Config,
    time_interval: Optional[float] = None,
) -> int:
    """Replay a log file.

    Args:
        path: Recorded IMU log.
        config: System configuration.
        time_interval: Sampling interval in seconds. Estimated from the
            timestamps when None and estimation is enabled.

    Returns:
        Exit code.
    """
    try:
        data = read_log(path)
    except (OSError, ValueError) as e:
        logger.error("Cannot read %s: %s", path, e)
        return 1

    if len(data) == 0:
        logger.error("No samples in %s", path)
        return 1

    gen_config = config.generator
    if time_interval is None and config.replay.estimate_time_interval and len(data) > 1:
        time_interval = estimate_time_interval(data)
        logger.info("Estimated time interval: %.3fms", time_interval * 1000)
    if time_interval is not None:
        gen_config = replace(gen_config, detector=replace(gen_config.detector,
                                                          time_interval=time_interval))

    listener = ReplayListener(config.replay.output_format)
    try:
        generator = ImuMeasurementsGenerator(
            gen_config, listener, with_magnetometer=config.replay.with_magnetometer)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    validator = SampleValidator(config)
    rejected = 0

    for sample in iter_samples(data, config.replay.with_magnetometer):
        result = validator.validate(sample)
        for warning in result.warnings:
            logger.debug("t=%.6f: %s", sample.timestamp, warning)
        if not result.is_valid:
            rejected += 1
            for error in result.errors:
                logger.warning("Rejected sample t=%.6f: %s", sample.timestamp, error)
            continue

        if not generator.process(sample):
            break

    logger.info("Replay summary:")
    logger.info("  Samples: %d (%d rejected)", len(data), rejected)
    logger.info("  Accelerometer measurements: %d", len(listener.accelerometer))
    logger.info("  Gyroscope sequences: %d", len(listener.gyroscope))
    if generator.with_magnetometer:
        logger.info("  Magnetometer measurements: %d", len(listener.magnetometer))
    logger.info("  Skipped static/dynamic intervals: %d/%d",
                listener.static_skipped, listener.dynamic_skipped)

    if generator.status == DetectorStatus.FAILED:
        logger.error("Interval detection failed: %s", listener.error)
        return 1

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Generate calibration measurements from a recorded IMU log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("log", type=str, help="Recorded IMU log (CSV)")
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        choices=["minimal", "json"],
        default=None,
        help="Output format (default from configuration)",
    )
    parser.add_argument(
        "-t", "--time-interval",
        type=float,
        default=None,
        help="Sampling interval in seconds (estimated from timestamps if omitted)",
    )
    parser.add_argument(
        "--no-mag",
        action="store_true",
        help="Do not generate magnetometer measurements",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if args.output is not None:
        config.replay.output_format = args.output
    if args.no_mag:
        config.replay.with_magnetometer = False

    return run_replay(args.log, config, time_interval=args.time_interval)


if __name__ == "__main__":
    sys.exit(main())
