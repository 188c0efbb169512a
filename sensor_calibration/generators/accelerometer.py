"""Accelerometer calibration measurements."""

from typing import Optional

from ..core.config import GeneratorConfig
from ..core.types import TriadMeasurement, Triad
from .base import ArtifactStrategy, MeasurementsGenerator, MeasurementsGeneratorListener


class AccelerometerStrategy(ArtifactStrategy):
    """Emits the mean specific force of every admitted static run.

    The detector already accumulates specific force over static runs, so
    its statistics for the finished run are used directly.
    """

    def on_static_to_dynamic(self, generator, accumulated_avg, accumulated_std, skipped):
        if skipped:
            return
        generator._emit(TriadMeasurement(
            average=accumulated_avg,
            standard_deviation=accumulated_std,
            num_samples=generator.processed_static_samples,
        ))


class AccelerometerMeasurementsGenerator(MeasurementsGenerator):
    """Generates TriadMeasurement of specific force for accelerometer calibration."""

    def __init__(self, config: Optional[GeneratorConfig] = None,
                 listener: Optional[MeasurementsGeneratorListener] = None):
        super().__init__(AccelerometerStrategy(), config, listener)
