"""Magnetometer calibration measurements."""

from typing import Optional

from ..core.config import GeneratorConfig
from ..core.types import TimedKinematicsSample, TriadMeasurement
from ..core.units import MagneticFluxDensityUnit
from ..intervals.detector import DetectorStatus
from ..noise.accumulated import AccumulatedTriadNoiseEstimator
from .base import ArtifactStrategy, MeasurementsGenerator, MeasurementsGeneratorListener


class MagnetometerStrategy(ArtifactStrategy):
    """Emits the mean magnetic flux density of every admitted static run.

    Static/dynamic classification still uses specific force; the magnetic
    flux density of the same samples is accumulated alongside.
    """

    def __init__(self):
        self._initial = AccumulatedTriadNoiseEstimator(MagneticFluxDensityUnit.TESLA)
        self._run = AccumulatedTriadNoiseEstimator(MagneticFluxDensityUnit.TESLA)
        self._base_noise_level = 0.0

    @property
    def base_noise_level(self) -> float:
        """Magnetic flux density noise (std norm) during initialization, in T."""
        return self._base_noise_level

    def configure(self, config: GeneratorConfig) -> None:
        self._initial.time_interval = config.detector.time_interval
        self._run.time_interval = config.detector.time_interval

    def check_sample(self, sample: TimedKinematicsSample) -> None:
        if sample.magnetic_flux_density is None:
            raise ValueError("Sample has no magnetic flux density")

    def pre_process(self, generator, sample):
        if generator.status in (DetectorStatus.IDLE, DetectorStatus.INITIALIZING):
            self._initial.add(sample.magnetic_flux_density)

    def on_initialization_completed(self, generator):
        self._base_noise_level = self._initial.standard_deviation_norm
        self._run.reset()

    def on_initialization_failed(self, generator):
        self._initial.reset()
        self._run.reset()

    def on_static_to_dynamic(self, generator, accumulated_avg, accumulated_std, skipped):
        if not skipped and self._run.num_samples > 0:
            generator._emit(TriadMeasurement(
                average=self._run.avg,
                standard_deviation=self._run.standard_deviation,
                num_samples=self._run.num_samples,
            ))
        self._run.reset()

    def post_process(self, generator, sample):
        if generator.status == DetectorStatus.STATIC_INTERVAL:
            self._run.add(sample.magnetic_flux_density)

    def reset(self) -> None:
        self._initial.reset()
        self._run.reset()
        self._base_noise_level = 0.0


class MagnetometerMeasurementsGenerator(MeasurementsGenerator):
    """Generates TriadMeasurement of magnetic flux density for magnetometer calibration.

    Every processed sample must carry a magnetic flux density.
    """

    def __init__(self, config: Optional[GeneratorConfig] = None,
                 listener: Optional[MeasurementsGeneratorListener] = None):
        self._magnetometer = MagnetometerStrategy()
        super().__init__(self._magnetometer, config, listener)

    @property
    def magnetometer_base_noise_level(self) -> float:
        return self._magnetometer.base_noise_level
