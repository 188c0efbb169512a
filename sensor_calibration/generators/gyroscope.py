"""Gyroscope calibration sequences.

A gyroscope is calibrated from motion: the sensor is rotated between two
static positions, and the angular rates integrated over the dynamic run
must explain the change of the gravity direction measured before and
after it. Each admitted dynamic run therefore yields a KinematicsSequence
holding every sample of the run plus the mean specific force of the
static runs around it.
"""

import logging
from typing import List, Optional
import numpy as np

from ..core.config import GeneratorConfig
from ..core.types import KinematicsSequence, SequenceItem, Triad
from ..core.units import AngularSpeedUnit
from ..intervals.detector import DetectorStatus
from ..noise.accumulated import AccumulatedTriadNoiseEstimator
from .base import ArtifactStrategy, MeasurementsGenerator, MeasurementsGeneratorListener

logger = logging.getLogger(__name__)


class GyroscopeStrategy(ArtifactStrategy):
    """Records admitted dynamic runs and emits them as sequences.

    A dynamic run is recorded only if the static run before it was
    admitted, since its average is the sequence's starting reference. The
    sequence is emitted on the first static sample after the run, once the
    window average gives the ending reference.
    """

    def __init__(self):
        self._initial = AccumulatedTriadNoiseEstimator(AngularSpeedUnit.RADIANS_PER_SECOND)
        self._items: List[SequenceItem] = []
        self._before: Optional[Triad] = None
        self._recording = False
        self._pending = False
        self._specific_force_std = 0.0
        self._angular_rate_std = 0.0

    @property
    def initial(self) -> AccumulatedTriadNoiseEstimator:
        """Angular rate statistics accumulated during initialization."""
        return self._initial

    @property
    def angular_rate_standard_deviation(self) -> float:
        return self._angular_rate_std

    def configure(self, config: GeneratorConfig) -> None:
        self._initial.time_interval = config.detector.time_interval

    def pre_process(self, generator, sample):
        if generator.status in (DetectorStatus.IDLE, DetectorStatus.INITIALIZING):
            self._initial.add(sample.angular_rate)

    def on_initialization_completed(self, generator):
        self._specific_force_std = generator.detector.base_noise_level
        self._angular_rate_std = self._initial.standard_deviation_norm
        logger.info(
            "Gyroscope base noise level %.6g rad/s over %d samples",
            self._angular_rate_std, self._initial.num_samples
        )

    def on_initialization_failed(self, generator):
        self._initial.reset()

    def on_static_to_dynamic(self, generator, accumulated_avg, accumulated_std, skipped):
        self._items.clear()
        self._pending = False
        if skipped:
            self._before = None
            self._recording = False
        else:
            self._before = accumulated_avg
            self._recording = True

    def on_dynamic_to_static(self, generator):
        self._pending = True

    def post_process(self, generator, sample):
        status = generator.status

        if status == DetectorStatus.DYNAMIC_INTERVAL:
            if generator.dynamic_interval_skipped:
                self._items.clear()
                self._recording = False
            elif self._recording:
                self._items.append(SequenceItem(
                    sample=sample,
                    specific_force_standard_deviation=self._specific_force_std,
                    angular_rate_standard_deviation=self._angular_rate_std,
                ))
            return

        if status == DetectorStatus.STATIC_INTERVAL and self._pending:
            self._pending = False
            if self._recording and self._items:
                sequence = KinematicsSequence(
                    items=list(self._items),
                    before_mean_specific_force=self._before,
                    after_mean_specific_force=generator.detector.instantaneous_avg,
                )
                self._items.clear()
                generator._emit(sequence)
            self._recording = False

    def reset(self) -> None:
        self._initial.reset()
        self._items.clear()
        self._before = None
        self._recording = False
        self._pending = False
        self._specific_force_std = 0.0
        self._angular_rate_std = 0.0


class GyroscopeMeasurementsGenerator(MeasurementsGenerator):
    """Generates KinematicsSequence for gyroscope calibration."""

    def __init__(self, config: Optional[GeneratorConfig] = None,
                 listener: Optional[MeasurementsGeneratorListener] = None):
        self._gyroscope = GyroscopeStrategy()
        super().__init__(self._gyroscope, config, listener)

    @property
    def initial_avg_angular_rate(self) -> Triad:
        """Mean angular rate during initialization (gyroscope bias estimate)."""
        return self._gyroscope.initial.avg

    @property
    def initial_angular_rate_standard_deviation(self) -> Triad:
        return self._gyroscope.initial.standard_deviation

    @property
    def gyroscope_base_noise_level(self) -> float:
        """Angular rate noise (std norm) measured during initialization, in rad/s."""
        return self._gyroscope.angular_rate_standard_deviation

    @property
    def gyroscope_base_noise_level_psd(self) -> float:
        return self.gyroscope_base_noise_level ** 2 * self.time_interval

    @property
    def gyroscope_base_noise_level_root_psd(self) -> float:
        return self.gyroscope_base_noise_level * float(np.sqrt(self.time_interval))
