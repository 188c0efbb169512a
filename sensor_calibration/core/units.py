"""Physical units for inertial and magnetic measurements.

Every enum member stores the factor converting one of its units into the
SI unit of the quantity, so conversions are a multiply/divide pair:

- Acceleration: m/s^2 (also standard gravity)
- Angular speed: rad/s (also deg/s)
- Magnetic flux density: T (also uT, nT and Gauss)
"""

from enum import Enum
from typing import Union

import numpy as np
from numpy.typing import NDArray
from scipy import constants


class AccelerationUnit(Enum):
    """Units of specific force / acceleration."""
    METERS_PER_SQUARED_SECOND = 1.0
    STANDARD_GRAVITY = constants.g


class AngularSpeedUnit(Enum):
    """Units of angular rate."""
    RADIANS_PER_SECOND = 1.0
    DEGREES_PER_SECOND = constants.degree


class MagneticFluxDensityUnit(Enum):
    """Units of magnetic flux density."""
    TESLA = 1.0
    MICROTESLA = constants.micro
    NANOTESLA = constants.nano
    GAUSS = 1e-4


Unit = Union[AccelerationUnit, AngularSpeedUnit, MagneticFluxDensityUnit]

SI_UNITS = {
    AccelerationUnit: AccelerationUnit.METERS_PER_SQUARED_SECOND,
    AngularSpeedUnit: AngularSpeedUnit.RADIANS_PER_SECOND,
    MagneticFluxDensityUnit: MagneticFluxDensityUnit.TESLA,
}


def si_unit(unit: Unit) -> Unit:
    """Return the SI unit of the quantity measured by ``unit``."""
    return SI_UNITS[type(unit)]


def convert(value: Union[float, NDArray[np.float64]], from_unit: Unit,
            to_unit: Unit) -> Union[float, NDArray[np.float64]]:
    """Convert a value (or array of values) between two units.

    Args:
        value: Value expressed in ``from_unit``.
        from_unit: Source unit.
        to_unit: Target unit. Must measure the same quantity.

    Returns:
        Value expressed in ``to_unit``.

    Raises:
        ValueError: If the units measure different quantities.
    """
    if type(from_unit) is not type(to_unit):
        raise ValueError(
            f"Cannot convert {from_unit.name} into {to_unit.name}: "
            "units measure different quantities"
        )
    if from_unit is to_unit:
        return value
    return value * from_unit.value / to_unit.value
