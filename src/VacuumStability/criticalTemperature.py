"""
criticalTemperature
===================

Bracketing of the highest temperature at which a zero-temperature vacuum is
still deeper than the field origin.

Thermal corrections lift the potential away from the symmetric point roughly
like T^4 times the field-dependent masses, so above some critical temperature
the origin becomes the deepest point. :func:`findMaxTunnelingTemperature`
brackets that temperature by doubling / halving a first guess and then
bisecting in the geometric mean, since the relevant scale is multiplicative.
"""

import logging
from typing import Callable, NamedTuple

import numpy as np

from .constants import maximumAllowedTemperature
from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum
from .warningLogger import logWarning

log = logging.getLogger(__name__)

__all__ = [
    "TemperatureRange",
    "TemperatureBracketError",
    "belowCriticalTemperature",
    "findMaxTunnelingTemperature",
]

CriticalTemperatureTest = Callable[[PotentialFunction, float, PotentialMinimum], bool]


class TemperatureRange(NamedTuple):
    """Pair of temperatures (GeV) with ``low <= T_crit <= high``."""
    low: float
    high: float


class TemperatureBracketError(RuntimeError):
    """Raised when no temperature below the critical one can be found."""


def belowCriticalTemperature(
    potentialFunction: PotentialFunction,
    temperature: float,
    zeroTemperatureVacuum: PotentialMinimum,
) -> bool:
    """
    True if, at ``temperature``, the potential at the field values of
    ``zeroTemperatureVacuum`` is still below the potential at the origin.
    """
    return bool(
        potentialFunction(zeroTemperatureVacuum.fieldConfiguration, temperature)
        < potentialFunction(potentialFunction.fieldValuesOrigin(), temperature)
    )


def findMaxTunnelingTemperature(
    potentialFunction: PotentialFunction,
    zeroTemperatureVacuum: PotentialMinimum,
    potentialAtOriginAtZeroTemperature: float,
    temperatureAccuracy: int = 7,
    *,
    criticalTemperatureTest: CriticalTemperatureTest = belowCriticalTemperature,
    maximumTemperature: float = maximumAllowedTemperature,
    maxHalvingSteps: int = 200,
) -> TemperatureRange:
    """
    Bracket the maximum temperature at which ``zeroTemperatureVacuum`` is
    deeper than the field origin.

    Parameters
    ----------
    potentialFunction :
        Temperature-dependent potential ``V(x, T)``.
    zeroTemperatureVacuum :
        Vacuum found at zero temperature.
    potentialAtOriginAtZeroTemperature :
        ``V(origin, 0)``, used for the first guess.
    temperatureAccuracy :
        Number of bisection steps. Each one halves ``ln(high / low)``, so the
        final bracket has ``high / low = 2 ** (2 ** -temperatureAccuracy)``.
    criticalTemperatureTest :
        Predicate ``test(potentialFunction, T, vacuum)``, True while below
        the critical temperature. It is assumed monotonic in T.
    maximumTemperature :
        Cap on the temperature; the reduced Planck mass by default.
    maxHalvingSteps :
        Bound on the number of halvings looking for a temperature below the
        critical one.

    Returns
    -------
    TemperatureRange
        ``(low, high)`` with the test True at ``low`` and False at ``high``;
        ``(cap, cap)`` if the test still holds at the cap, and ``(0, 0)`` if
        the vacuum is not below the origin at zero temperature.

    Raises
    ------
    ValueError
        If ``temperatureAccuracy`` is negative.
    TemperatureBracketError
        If ``maxHalvingSteps`` halvings do not reach a temperature where the
        test holds.

    Notes
    -----
    The thermal corrections are ``T^4 / (2 pi^2)`` times a sum of J functions
    that are about 2 for each massless degree of freedom; with ~100 degrees
    of freedom the coefficient of T^4 is ~5, hence the first guess
    ``(0.2 * (V(origin) - V(vacuum)))**0.25``.
    """
    if temperatureAccuracy < 0:
        raise ValueError("findMaxTunnelingTemperature: temperatureAccuracy must be >= 0.")

    depth = float(potentialAtOriginAtZeroTemperature) - potentialFunction(
        zeroTemperatureVacuum.fieldConfiguration, 0.0
    )
    if not depth > 0.0:
        logWarning(
            "Vacuum at "
            f"{potentialFunction.fieldConfigurationAsMathematica(zeroTemperatureVacuum.fieldConfiguration)}"
            " is not below the field origin at zero temperature, so its maximum"
            " tunneling temperature is taken to be zero."
        )
        return TemperatureRange(0.0, 0.0)

    def below(temperature: float) -> bool:
        return criticalTemperatureTest(potentialFunction, temperature, zeroTemperatureVacuum)

    temperatureGuess = (0.2 * depth) ** 0.25
    log.debug("Trying %g GeV.", temperatureGuess)

    while below(temperatureGuess):
        temperatureGuess += temperatureGuess
        if temperatureGuess >= maximumTemperature:
            temperatureGuess = maximumTemperature
            log.debug("... too low. Trying the Planck scale: %g GeV.", temperatureGuess)
            if below(temperatureGuess):
                log.info(
                    "Vacuum persists up to the maximum temperature %g GeV.",
                    maximumTemperature,
                )
                return TemperatureRange(maximumTemperature, maximumTemperature)
            break
        log.debug("... too low. Trying %g GeV.", temperatureGuess)

    # temperatureGuess is now above the critical temperature.
    temperatureGuess *= 0.5
    halvings = 0
    while not below(temperatureGuess):
        if halvings >= maxHalvingSteps:
            raise TemperatureBracketError(
                "findMaxTunnelingTemperature: no temperature below the critical "
                f"one found after {maxHalvingSteps} halvings "
                f"(last tried {temperatureGuess:g} GeV)."
            )
        temperatureGuess *= 0.5
        halvings += 1
        log.debug("... too high. Trying %g GeV.", temperatureGuess)

    low = temperatureGuess
    high = temperatureGuess + temperatureGuess
    for _ in range(temperatureAccuracy):
        temperatureGuess = float(np.sqrt(low * high))
        log.debug("Trying %g GeV.", temperatureGuess)
        if below(temperatureGuess):
            low = temperatureGuess
        else:
            high = temperatureGuess

    log.info("Temperature lies between %g GeV and %g GeV.", low, high)
    return TemperatureRange(low, high)
