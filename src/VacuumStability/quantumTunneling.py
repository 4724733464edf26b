"""
quantumTunneling
================

Zero-temperature tunneling: from the O(4) bounce action to the lifetime of
the false vacuum and its probability to survive the age of the known
Universe.

For a bounce action S and a tunneling scale Q,

    lifetime = exp(S) * hbar / (t_U^3 * Q^4),    P = exp(-t_U / lifetime),

with the age t_U expressed in GeV^-1 in the denominator and in seconds in the
survival exponent. Exponentials that would overflow are replaced by limiting
values and reported to the warning log.
"""

import logging
import math
from typing import Callable, NamedTuple

import numpy as np

from .constants import (
    ageOfKnownUniverseInInverseGigaElectronVolts,
    ageOfKnownUniverseInSeconds,
    cappedLifetimeInSeconds,
    flooredLifetimeInSeconds,
    hBarInGigaElectronVoltSeconds,
    maximumPowerOfNaturalExponent,
)
from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum
from .warningLogger import logWarning

log = logging.getLogger(__name__)

__all__ = [
    "TunnelingError",
    "QuantumTunnelingResult",
    "quantumSurvivalFromAction",
    "calculateQuantumTunneling",
]


class TunnelingError(Exception):
    """
    Invalid tunneling request: the true vacuum is not deeper than the false
    one, or the bounce action is not a number.
    """


class QuantumTunnelingResult(NamedTuple):
    survivalProbability: float
    lifetimeInSeconds: float
    # ln( t_U / lifetime ), also reported when the action was clamped.
    logOfMinusLogOfQuantumProbability: float


def quantumSurvivalFromAction(quantumAction: float, scaleSquared: float) -> QuantumTunnelingResult:
    """
    Lifetime and survival probability for bounce action ``quantumAction``
    at tunneling scale ``sqrt(scaleSquared)`` (GeV).

    The checks are made in this order:

    1. ``S >= maximumPowerOfNaturalExponent``: lifetime 1e100 s, P = 1;
    2. ``S <= -maximumPowerOfNaturalExponent``: lifetime 0.1 s, P = 0;
    3. survival exponent ``t_U / lifetime >= maximumPowerOfNaturalExponent``:
       P = 0.

    Each clamp is recorded in the warning log. A NaN action raises
    :class:`TunnelingError`.
    """
    quantumAction = float(quantumAction)
    if math.isnan(quantumAction):
        raise TunnelingError(
            "quantumSurvivalFromAction: the bounce action is NaN, so no lifetime"
            " can be assigned."
        )
    if not scaleSquared > 0.0:
        raise ValueError("quantumSurvivalFromAction: scaleSquared must be positive.")

    scale = math.sqrt(scaleSquared)
    # ln(survival exponent), evaluated without forming the lifetime, which may
    # underflow to zero for large negative actions.
    logOfSurvivalExponent = float(
        np.log(ageOfKnownUniverseInSeconds)
        - quantumAction
        - np.log(hBarInGigaElectronVoltSeconds)
        + 3.0 * np.log(ageOfKnownUniverseInInverseGigaElectronVolts)
        + 4.0 * np.log(scale)
    )

    if quantumAction >= maximumPowerOfNaturalExponent:
        logWarning(
            "The calculated bounce action was so large and positive that"
            " exponentiating it would result in an overflow error, so capping the"
            f" lifetime at {cappedLifetimeInSeconds:g} seconds and setting the"
            " survival probability to one."
        )
        return QuantumTunnelingResult(1.0, cappedLifetimeInSeconds, logOfSurvivalExponent)
    if quantumAction <= -maximumPowerOfNaturalExponent:
        logWarning(
            "The calculated bounce action was so large and negative that"
            " exponentiating it would result in an overflow error, so capping the"
            f" lifetime at {flooredLifetimeInSeconds:g} seconds and setting the"
            " survival probability to zero."
        )
        return QuantumTunnelingResult(0.0, flooredLifetimeInSeconds, logOfSurvivalExponent)

    lifetimeInSeconds = (math.exp(quantumAction) * hBarInGigaElectronVoltSeconds) / (
        ageOfKnownUniverseInInverseGigaElectronVolts ** 3 * scale ** 4
    )
    if lifetimeInSeconds > 0.0:
        survivalExponent = ageOfKnownUniverseInSeconds / lifetimeInSeconds
    else:
        survivalExponent = math.inf
    if survivalExponent >= maximumPowerOfNaturalExponent:
        logWarning(
            "The calculated decay width was so large that exponentiating it"
            " would result in an overflow error, so setting the survival"
            " probability to zero."
        )
        return QuantumTunnelingResult(0.0, lifetimeInSeconds, logOfSurvivalExponent)

    return QuantumTunnelingResult(
        math.exp(-survivalExponent), lifetimeInSeconds, logOfSurvivalExponent
    )


def calculateQuantumTunneling(
    potentialFunction: PotentialFunction,
    falseVacuum: PotentialMinimum,
    trueVacuum: PotentialMinimum,
    bounceAction: Callable[[PotentialFunction, PotentialMinimum, PotentialMinimum, float], float],
) -> QuantumTunnelingResult:
    """
    Quantum survival probability of ``falseVacuum`` against decay into
    ``trueVacuum``, using the zero-temperature action from ``bounceAction``.
    """
    quantumAction = float(bounceAction(potentialFunction, falseVacuum, trueVacuum, 0.0))
    scaleSquared = potentialFunction.scaleSquaredRelevantToTunneling(falseVacuum, trueVacuum)
    log.info("Zero-temperature bounce action: %g", quantumAction)
    result = quantumSurvivalFromAction(quantumAction, scaleSquared)
    log.info(
        "Quantum lifetime %g s, survival probability %g",
        result.lifetimeInSeconds, result.survivalProbability,
    )
    return result
