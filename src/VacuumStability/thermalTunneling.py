"""
thermalTunneling
================

Thermal tunneling: the probability that the false vacuum survives the
cooling of the Universe from the temperature at which it first appears.

The decay rate per unit volume at temperature T is ~ T^4 exp(-S_3(T) / T).
Integrated over the thermal history it gives

    -ln P = exp( lnOfThermalIntegrationFactor - S_3(T_d) / T_d - ln T_d ),

with T_d the dominant tunneling temperature, the one minimising
``S_3(T) / T + 2 ln T``. The search is restricted to temperatures where both
vacua exist as separate minima below the symmetric phase; those ranges are
bracketed with :func:`criticalTemperature.findMaxTunnelingTemperature`.
"""

import logging
from typing import Callable, List, NamedTuple, Optional, Tuple

import numpy as np
from scipy import integrate, optimize

from .constants import (
    NOT_CALCULATED,
    cappedDecayWidth,
    lnOfThermalIntegrationFactor,
    maximumAllowedTemperature,
    maximumPowerOfNaturalExponent,
)
from .criticalTemperature import (
    TemperatureRange,
    belowCriticalTemperature,
    findMaxTunnelingTemperature,
)
from .gradientMinimizer import GradientMinimizer
from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum
from .warningLogger import logWarning

log = logging.getLogger(__name__)

__all__ = [
    "ThermalTunnelingResult",
    "ThermalTunnelingCalculator",
    "thermalSurvivalProbability",
    "partialThermalDecayWidth",
]


class ThermalTunnelingResult(NamedTuple):
    survivalProbability: float
    dominantTemperatureInGigaElectronVolts: float
    partialThermalDecayWidth: float
    logOfMinusLogOfThermalProbability: float
    # None when the calculation stopped before bracketing.
    rangeOfMaxTemperatureForOriginToFalse: Optional[TemperatureRange] = None
    rangeOfMaxTemperatureForOriginToTrue: Optional[TemperatureRange] = None


def thermalSurvivalProbability(logOfMinusLogOfThermalProbability: float) -> float:
    """
    ``exp(-exp(logLog))``, with the overflowing tiers clamped:

    - ``logLog >= maximumPowerOfNaturalExponent``: 0;
    - ``logLog <= -maximumPowerOfNaturalExponent``: 1;
    - ``exp(logLog) >= maximumPowerOfNaturalExponent``: 0.

    Each clamp is recorded in the warning log.
    """
    logLog = float(logOfMinusLogOfThermalProbability)
    if logLog >= maximumPowerOfNaturalExponent:
        logWarning(
            "The calculated bounce action was so large and positive that"
            " exponentiating it would result in an overflow error, so setting the"
            " survival probability to zero."
        )
        return 0.0
    if logLog <= -maximumPowerOfNaturalExponent:
        logWarning(
            "The calculated bounce action was so large and negative that"
            " exponentiating it would result in an overflow error, so setting the"
            " survival probability to one."
        )
        return 1.0
    if np.exp(logLog) >= maximumPowerOfNaturalExponent:
        logWarning(
            "The calculated integrated decay width was so large and positive that"
            " exponentiating it would result in an overflow error, so setting the"
            " survival probability to zero."
        )
        return 0.0
    return float(np.exp(-np.exp(logLog)))


def partialThermalDecayWidth(
    logOfMinusLogOfThermalProbability: float, rawPartialDecayWidth: float
) -> float:
    """Partial decay width, with the same tiers as :func:`thermalSurvivalProbability`."""
    logLog = float(logOfMinusLogOfThermalProbability)
    if logLog >= maximumPowerOfNaturalExponent:
        return NOT_CALCULATED
    if logLog <= -maximumPowerOfNaturalExponent:
        return 0.0
    if np.exp(logLog) >= maximumPowerOfNaturalExponent:
        return cappedDecayWidth
    return float(rawPartialDecayWidth)


class _ThermalSample(NamedTuple):
    temperature: float
    action: float

    @property
    def exponent(self) -> float:
        return self.action / self.temperature + 2.0 * np.log(self.temperature)


class ThermalTunnelingCalculator:
    """
    Thermal survival probability of a false vacuum against one true vacuum.

    Parameters
    ----------
    bounceAction : callable
        ``bounceAction(potential, falseVacuum, trueVacuum, T)`` giving S_3 in
        GeV for ``T > 0``.
    temperatureAccuracy : int, optional
        Bisection steps when bracketing the critical temperatures.
    vacuumSeparationFraction : float, optional
        The thermal vacua must be farther apart than this fraction of the
        zero-temperature separation for a sample temperature to be used.
    thermalIntegrationResolution : int, optional
        Number of sample temperatures in ``(0, T_max]``.
    thermalMinimizer : GradientMinimizer, optional
        Used to follow the vacua to non-zero temperature. Without one the
        zero-temperature field values are used at every temperature.
    criticalTemperatureTest : callable, optional
        Predicate passed to :func:`findMaxTunnelingTemperature`.
    maxHalvingSteps : int, optional
        Passed to :func:`findMaxTunnelingTemperature`.
    """

    def __init__(
        self,
        bounceAction: Callable[[PotentialFunction, PotentialMinimum, PotentialMinimum, float], float],
        temperatureAccuracy: int = 7,
        vacuumSeparationFraction: float = 0.2,
        thermalIntegrationResolution: int = 5,
        *,
        thermalMinimizer: Optional[GradientMinimizer] = None,
        criticalTemperatureTest=belowCriticalTemperature,
        maxHalvingSteps: int = 200,
    ) -> None:
        if thermalIntegrationResolution < 1:
            raise ValueError(
                "ThermalTunnelingCalculator: thermalIntegrationResolution must be >= 1."
            )
        if not vacuumSeparationFraction >= 0.0:
            raise ValueError(
                "ThermalTunnelingCalculator: vacuumSeparationFraction must be >= 0."
            )
        self.bounceAction = bounceAction
        self.temperatureAccuracy = int(temperatureAccuracy)
        self.vacuumSeparationFraction = float(vacuumSeparationFraction)
        self.thermalIntegrationResolution = int(thermalIntegrationResolution)
        self.thermalMinimizer = thermalMinimizer
        self.criticalTemperatureTest = criticalTemperatureTest
        self.maxHalvingSteps = int(maxHalvingSteps)

    # ------------------------------------------------------------------

    def __call__(
        self,
        potentialFunction: PotentialFunction,
        falseVacuum: PotentialMinimum,
        trueVacuum: PotentialMinimum,
    ) -> ThermalTunnelingResult:
        thresholdSeparationSquared = (
            self.vacuumSeparationFraction ** 2 * falseVacuum.squareDistanceTo(trueVacuum)
        )
        falseIsOrigin = falseVacuum.lengthSquared() < thresholdSeparationSquared

        origin = potentialFunction.fieldValuesOrigin()
        potentialAtOrigin = float(potentialFunction(origin, 0.0))
        if potentialFunction(falseVacuum.fieldConfiguration, 0.0) > potentialAtOrigin and not falseIsOrigin:
            logWarning(
                "DSB vacuum has higher energy density than vacuum with no non-zero"
                " VEVs! Assuming that it is implausible that the Universe cooled into"
                " this false vacuum from the symmetric phase, and so setting survival"
                " probability to zero."
            )
            return ThermalTunnelingResult(
                survivalProbability=0.0,
                dominantTemperatureInGigaElectronVolts=0.0,
                partialThermalDecayWidth=NOT_CALCULATED,
                logOfMinusLogOfThermalProbability=-float(np.exp(maximumPowerOfNaturalExponent)),
            )

        falseRange, trueRange = self._maximumTemperatureRanges(
            potentialFunction, falseVacuum, trueVacuum, potentialAtOrigin, falseIsOrigin
        )

        samples, dominant = self._dominantTemperature(
            potentialFunction, falseVacuum, trueVacuum, falseRange, trueRange,
            thresholdSeparationSquared,
        )
        if dominant is None:
            logLog = -np.inf
            rawWidth = 0.0
            dominantTemperature = 0.0
            logWarning(
                "No temperature below the critical temperature of the true vacuum"
                " had both vacua well separated, so thermal tunneling is taken not"
                " to happen."
            )
        else:
            dominantTemperature = dominant.temperature
            logLog = (
                lnOfThermalIntegrationFactor
                - dominant.action / dominant.temperature
                - np.log(dominant.temperature)
            )
            rawWidth = self._rawPartialDecayWidth(samples, dominant)
            log.info(
                "Dominant tunneling temperature %g GeV, S_3 = %g GeV",
                dominant.temperature, dominant.action,
            )

        return ThermalTunnelingResult(
            survivalProbability=thermalSurvivalProbability(logLog),
            dominantTemperatureInGigaElectronVolts=float(dominantTemperature),
            partialThermalDecayWidth=partialThermalDecayWidth(logLog, rawWidth),
            logOfMinusLogOfThermalProbability=float(logLog),
            rangeOfMaxTemperatureForOriginToFalse=falseRange,
            rangeOfMaxTemperatureForOriginToTrue=trueRange,
        )

    # ------------------------------------------------------------------

    def _maximumTemperatureRanges(
        self, potentialFunction, falseVacuum, trueVacuum, potentialAtOrigin, falseIsOrigin
    ) -> Tuple[TemperatureRange, TemperatureRange]:
        if falseIsOrigin:
            # The symmetric phase is assumed to persist up to the cap.
            falseRange = TemperatureRange(maximumAllowedTemperature, maximumAllowedTemperature)
        else:
            falseRange = self._findRange(potentialFunction, falseVacuum, potentialAtOrigin)
        trueRange = self._findRange(potentialFunction, trueVacuum, potentialAtOrigin)
        log.debug("Origin to false vacuum: %s; origin to true vacuum: %s", falseRange, trueRange)
        return falseRange, trueRange

    def _findRange(self, potentialFunction, vacuum, potentialAtOrigin) -> TemperatureRange:
        return findMaxTunnelingTemperature(
            potentialFunction,
            vacuum,
            potentialAtOrigin,
            self.temperatureAccuracy,
            criticalTemperatureTest=self.criticalTemperatureTest,
            maxHalvingSteps=self.maxHalvingSteps,
        )

    def _thermalVacua(
        self, potentialFunction, falseVacuum, trueVacuum, falseRange, temperature
    ) -> Tuple[PotentialMinimum, PotentialMinimum]:
        if temperature >= falseRange.high:
            origin = potentialFunction.fieldValuesOrigin()
            thermalFalse = PotentialMinimum(origin, potentialFunction(origin, temperature))
        else:
            thermalFalse = self._roll(potentialFunction, falseVacuum, temperature)
        thermalTrue = self._roll(potentialFunction, trueVacuum, temperature)
        return thermalFalse, thermalTrue

    def _roll(self, potentialFunction, vacuum, temperature) -> PotentialMinimum:
        if self.thermalMinimizer is None:
            x = vacuum.fieldConfiguration
            return PotentialMinimum(x, potentialFunction(x, temperature))
        self.thermalMinimizer.setTemperature(temperature)
        return self.thermalMinimizer(vacuum.fieldConfiguration)

    def _sampleAt(
        self, potentialFunction, falseVacuum, trueVacuum, falseRange,
        thresholdSeparationSquared, temperature,
    ) -> Optional[_ThermalSample]:
        thermalFalse, thermalTrue = self._thermalVacua(
            potentialFunction, falseVacuum, trueVacuum, falseRange, temperature
        )
        if not (thermalFalse.isFinite() and thermalTrue.isFinite()):
            log.debug("Could not follow the vacua to T = %g GeV.", temperature)
            return None
        if not thermalTrue.functionValue < thermalFalse.functionValue:
            log.debug("True vacuum is not deeper at T = %g GeV.", temperature)
            return None
        if thermalFalse.squareDistanceTo(thermalTrue) < thresholdSeparationSquared:
            log.debug("Vacua too close together at T = %g GeV.", temperature)
            return None
        action = float(self.bounceAction(potentialFunction, thermalFalse, thermalTrue, temperature))
        if not np.isfinite(action):
            log.debug("No finite bounce action at T = %g GeV.", temperature)
            return None
        log.debug("S_3(%g GeV) = %g GeV", temperature, action)
        return _ThermalSample(temperature, action)

    def _dominantTemperature(
        self, potentialFunction, falseVacuum, trueVacuum, falseRange, trueRange,
        thresholdSeparationSquared,
    ) -> Tuple[List[_ThermalSample], Optional[_ThermalSample]]:
        """
        Sample S_3 below the critical temperature of the true vacuum, fit the
        exponent with a low order polynomial and minimise the fit.
        """
        maximumTemperature = trueRange.low
        if not maximumTemperature > 0.0:
            return [], None

        n = self.thermalIntegrationResolution

        def sampleAt(temperature: float) -> Optional[_ThermalSample]:
            return self._sampleAt(
                potentialFunction, falseVacuum, trueVacuum, falseRange,
                thresholdSeparationSquared, temperature,
            )

        restoreTemperature = getattr(self.thermalMinimizer, "minimizationTemperature", None)
        try:
            samples = []
            for k in range(1, n + 1):
                sample = sampleAt(k * maximumTemperature / (n + 1))
                if sample is not None:
                    samples.append(sample)
            if not samples:
                return [], None

            best = min(samples, key=lambda s: s.exponent)
            if len(samples) == 1:
                return samples, best

            temperatures = np.array([s.temperature for s in samples])
            exponents = np.array([s.exponent for s in samples])
            coefficients = np.polyfit(temperatures, exponents, min(2, len(samples) - 1))
            fitted = optimize.minimize_scalar(
                lambda T: float(np.polyval(coefficients, T)),
                bounds=(temperatures[0], temperatures[-1]),
                method="bounded",
            )
            candidate = sampleAt(float(fitted.x))
        finally:
            if restoreTemperature is not None:
                self.thermalMinimizer.setTemperature(restoreTemperature)

        if candidate is not None and candidate.exponent < best.exponent:
            return samples, candidate
        return samples, best

    @staticmethod
    def _rawPartialDecayWidth(samples: List[_ThermalSample], dominant: _ThermalSample) -> float:
        """Integral of T^-2 exp(-S_3 / T) over the sampled temperatures (GeV^-1)."""
        points = {s.temperature: s for s in samples}
        points[dominant.temperature] = dominant
        ordered = [points[T] for T in sorted(points)]
        with np.errstate(under="ignore"):
            if len(ordered) == 1:
                return float(np.exp(-dominant.action / dominant.temperature) / dominant.temperature)
            temperatures = np.array([s.temperature for s in ordered])
            integrand = np.exp(-np.array([s.exponent for s in ordered]))
            return float(integrate.trapezoid(integrand, temperatures))
