"""
vacuumStability
===============

One parameter point from start to finish: find the vacua of the potential,
tunnel from the reference vacuum to the chosen panic vacuum if there is one,
and classify the reference vacuum.

Usage::

    calculator = VacuumStabilityCalculator(potential, selector, tunneler)
    result = calculator.runPoint()
    print(result.verdict, result.tunnelingResult.quantumSurvivalProbability)
"""

from dataclasses import replace
import logging
from typing import List, NamedTuple, Optional
import warnings

from .constants import NOT_CALCULATED
from .criticalTemperature import TemperatureBracketError
from .helper_functions import IntegrationError
from .potentialFunction import PotentialFunction
from .potentialMinimizer import GradientFromStartingPoints, MinimizationError
from .potentialMinimum import PotentialMinimum
from .tunnelingCalculator import BounceActionTunneler, TunnelingError, TunnelingResult
from .tunneling1D import PotentialError
from .warningLogger import clearWarnings, logWarning, warningMessages

log = logging.getLogger(__name__)

__all__ = [
    "STABLE",
    "LONG_LIVED",
    "SHORT_LIVED",
    "ERROR",
    "StabilityResult",
    "VacuumStabilityCalculator",
]

STABLE = "stable"
LONG_LIVED = "long-lived"
SHORT_LIVED = "short-lived"
ERROR = "error"


class StabilityResult(NamedTuple):
    verdict: str
    dsbVacuum: Optional[PotentialMinimum]
    panicVacuum: Optional[PotentialMinimum]
    # The vacuum tunneled from: the DSB vacuum, or the origin if it rolled there.
    falseVacuum: Optional[PotentialMinimum]
    tunnelingResult: TunnelingResult
    warnings: List[str]
    errorMessage: Optional[str] = None


class VacuumStabilityCalculator:
    """
    Parameters
    ----------
    potentialFunction : PotentialFunction
    vacuumSelector : GradientFromStartingPoints
        Finds the DSB vacuum and the panic vacua.
    tunneler : BounceActionTunneler
    survivalProbabilityThreshold : float, optional
        Below this survival probability the DSB vacuum is short-lived.
        Defaults to the tunneler's threshold. A different value is allowed but
        warned about, since the tunneler then stops early at its own threshold.
    """

    def __init__(
        self,
        potentialFunction: PotentialFunction,
        vacuumSelector: GradientFromStartingPoints,
        tunneler: BounceActionTunneler,
        survivalProbabilityThreshold: Optional[float] = None,
    ) -> None:
        self.potentialFunction = potentialFunction
        self.vacuumSelector = vacuumSelector
        self.tunneler = tunneler
        if survivalProbabilityThreshold is None:
            survivalProbabilityThreshold = tunneler.survivalProbabilityThreshold
        elif survivalProbabilityThreshold != tunneler.survivalProbabilityThreshold:
            warnings.warn(
                "survivalProbabilityThreshold differs from the tunneler's "
                f"({tunneler.survivalProbabilityThreshold:g}); the two-step "
                "strategies skip their second step at the tunneler's value.",
                RuntimeWarning,
            )
        self.survivalProbabilityThreshold = float(survivalProbabilityThreshold)

    def _originMinimum(self) -> PotentialMinimum:
        origin = self.potentialFunction.fieldValuesOrigin()
        return PotentialMinimum(origin, self.potentialFunction(origin))

    def runPoint(self, clearWarningLog: bool = True) -> StabilityResult:
        """
        Classify the DSB vacuum of the potential.

        Parameters
        ----------
        clearWarningLog : bool, optional
            Empty the warning log first, so that the result only carries the
            warnings of this point.

        Returns
        -------
        StabilityResult
            ``verdict`` is ``"stable"`` if there is no panic vacuum,
            ``"short-lived"`` if a calculated survival probability is below
            the threshold, ``"long-lived"`` otherwise, and ``"error"`` if the
            point could not be processed.
        """
        if clearWarningLog:
            clearWarnings()
        selector = self.vacuumSelector
        tunnelingResult = TunnelingResult()

        try:
            selector.findMinima(0.0)
        except MinimizationError as err:
            return self._failed(None, None, None, tunnelingResult, err)

        dsbVacuum = selector.dsbVacuum
        panicVacuum = selector.panicVacuum
        if panicVacuum is None:
            log.info("No panic vacuum: the DSB vacuum is stable.")
            return StabilityResult(
                STABLE, dsbVacuum, None, None, tunnelingResult, warningMessages()
            )

        falseVacuum = self._originMinimum() if selector.dsbRolledToOrigin else dsbVacuum
        try:
            # Copied, since the tunneler reuses its record for the next point.
            tunnelingResult = replace(
                self.tunneler.calculateTunneling(self.potentialFunction, falseVacuum, panicVacuum)
            )
        except (TunnelingError, TemperatureBracketError, IntegrationError, PotentialError) as err:
            return self._failed(dsbVacuum, panicVacuum, falseVacuum, TunnelingResult(), err)

        lowest = tunnelingResult.lowestSurvivalProbability()
        if lowest != NOT_CALCULATED and lowest < self.survivalProbabilityThreshold:
            verdict = SHORT_LIVED
        else:
            verdict = LONG_LIVED
        log.info("DSB vacuum is %s (lowest survival probability %g).", verdict, lowest)
        return StabilityResult(
            verdict, dsbVacuum, panicVacuum, falseVacuum, tunnelingResult, warningMessages()
        )

    @staticmethod
    def _failed(dsbVacuum, panicVacuum, falseVacuum, tunnelingResult, err) -> StabilityResult:
        message = f"{type(err).__name__}: {err}"
        logWarning(f"Parameter point abandoned. {message}")
        return StabilityResult(
            ERROR, dsbVacuum, panicVacuum, falseVacuum, tunnelingResult,
            warningMessages(), message,
        )
