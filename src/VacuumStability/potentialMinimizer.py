"""
potentialMinimizer
==================

Location and classification of the vacua of a potential.

:class:`GradientFromStartingPoints` rolls the model's nominal (DSB) field
values to the reference vacuum, rolls every starting point given by a
:class:`~.startingPointFinder.StartingPointFinder`, discards the results that
are the reference vacuum again (or a sign flip of it), and keeps the deeper
ones as *panic vacua*. Among those, the vacuum used for tunneling is either
the one nearest to the reference vacuum in field space or the global
minimum, depending on a policy flag fixed for the run.
"""

import logging
from typing import List, NamedTuple, Optional, Sequence

import numpy as np
import numpy.typing as npt

from .gradientMinimizer import GradientMinimizer
from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum
from .startingPointFinder import StartingPointFinder
from .warningLogger import logWarning

log = logging.getLogger(__name__)

__all__ = [
    "MinimizationError",
    "PanicVacuumSelection",
    "selectPanicVacua",
    "isPhaseRotationOfDsbVacuum",
    "GradientFromStartingPoints",
]


class MinimizationError(RuntimeError):
    """Raised when the reference vacuum itself cannot be rolled to a finite value."""


# ---------------------------------------------------------------------------
# Selection rules, independent of the minimization loop
# ---------------------------------------------------------------------------

class PanicVacuumSelection(NamedTuple):
    """Deepest and nearest panic vacua (both None when there are no panic vacua)."""
    globalMinimum: Optional[PotentialMinimum]
    nearestMinimum: Optional[PotentialMinimum]


def selectPanicVacua(
    panicVacua: Sequence[PotentialMinimum], dsbVacuum: PotentialMinimum
) -> PanicVacuumSelection:
    """
    Pick the deepest panic vacuum and the one nearest to ``dsbVacuum``.

    Ties keep the candidate that comes first in ``panicVacua``.
    """
    globalMinimum: Optional[PotentialMinimum] = None
    nearestMinimum: Optional[PotentialMinimum] = None
    nearestDistance = float("inf")
    for candidate in panicVacua:
        if globalMinimum is None or candidate.functionValue < globalMinimum.functionValue:
            globalMinimum = candidate
        distance = candidate.squareDistanceTo(dsbVacuum)
        if nearestMinimum is None or distance < nearestDistance:
            nearestMinimum = candidate
            nearestDistance = distance
    return PanicVacuumSelection(globalMinimum, nearestMinimum)


def isPhaseRotationOfDsbVacuum(
    candidateMinimum: PotentialMinimum,
    dsbVacuum: PotentialMinimum,
    thresholdSeparation: float,
) -> bool:
    """
    True if every field of ``candidateMinimum`` matches the DSB vacuum up to
    its sign, within ``thresholdSeparation``.

    Each component is compared on its own: the flips need not belong to a
    symmetry group of the potential.
    """
    candidate = np.abs(candidateMinimum.fieldConfiguration)
    dsb = np.abs(dsbVacuum.fieldConfiguration)
    return bool(np.all(np.abs(candidate - dsb) <= thresholdSeparation))


# ---------------------------------------------------------------------------
# Minimization from a set of starting points
# ---------------------------------------------------------------------------

class GradientFromStartingPoints:
    """
    Find the reference vacuum and the panic vacua of a potential.

    Parameters
    ----------
    potentialFunction :
        Potential providing the DSB field values and field names.
    startingPointFinder :
        Produces the starting points. Called once per selector: the points
        are kept for later calls of :meth:`findMinima` (for instance at other
        temperatures).
    gradientMinimizer :
        Rolls a starting point to a minimum.
    extremumSeparationThresholdFraction :
        Two minima closer than this fraction of the reference vacuum's
        field-space length are considered the same vacuum.
    nonDsbRollingToDsbScalingFactor :
        Factor applied to a starting point that is far from the reference
        vacuum but rolled into it anyway, before rolling it once more.
    globalIsPanic :
        If True, the panic vacuum used for tunneling is the deepest one,
        otherwise the one nearest to the reference vacuum.
    separationEpsilon :
        Added to the squared separation threshold (GeV^2), so that the
        threshold does not vanish when the reference vacuum is the origin.
    nanRetryScaling :
        Factor applied (cumulatively) to a starting point each time the
        minimizer returns a non-finite value or error.
    maxNanRetries :
        Number of such retries before the starting point is dropped.

    Attributes
    ----------
    dsbVacuum : PotentialMinimum or None
        Reference vacuum of the last run.
    foundMinima : list of PotentialMinimum
        Every minimum of the last run, reference-vacuum collapses included.
    panicVacua : list of PotentialMinimum
        Minima deeper than the reference vacuum, in the order found.
    panicVacuumGlobal, panicVacuumNearest, panicVacuum : PotentialMinimum or None
        Deepest panic vacuum, nearest panic vacuum, and the one of the two
        chosen by ``globalIsPanic``.
    dsbRolledToOrigin : bool
        True when the reference vacuum lies within the separation threshold
        of the field origin.
    """

    def __init__(
        self,
        potentialFunction: PotentialFunction,
        startingPointFinder: StartingPointFinder,
        gradientMinimizer: GradientMinimizer,
        extremumSeparationThresholdFraction: float = 0.05,
        nonDsbRollingToDsbScalingFactor: float = 4.0,
        globalIsPanic: bool = False,
        *,
        separationEpsilon: float = 1.0,
        nanRetryScaling: float = 0.8,
        maxNanRetries: int = 10,
    ) -> None:
        if extremumSeparationThresholdFraction < 0.0:
            raise ValueError(
                "GradientFromStartingPoints: extremumSeparationThresholdFraction "
                "must be non-negative."
            )
        if not separationEpsilon > 0.0:
            raise ValueError("GradientFromStartingPoints: separationEpsilon must be positive.")
        if maxNanRetries < 0:
            raise ValueError("GradientFromStartingPoints: maxNanRetries must be non-negative.")

        self.potentialFunction = potentialFunction
        self.startingPointFinder = startingPointFinder
        self.gradientMinimizer = gradientMinimizer
        self.extremumSeparationThresholdFraction = float(extremumSeparationThresholdFraction)
        self.nonDsbRollingToDsbScalingFactor = float(nonDsbRollingToDsbScalingFactor)
        self.globalIsPanic = bool(globalIsPanic)
        self.separationEpsilon = float(separationEpsilon)
        self.nanRetryScaling = float(nanRetryScaling)
        self.maxNanRetries = int(maxNanRetries)

        self.startingPoints: List[npt.NDArray[np.float64]] = []
        self.doneStartingPoints = False

        self.dsbVacuum: Optional[PotentialMinimum] = None
        self.foundMinima: List[PotentialMinimum] = []
        self.panicVacua: List[PotentialMinimum] = []
        self.panicVacuumGlobal: Optional[PotentialMinimum] = None
        self.panicVacuumNearest: Optional[PotentialMinimum] = None
        self.panicVacuum: Optional[PotentialMinimum] = None
        self.dsbRolledToOrigin = False

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def setWhichPanicVacuum(self, globalIsPanic: bool) -> None:
        """
        Choose between the global (True) and nearest (False) panic vacuum.
        Meant to be called between runs; the current selection is updated.
        """
        self.globalIsPanic = bool(globalIsPanic)
        self._selectPanicVacuum()

    def _selectPanicVacuum(self) -> None:
        if self.dsbVacuum is None:
            return
        selection = selectPanicVacua(self.panicVacua, self.dsbVacuum)
        self.panicVacuumGlobal = selection.globalMinimum
        self.panicVacuumNearest = selection.nearestMinimum
        if self.globalIsPanic:
            self.panicVacuum = self.panicVacuumGlobal
        else:
            self.panicVacuum = self.panicVacuumNearest

    # ------------------------------------------------------------------
    # Rolling
    # ------------------------------------------------------------------

    def _rollWithRetries(self, startingPoint: np.ndarray) -> Optional[PotentialMinimum]:
        """
        Roll ``startingPoint``; on a non-finite result roll it again from
        points scaled toward the origin. Returns None once the retries are
        exhausted.
        """
        foundMinimum = self.gradientMinimizer(startingPoint)
        retries = 0
        while not foundMinimum.isFinite():
            if retries >= self.maxNanRetries:
                return None
            retries += 1
            scaledPoint = startingPoint * (self.nanRetryScaling ** retries)
            log.info(
                "Minimizer encountered numerical issues. Trying from a scaled "
                "starting point: %s",
                self.potentialFunction.fieldConfigurationAsMathematica(scaledPoint),
            )
            foundMinimum = self.gradientMinimizer(scaledPoint)
        return foundMinimum

    def _rolledToDsbOrSignFlip(
        self,
        foundMinimum: PotentialMinimum,
        thresholdSeparationSquared: float,
        thresholdSeparation: float,
    ) -> bool:
        return (
            foundMinimum.squareDistanceTo(self.dsbVacuum) < thresholdSeparationSquared
            or isPhaseRotationOfDsbVacuum(foundMinimum, self.dsbVacuum, thresholdSeparation)
        )

    def _ensureStartingPoints(self) -> None:
        if not self.doneStartingPoints:
            self.startingPoints = [
                np.asarray(point, dtype=float).reshape(-1)
                for point in self.startingPointFinder()
            ]
            self.doneStartingPoints = True

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def findMinima(self, minimizationTemperature: float = 0.0) -> None:
        """
        Populate the vacuum classification at ``minimizationTemperature``.

        Raises
        ------
        MinimizationError
            If the DSB field values cannot be rolled to a finite minimum.
        """
        fieldNames = self.potentialFunction.fieldNames()
        self.gradientMinimizer.setTemperature(minimizationTemperature)
        self.foundMinima = []
        self.panicVacua = []
        self.panicVacuumGlobal = None
        self.panicVacuumNearest = None
        self.panicVacuum = None

        dsbInput = self.potentialFunction.dsbFieldValues()
        log.info(
            "DSB vacuum input: %s",
            self.potentialFunction.fieldConfigurationAsMathematica(dsbInput),
        )
        dsbVacuum = self._rollWithRetries(dsbInput)
        if dsbVacuum is None:
            raise MinimizationError(
                "findMinima: the DSB field values could not be rolled to a finite "
                f"minimum after {self.maxNanRetries} retries."
            )
        self.dsbVacuum = dsbVacuum
        log.info("Rolled to: %s", dsbVacuum.asMathematica(fieldNames))

        thresholdSeparationSquared = (
            self.extremumSeparationThresholdFraction ** 2 * dsbVacuum.lengthSquared()
            + self.separationEpsilon
        )
        thresholdSeparation = float(np.sqrt(thresholdSeparationSquared))

        self.dsbRolledToOrigin = dsbVacuum.lengthSquared() < thresholdSeparationSquared
        if self.dsbRolledToOrigin:
            log.info(
                "DSB vacuum input rolled to the origin; tunneling will be "
                "calculated from the origin to the panic vacuum "
                "(length squared %g, threshold %g).",
                dsbVacuum.lengthSquared(), thresholdSeparationSquared,
            )

        self._ensureStartingPoints()
        log.info(
            "Gradient-based minimization from %d starting points.",
            len(self.startingPoints),
        )

        for startingPoint in self.startingPoints:
            log.debug(
                "Starting point: %s",
                self.potentialFunction.fieldConfigurationAsMathematica(startingPoint),
            )
            foundMinimum = self._rollWithRetries(startingPoint)
            if foundMinimum is None:
                logWarning(
                    "Minimizer gave non-finite results from starting point "
                    f"{self.potentialFunction.fieldConfigurationAsMathematica(startingPoint)}"
                    f" and from {self.maxNanRetries} scaled versions of it, so it"
                    " was skipped."
                )
                continue
            log.debug("Rolled to: %s", foundMinimum.asMathematica(fieldNames))

            rolledToDsbOrSignFlip = self._rolledToDsbOrSignFlip(
                foundMinimum, thresholdSeparationSquared, thresholdSeparation
            )

            # A starting point far from the DSB vacuum that still rolled into
            # it may sit in a basin of attraction enlarged by loop corrections,
            # so it is rolled once more from further out. The origin is not
            # re-rolled.
            if (rolledToDsbOrSignFlip
                    and dsbVacuum.squareDistanceTo(startingPoint) > thresholdSeparationSquared
                    and float(np.dot(startingPoint, startingPoint)) > thresholdSeparationSquared):
                scaledPoint = startingPoint * self.nonDsbRollingToDsbScalingFactor
                log.info(
                    "Non-DSB-minimum starting point rolled to the DSB minimum, or "
                    "a phase rotation. Trying a scaled starting point: %s",
                    self.potentialFunction.fieldConfigurationAsMathematica(scaledPoint),
                )
                rerolledMinimum = self._rollWithRetries(scaledPoint)
                if rerolledMinimum is not None:
                    foundMinimum = rerolledMinimum
                    rolledToDsbOrSignFlip = self._rolledToDsbOrSignFlip(
                        foundMinimum, thresholdSeparationSquared, thresholdSeparation
                    )
                    log.debug("Rolled to: %s", foundMinimum.asMathematica(fieldNames))

            self.foundMinima.append(foundMinimum)

            if (not rolledToDsbOrSignFlip
                    and (foundMinimum.functionValue + foundMinimum.functionError
                         < dsbVacuum.functionValue)):
                self.panicVacua.append(foundMinimum)
                self._selectPanicVacuum()

        self._logSummary(fieldNames)

    def _logSummary(self, fieldNames: Sequence[str]) -> None:
        log.info("DSB vacuum = %s", self.dsbVacuum.asMathematica(fieldNames))
        if not self.panicVacua:
            log.info("DSB vacuum is stable as far as the model allows.")
            return
        log.info("There are %d panic vacua.", len(self.panicVacua))
        log.info("Panic vacuum used in tunneling = %s", self.panicVacuum.asMathematica(fieldNames))
        log.info("Global minimum = %s", self.panicVacuumGlobal.asMathematica(fieldNames))
        log.info("Nearest panic vacuum = %s", self.panicVacuumNearest.asMathematica(fieldNames))
