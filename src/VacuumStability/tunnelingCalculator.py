"""
tunnelingCalculator
===================

Choice between quantum and thermal tunneling calculations, and the record of
their results.

:func:`calculateTunneling` is a single dispatcher over
:class:`TunnelingStrategy`; the evaluators themselves live in
:mod:`quantumTunneling` and :mod:`thermalTunneling`.
:class:`BounceActionTunneler` holds the configuration and the latest
:class:`TunnelingResult` for callers that keep one tunneler per run.
"""

from dataclasses import dataclass, fields
from enum import Enum
import logging
from typing import Optional, Union

from .constants import NOT_CALCULATED
from .criticalTemperature import TemperatureRange, belowCriticalTemperature
from .gradientMinimizer import GradientMinimizer
from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum
from .quantumTunneling import TunnelingError, calculateQuantumTunneling
from .thermalTunneling import ThermalTunnelingCalculator
from .warningLogger import logWarning

log = logging.getLogger(__name__)

__all__ = [
    "TunnelingStrategy",
    "TunnelingError",
    "TunnelingResult",
    "calculateTunneling",
    "BounceActionTunneler",
]


class TunnelingStrategy(Enum):
    NoTunneling = "NoTunneling"
    JustQuantum = "JustQuantum"
    JustThermal = "JustThermal"
    QuantumThenThermal = "QuantumThenThermal"
    ThermalThenQuantum = "ThermalThenQuantum"

    @classmethod
    def fromName(cls, name: Union[str, "TunnelingStrategy"]) -> Optional["TunnelingStrategy"]:
        """
        The strategy called ``name``, or None if there is no such strategy.
        Enum members are returned unchanged.
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name))
        except ValueError:
            return None


@dataclass
class TunnelingResult:
    """
    Outcome of one tunneling request. Every field is ``NOT_CALCULATED``
    (-1) until the corresponding evaluator has run.
    """
    quantumSurvivalProbability: float = NOT_CALCULATED
    quantumLifetimeInSeconds: float = NOT_CALCULATED
    thermalSurvivalProbability: float = NOT_CALCULATED
    partialThermalDecayWidth: float = NOT_CALCULATED
    dominantTemperatureInGigaElectronVolts: float = NOT_CALCULATED
    logOfMinusLogOfQuantumProbability: float = NOT_CALCULATED
    logOfMinusLogOfThermalProbability: float = NOT_CALCULATED
    rangeOfMaxTemperatureForOriginToFalse: Optional[TemperatureRange] = None
    rangeOfMaxTemperatureForOriginToTrue: Optional[TemperatureRange] = None

    def reset(self) -> None:
        for field in fields(self):
            setattr(self, field.name, field.default)

    def lowestSurvivalProbability(self) -> float:
        """Smallest of the calculated survival probabilities, or -1 if none was."""
        calculated = [
            p for p in (self.quantumSurvivalProbability, self.thermalSurvivalProbability)
            if p != NOT_CALCULATED
        ]
        return min(calculated) if calculated else NOT_CALCULATED


def _runQuantum(result, potentialFunction, falseVacuum, trueVacuum, bounceAction) -> None:
    quantum = calculateQuantumTunneling(potentialFunction, falseVacuum, trueVacuum, bounceAction)
    result.quantumSurvivalProbability = quantum.survivalProbability
    result.quantumLifetimeInSeconds = quantum.lifetimeInSeconds
    result.logOfMinusLogOfQuantumProbability = quantum.logOfMinusLogOfQuantumProbability


def _runThermal(result, potentialFunction, falseVacuum, trueVacuum, thermalCalculator) -> None:
    thermal = thermalCalculator(potentialFunction, falseVacuum, trueVacuum)
    result.thermalSurvivalProbability = thermal.survivalProbability
    result.dominantTemperatureInGigaElectronVolts = thermal.dominantTemperatureInGigaElectronVolts
    result.partialThermalDecayWidth = thermal.partialThermalDecayWidth
    result.logOfMinusLogOfThermalProbability = thermal.logOfMinusLogOfThermalProbability
    result.rangeOfMaxTemperatureForOriginToFalse = thermal.rangeOfMaxTemperatureForOriginToFalse
    result.rangeOfMaxTemperatureForOriginToTrue = thermal.rangeOfMaxTemperatureForOriginToTrue


def calculateTunneling(
    tunnelingStrategy: Union[TunnelingStrategy, str, None],
    potentialFunction: PotentialFunction,
    falseVacuum: PotentialMinimum,
    trueVacuum: PotentialMinimum,
    bounceAction,
    thermalCalculator: ThermalTunnelingCalculator,
    survivalProbabilityThreshold: float = 0.01,
    result: Optional[TunnelingResult] = None,
) -> TunnelingResult:
    """
    Run the evaluators selected by ``tunnelingStrategy``.

    Parameters
    ----------
    tunnelingStrategy : TunnelingStrategy, str or None
        Strategy names are looked up with :meth:`TunnelingStrategy.fromName`.
        None and unknown names are treated as ``NoTunneling``, with a warning.
    potentialFunction, falseVacuum, trueVacuum :
        The request.
    bounceAction : callable
        Bounce-action collaborator, for the quantum evaluator. Its
        ``prepareCommonExtras(potentialFunction)``, if it has one, is called
        once before any evaluator runs.
    thermalCalculator : ThermalTunnelingCalculator
        Thermal evaluator.
    survivalProbabilityThreshold : float, optional
        In the two-step strategies the second evaluator only runs if the
        first survival probability is above this.
    result : TunnelingResult, optional
        Record to fill in; a new one by default. It is reset first.

    Raises
    ------
    TunnelingError
        If ``V(trueVacuum) >= V(falseVacuum)``. ``result`` is left untouched.
    """
    falseValue = potentialFunction(falseVacuum.fieldConfiguration)
    trueValue = potentialFunction(trueVacuum.fieldConfiguration)
    if not trueValue < falseValue:
        raise TunnelingError(
            "calculateTunneling: the true vacuum at "
            f"{potentialFunction.fieldConfigurationAsMathematica(trueVacuum.fieldConfiguration)}"
            f" (V = {trueValue}) is not deeper than the false vacuum at "
            f"{potentialFunction.fieldConfigurationAsMathematica(falseVacuum.fieldConfiguration)}"
            f" (V = {falseValue})."
        )

    if result is None:
        result = TunnelingResult()
    else:
        result.reset()

    if tunnelingStrategy is not None:
        tunnelingStrategy = TunnelingStrategy.fromName(tunnelingStrategy)
    if tunnelingStrategy is None:
        logWarning(
            "Unknown tunneling strategy requested, so no tunneling calculation"
            " was performed."
        )
        return result
    if tunnelingStrategy is TunnelingStrategy.NoTunneling:
        return result

    prepareCommonExtras = getattr(bounceAction, "prepareCommonExtras", None)
    if prepareCommonExtras is not None:
        prepareCommonExtras(potentialFunction)

    def quantum():
        _runQuantum(result, potentialFunction, falseVacuum, trueVacuum, bounceAction)

    def thermal():
        _runThermal(result, potentialFunction, falseVacuum, trueVacuum, thermalCalculator)

    if tunnelingStrategy is TunnelingStrategy.JustQuantum:
        quantum()
    elif tunnelingStrategy is TunnelingStrategy.JustThermal:
        thermal()
    elif tunnelingStrategy is TunnelingStrategy.QuantumThenThermal:
        quantum()
        if result.quantumSurvivalProbability > survivalProbabilityThreshold:
            thermal()
        else:
            log.info("Quantum survival probability below threshold; skipping thermal tunneling.")
    elif tunnelingStrategy is TunnelingStrategy.ThermalThenQuantum:
        thermal()
        if result.thermalSurvivalProbability > survivalProbabilityThreshold:
            quantum()
        else:
            log.info("Thermal survival probability below threshold; skipping quantum tunneling.")
    else:
        logWarning(
            f"Tunneling strategy {tunnelingStrategy!r} has no evaluators, so no"
            " tunneling calculation was performed."
        )
    return result


class BounceActionTunneler:
    """
    Tunneling calculator built on a bounce-action collaborator.

    Parameters
    ----------
    bounceActionCalculator : callable
        ``f(potential, falseVacuum, trueVacuum, T)``, returning S_4 at
        ``T = 0`` and S_3 (GeV) at ``T > 0``; see
        :class:`bounceAction.BounceActionCalculator`.
    tunnelingStrategy : TunnelingStrategy or str, optional
        Fixed for the lifetime of the tunneler. Unknown names are accepted
        and behave as ``NoTunneling`` with a warning at each request.
    survivalProbabilityThreshold : float, optional
    temperatureAccuracy, vacuumSeparationFraction, thermalIntegrationResolution :
        Passed to :class:`thermalTunneling.ThermalTunnelingCalculator`.
    thermalMinimizer, criticalTemperatureTest, maxHalvingSteps :
        Passed to :class:`thermalTunneling.ThermalTunnelingCalculator`.
    """

    def __init__(
        self,
        bounceActionCalculator,
        tunnelingStrategy: Union[TunnelingStrategy, str] = TunnelingStrategy.QuantumThenThermal,
        survivalProbabilityThreshold: float = 0.01,
        temperatureAccuracy: int = 7,
        vacuumSeparationFraction: float = 0.2,
        thermalIntegrationResolution: int = 5,
        *,
        thermalMinimizer: Optional[GradientMinimizer] = None,
        criticalTemperatureTest=belowCriticalTemperature,
        maxHalvingSteps: int = 200,
    ) -> None:
        self.bounceActionCalculator = bounceActionCalculator
        self.tunnelingStrategy = TunnelingStrategy.fromName(tunnelingStrategy)
        if self.tunnelingStrategy is None:
            log.debug("Unrecognised tunneling strategy %r.", tunnelingStrategy)
        self.survivalProbabilityThreshold = float(survivalProbabilityThreshold)
        self.thermalCalculator = ThermalTunnelingCalculator(
            bounceActionCalculator,
            temperatureAccuracy,
            vacuumSeparationFraction,
            thermalIntegrationResolution,
            thermalMinimizer=thermalMinimizer,
            criticalTemperatureTest=criticalTemperatureTest,
            maxHalvingSteps=maxHalvingSteps,
        )
        self.result = TunnelingResult()

    def calculateTunneling(
        self,
        potentialFunction: PotentialFunction,
        falseVacuum: PotentialMinimum,
        trueVacuum: PotentialMinimum,
    ) -> TunnelingResult:
        """Fill in and return :attr:`result` for this request."""
        return calculateTunneling(
            self.tunnelingStrategy,
            potentialFunction,
            falseVacuum,
            trueVacuum,
            self.bounceActionCalculator,
            self.thermalCalculator,
            self.survivalProbabilityThreshold,
            self.result,
        )

    def quantumSurvivalProbability(self) -> float:
        return self.result.quantumSurvivalProbability

    def quantumLifetimeInSeconds(self) -> float:
        return self.result.quantumLifetimeInSeconds

    def thermalSurvivalProbability(self) -> float:
        return self.result.thermalSurvivalProbability

    def partialThermalDecayWidth(self) -> float:
        return self.result.partialThermalDecayWidth

    def dominantTemperatureInGigaElectronVolts(self) -> float:
        return self.result.dominantTemperatureInGigaElectronVolts
