"""VacuumStability: vacuum finding and tunneling-based lifetime estimates for scalar potentials."""

from .constants import (PHYSICAL_CONSTANTS, NOT_CALCULATED, maximumPowerOfNaturalExponent,
                        maximumAllowedTemperature, hBarInGigaElectronVoltSeconds,
                        ageOfKnownUniverseInSeconds, ageOfKnownUniverseInInverseGigaElectronVolts,
                        lnOfThermalIntegrationFactor)

from .helper_functions import set_default_args, gradientFunction, IntegrationError

from .warningLogger import WarningLogger, logWarning, warningMessages, clearWarnings

from .potentialMinimum import PotentialMinimum
from .potentialFunction import PotentialFunction, CallablePotential
from .gradientMinimizer import GradientMinimizer, ScipyGradientMinimizer
from .startingPointFinder import (StartingPointFinder, FixedStartingPoints, LineScanStartingPoints,
                                  findApproxLocalMin)

from .potentialMinimizer import (MinimizationError, PanicVacuumSelection, selectPanicVacua,
                                 isPhaseRotationOfDsbVacuum, GradientFromStartingPoints)

from .tunneling1D import PotentialError, SingleFieldInstanton
from .bounceAction import BounceActionCalculator, StraightPathBounceAction, ThinWallBounceAction
from .criticalTemperature import (TemperatureRange, TemperatureBracketError,
                                  belowCriticalTemperature, findMaxTunnelingTemperature)
from .quantumTunneling import (QuantumTunnelingResult, quantumSurvivalFromAction,
                               calculateQuantumTunneling)
from .thermalTunneling import (ThermalTunnelingResult, ThermalTunnelingCalculator,
                               thermalSurvivalProbability, partialThermalDecayWidth)
from .tunnelingCalculator import (TunnelingStrategy, TunnelingError, TunnelingResult,
                                  calculateTunneling, BounceActionTunneler)
from .vacuumStability import (STABLE, LONG_LIVED, SHORT_LIVED, ERROR,
                              StabilityResult, VacuumStabilityCalculator)

__version__ = "0.1.0"
