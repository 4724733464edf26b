"""
Block TT – thermalTunneling: survival of the false vacuum through the
thermal history.

Potential used
--------------
A one-field toy with the symmetric phase as the false vacuum,

    V(phi, T) = phi^2 - 2 phi^3 + phi^4 / 2 + c T^2 phi^2,    c = 1/2,

with a deeper vacuum at phi_t = (3 + sqrt 5) / 2 that stays below the origin
up to T_c = 1.272. The bounce action is a hand-written S_3(T), so that the
dominant temperature and the resulting ln(-ln P) can be predicted:

    S_3(T) = T * (244 + 10 (T - 0.8)^2)

puts the minimum of S_3/T + 2 ln T at T = 0.645.

The survival-probability and decay-width clamps are checked tier by tier.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from VacuumStability import (
    CallablePotential,
    GradientMinimizer,
    PotentialMinimum,
    ThermalTunnelingCalculator,
    clearWarnings,
    lnOfThermalIntegrationFactor,
    maximumAllowedTemperature,
    maximumPowerOfNaturalExponent,
    partialThermalDecayWidth,
    thermalSurvivalProbability,
    warningMessages,
)

c: float = 0.5
phi_t: float = (3.0 + math.sqrt(5.0)) / 2.0


def V(x: np.ndarray, T: float) -> float:
    phi = x[0]
    return phi ** 2 - 2.0 * phi ** 3 + 0.5 * phi ** 4 + c * T ** 2 * phi ** 2


potential = CallablePotential(V, ["phi"], [0.0])
falseVacuum = PotentialMinimum([0.0], 0.0)
trueVacuum = PotentialMinimum([phi_t], V(np.array([phi_t]), 0.0))
T_crit: float = math.sqrt(-trueVacuum.functionValue / (c * phi_t ** 2))


class RecordingAction:
    def __init__(self, S3):
        self.S3 = S3
        self.calls = []

    def __call__(self, potentialFunction, false, true, T):
        self.calls.append((T, false, true))
        return self.S3(T)


def test_blockTT_1_survival_probability_tiers():
    cases = [
        (maximumPowerOfNaturalExponent, 0.0, True),
        (-maximumPowerOfNaturalExponent, 1.0, True),
        (-np.inf, 1.0, True),
        (7.0, 0.0, True),          # exp(7) > maximumPowerOfNaturalExponent
        (1.0, math.exp(-math.e), False),
        (-50.0, math.exp(-math.exp(-50.0)), False),
    ]
    for logLog, expected, warns in cases:
        clearWarnings()
        P = thermalSurvivalProbability(logLog)
        print(f"\n[TT-1] ln(-ln P) = {logLog:g} -> P = {P:.6g}")
        assert P == pytest.approx(expected)
        assert (len(warningMessages()) == 1) == warns

    assert partialThermalDecayWidth(maximumPowerOfNaturalExponent, 3.0) == -1.0
    assert partialThermalDecayWidth(-maximumPowerOfNaturalExponent, 3.0) == 0.0
    assert partialThermalDecayWidth(7.0, 3.0) == 1e100
    assert partialThermalDecayWidth(1.0, 3.0) == 3.0


def test_blockTT_2_false_vacuum_above_symmetric_phase():
    """A false vacuum above the origin at T = 0 is taken never to be reached."""
    def W(x, T):
        return x[0] ** 2 / 9.0

    raised = CallablePotential(W, ["phi"], [3.0])
    action = RecordingAction(lambda T: 100.0)
    calculator = ThermalTunnelingCalculator(action)

    clearWarnings()
    result = calculator(raised, PotentialMinimum([3.0], 1.0), PotentialMinimum([6.0], -1.0))
    print(f"\n[TT-2] {result}")
    assert result.survivalProbability == 0.0
    assert result.dominantTemperatureInGigaElectronVolts == 0.0
    assert result.logOfMinusLogOfThermalProbability == pytest.approx(-math.exp(maximumPowerOfNaturalExponent))
    assert result.partialThermalDecayWidth == -1.0
    assert result.rangeOfMaxTemperatureForOriginToTrue is None
    assert action.calls == []
    assert len(warningMessages()) == 1


def test_blockTT_3_dominant_temperature_and_probability():
    S3 = lambda T: T * (244.0 + 10.0 * (T - 0.8) ** 2)
    action = RecordingAction(S3)
    calculator = ThermalTunnelingCalculator(action, temperatureAccuracy=7,
                                            thermalIntegrationResolution=5)
    clearWarnings()
    result = calculator(potential, falseVacuum, trueVacuum)

    T_dom = result.dominantTemperatureInGigaElectronVolts
    expectedLogLog = lnOfThermalIntegrationFactor - S3(T_dom) / T_dom - math.log(T_dom)
    print(f"\n[TT-3] T_c = {T_crit:.4f}, T_dom = {T_dom:.4f}")
    print(f"  ln(-ln P) = {result.logOfMinusLogOfThermalProbability:.4f}, "
          f"P = {result.survivalProbability:.4f}, width = {result.partialThermalDecayWidth:.4g}")

    falseRange = result.rangeOfMaxTemperatureForOriginToFalse
    trueRange = result.rangeOfMaxTemperatureForOriginToTrue
    assert falseRange == (maximumAllowedTemperature, maximumAllowedTemperature)
    assert trueRange.low <= T_crit <= trueRange.high

    sampled = sorted({T for T, _, _ in action.calls})
    assert all(0.0 < T <= trueRange.low for T in sampled)
    assert 0.55 < T_dom < 0.75
    exponent = lambda T: S3(T) / T + 2.0 * math.log(T)
    assert exponent(T_dom) <= min(exponent(T) for T in sampled) + 1e-12

    assert result.logOfMinusLogOfThermalProbability == pytest.approx(expectedLogLog)
    assert result.survivalProbability == pytest.approx(math.exp(-math.exp(expectedLogLog)))
    assert 0.0 < result.survivalProbability < 1.0
    assert 0.0 < result.partialThermalDecayWidth < 1e-100
    assert warningMessages() == []


def test_blockTT_4_no_usable_temperature():
    calculator = ThermalTunnelingCalculator(RecordingAction(lambda T: np.inf))
    clearWarnings()
    result = calculator(potential, falseVacuum, trueVacuum)
    print(f"\n[TT-4] {result}")
    assert result.survivalProbability == 1.0
    assert result.dominantTemperatureInGigaElectronVolts == 0.0
    assert result.partialThermalDecayWidth == 0.0
    assert result.logOfMinusLogOfThermalProbability == -np.inf
    assert len(warningMessages()) == 2


class FollowingMinimizer(GradientMinimizer):
    """'Rolls' to the starting point itself; records the temperatures."""

    def __init__(self, potentialFunction):
        super().__init__(potentialFunction)
        self.temperatures = []

    def __call__(self, startingPoint):
        self.temperatures.append(self.minimizationTemperature)
        x = np.asarray(startingPoint, dtype=float)
        return PotentialMinimum(x, self.potentialFunction(x, self.minimizationTemperature))


def test_blockTT_5_symmetric_phase_above_false_vacuum_critical_temperature():
    """
    Two non-trivial vacua, the false one at phi = 1 disappearing into the
    symmetric phase at T = 0.707, the true one at phi = 3 at T = 2.12.
    Above the first temperature tunneling starts from the origin.
    """
    def W(x, T):
        return -0.25 * x[0] ** 4 + c * T ** 2 * x[0] ** 2

    quartic = CallablePotential(W, ["phi"], [1.0])
    false = PotentialMinimum([1.0], -0.25)
    true = PotentialMinimum([3.0], -20.25)
    action = RecordingAction(lambda T: 300.0 * T)
    minimizer = FollowingMinimizer(quartic)
    calculator = ThermalTunnelingCalculator(action, thermalMinimizer=minimizer)

    result = calculator(quartic, false, true)
    falseHigh = result.rangeOfMaxTemperatureForOriginToFalse.high
    print(f"\n[TT-5] false vacuum gone above {falseHigh:.4f}")
    for T, thermalFalse, thermalTrue in action.calls:
        print(f"  T = {T:.4f}: false {thermalFalse.fieldConfiguration}")
        if T >= falseHigh:
            assert thermalFalse.fieldConfiguration[0] == 0.0
        else:
            assert thermalFalse.fieldConfiguration[0] == 1.0
        assert thermalTrue.fieldConfiguration[0] == 3.0
    assert any(T >= falseHigh for T, _, _ in action.calls)
    assert any(T < falseHigh for T, _, _ in action.calls)

    # The minimizer followed the vacua and was set back to zero temperature.
    assert max(minimizer.temperatures) > 0.0
    assert minimizer.minimizationTemperature == 0.0


def test_blockTT_6_configuration_checks():
    with pytest.raises(ValueError):
        ThermalTunnelingCalculator(lambda *a: 0.0, thermalIntegrationResolution=0)
    with pytest.raises(ValueError):
        ThermalTunnelingCalculator(lambda *a: 0.0, vacuumSeparationFraction=-0.1)


if __name__ == "__main__":
    test_blockTT_1_survival_probability_tiers()
    test_blockTT_2_false_vacuum_above_symmetric_phase()
    test_blockTT_3_dominant_temperature_and_probability()
    test_blockTT_4_no_usable_temperature()
    test_blockTT_5_symmetric_phase_above_false_vacuum_critical_temperature()
    test_blockTT_6_configuration_checks()
    print("\n[Block TT] All example tests executed.")
