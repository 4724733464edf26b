"""
Block HF – helper_functions, constants and warningLogger.

- set_default_args: rebinding defaults in place and through a wrapper,
  which is how run-wide configuration is changed.
- gradientFunction: point-by-point central differences.
- constants: the literal values and the read-only table.
- warningLogger: the process-wide, append-only warning sink.
"""

from __future__ import annotations

import logging
import math
import sys

import numpy as np
import pytest

from VacuumStability import (
    PHYSICAL_CONSTANTS,
    WarningLogger,
    clearWarnings,
    gradientFunction,
    logWarning,
    set_default_args,
    warningMessages,
)
from VacuumStability import constants


def test_blockHF_1_set_default_args_inplace_and_wrapper():
    def f(a, b=2, *, c=3):
        return a + b + c

    wrapped = set_default_args(f, inplace=False, b=20, c=30)
    print(f"\n[HF-1] f(1) = {f(1)}, wrapped(1) = {wrapped(1)}")
    assert f(1) == 6
    assert wrapped(1) == 51
    assert wrapped(1, 0) == 31
    assert wrapped(1, c=0) == 21

    returned = set_default_args(f, b=10, c=100)
    assert returned is f
    assert f(1) == 111
    assert f(1, b=0, c=0) == 1

    with pytest.raises(ValueError):
        set_default_args(f, d=1)
    with pytest.raises(ValueError):
        set_default_args(f, a=1)
    with pytest.raises(TypeError):
        set_default_args(42, a=1)


def test_blockHF_2_set_default_args_on_methods():
    class Config:
        def value(self, x=1):
            return x

    set_default_args(Config.value, x=5)
    assert Config().value() == 5

    instance = Config()
    set_default_args(instance.value, x=7)
    assert Config().value() == 7


def test_blockHF_3_gradientFunction():
    def f(x, scale=1.0):
        return scale * (x[0] ** 2 + 3.0 * x[1] + x[0] * x[1] ** 2)

    for order in (2, 4):
        df = gradientFunction(f, eps=1e-4, Ndim=2, order=order)
        grad = df([1.0, 2.0])
        print(f"\n[HF-3] order {order}: grad = {grad}")
        # (2 x0 + x1^2, 3 + 2 x0 x1)
        assert grad.shape == (2,)
        assert np.allclose(grad, [6.0, 7.0], rtol=1e-6)
        assert np.allclose(df([1.0, 2.0], scale=2.0), [12.0, 14.0], rtol=1e-6)

    with pytest.raises(ValueError):
        gradientFunction(f, eps=1e-3, Ndim=2, order=3)
    with pytest.raises(ValueError):
        gradientFunction(f, eps=[1e-3, 1e-3, 1e-3], Ndim=2)
    with pytest.raises(ValueError):
        gradientFunction(f, eps=1e-3, Ndim=2)([1.0, 2.0, 3.0])


def test_blockHF_4_constants():
    print(f"\n[HF-4] maximumPowerOfNaturalExponent = {constants.maximumPowerOfNaturalExponent}")
    assert constants.maximumPowerOfNaturalExponent == pytest.approx(
        math.log(0.5 * sys.float_info.max)
    )
    assert math.isfinite(math.exp(constants.maximumPowerOfNaturalExponent))
    assert constants.hBarInGigaElectronVoltSeconds == 6.58211928e-25
    assert constants.ageOfKnownUniverseInSeconds == 4.3e17
    assert constants.ageOfKnownUniverseInInverseGigaElectronVolts == pytest.approx(
        4.3e17 / 6.58211928e-25
    )
    assert constants.maximumAllowedTemperature == 2.435e18
    assert constants.lnOfThermalIntegrationFactor == 244.53
    assert constants.NOT_CALCULATED == -1.0

    assert PHYSICAL_CONSTANTS["hBarInGigaElectronVoltSeconds"] == 6.58211928e-25
    with pytest.raises(TypeError):
        PHYSICAL_CONSTANTS["hBarInGigaElectronVoltSeconds"] = 1.0


def test_blockHF_5_warning_sink(caplog):
    clearWarnings()
    with caplog.at_level(logging.WARNING, logger="VacuumStability.warningLogger"):
        logWarning("first")
        logWarning(RuntimeError("second"))
    messages = warningMessages()
    print(f"\n[HF-5] warnings: {messages}")
    assert messages == ["first", "second"]
    assert "first" in caplog.text

    # Callers get copies.
    messages.append("third")
    assert len(warningMessages()) == 2

    clearWarnings()
    assert warningMessages() == []

    sink = WarningLogger()
    sink.logWarning("local")
    assert len(sink) == 1
    assert warningMessages() == []


if __name__ == "__main__":
    test_blockHF_1_set_default_args_inplace_and_wrapper()
    test_blockHF_2_set_default_args_on_methods()
    test_blockHF_3_gradientFunction()
    test_blockHF_4_constants()
    print("\n[Block HF] All example tests executed (the caplog test needs pytest).")
