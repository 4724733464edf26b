"""
Block GFSP – potentialMinimizer: tests & tutorial-style examples for
GradientFromStartingPoints, the selector that rolls starting points to
minima and sorts them into the DSB (reference) vacuum and panic vacua.

The gradient minimizer is replaced by small "table" minimizers that map a
starting point to a fixed PotentialMinimum. That way every classification
rule can be checked with exact numbers:

- the same-vacuum and phase-rotation tests (threshold
  fraction^2 * |dsb|^2 + 1),
- the error-aware depth test (value + error < dsb value),
- nearest vs global panic vacuum,
- NaN retries toward the origin, and their bound,
- the re-roll of far starting points that fell into the DSB vacuum,
- starting points requested only once.

A last test runs the real ScipyGradientMinimizer on a tilted double well.
"""

from __future__ import annotations

from typing import Callable, List

import numpy as np
import pytest

from VacuumStability import (
    CallablePotential,
    FixedStartingPoints,
    GradientFromStartingPoints,
    GradientMinimizer,
    LineScanStartingPoints,
    MinimizationError,
    PotentialMinimum,
    ScipyGradientMinimizer,
    StartingPointFinder,
    clearWarnings,
    findApproxLocalMin,
    isPhaseRotationOfDsbVacuum,
    selectPanicVacua,
    warningMessages,
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class TableMinimizer(GradientMinimizer):
    """Minimizer returning rule(startingPoint); records every call."""

    def __init__(self, potentialFunction, rule: Callable[[np.ndarray], PotentialMinimum]):
        super().__init__(potentialFunction)
        self.rule = rule
        self.calls: List[np.ndarray] = []

    def __call__(self, startingPoint):
        x = np.asarray(startingPoint, dtype=float).reshape(-1)
        self.calls.append(x.copy())
        return self.rule(x)


class CountingFinder(StartingPointFinder):
    def __init__(self, points):
        self.points = [np.asarray(p, dtype=float) for p in points]
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return [p.copy() for p in self.points]


def _potential(dsb):
    dsb = np.atleast_1d(np.asarray(dsb, dtype=float))
    names = [f"phi{i}" for i in range(dsb.size)]
    # The selector never evaluates the potential itself.
    return CallablePotential(lambda x, T: 0.0, names, dsb)


def _selector(dsb, points, rule, **kwargs):
    potential = _potential(dsb)
    minimizer = TableMinimizer(potential, rule)
    finder = CountingFinder(points)
    selector = GradientFromStartingPoints(potential, finder, minimizer, **kwargs)
    return selector, finder, minimizer


def _twoMinimaRule(x):
    """DSB vacuum at [0] (0 +- 0.001), deeper vacuum at [5] (-10 +- 0.01)."""
    if abs(x[0] - 5.0) < 2.5:
        return PotentialMinimum([5.0], -10.0, 0.01)
    return PotentialMinimum([0.0], 0.0, 0.001)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_blockGFSP_1_two_minima_end_to_end():
    """
    Reference vacuum at [0], candidate at [5]: the candidate is the only
    panic vacuum and is the active one under both policies.
    """
    for globalIsPanic in (False, True):
        selector, _, _ = _selector(
            [0.0], [[0.0], [5.0]], _twoMinimaRule, globalIsPanic=globalIsPanic
        )
        selector.findMinima(0.0)

        print(f"\n[GFSP-1] globalIsPanic={globalIsPanic}")
        print(f"  DSB vacuum   : {selector.dsbVacuum}")
        print(f"  panic vacua  : {selector.panicVacua}")
        print(f"  active panic : {selector.panicVacuum}")

        expected = PotentialMinimum([5.0], -10.0, 0.01)
        assert selector.dsbVacuum == PotentialMinimum([0.0], 0.0, 0.001)
        assert selector.panicVacua == [expected]
        assert selector.panicVacuum == expected
        assert selector.panicVacuumGlobal == expected
        assert selector.panicVacuumNearest == expected
        assert len(selector.foundMinima) == 2
        # |dsb|^2 = 0 is below the threshold of 1.
        assert selector.dsbRolledToOrigin


def test_blockGFSP_2_depth_comparison_is_error_aware():
    """value - 0.001 with error 0.01 is not deeper; with error 0.0001 it is."""
    def ruleWithError(error):
        def rule(x):
            if abs(x[0] - 10.0) < 1.0:
                return PotentialMinimum([10.0], 0.0, 0.0)
            return PotentialMinimum([3.0], -0.001, error)
        return rule

    shallow, _, _ = _selector([10.0], [[3.0]], ruleWithError(0.01))
    shallow.findMinima()
    print(f"\n[GFSP-2] error 0.01   -> panic vacua {shallow.panicVacua}")
    assert shallow.panicVacua == []
    assert shallow.panicVacuum is None
    assert len(shallow.foundMinima) == 1

    deep, _, _ = _selector([10.0], [[3.0]], ruleWithError(0.0001))
    deep.findMinima()
    print(f"[GFSP-2] error 0.0001 -> panic vacua {deep.panicVacua}")
    assert deep.panicVacua == [PotentialMinimum([3.0], -0.001, 0.0001)]


def _policyRule(x):
    if abs(x[0] - 10.0) < 1.0:
        return PotentialMinimum([10.0], 0.0)
    if abs(x[0] - 4.0) < 1.0:
        return PotentialMinimum([4.0], -1.0)
    return PotentialMinimum([-20.0], -5.0)


def test_blockGFSP_3_policy_flag_only_changes_active_vacuum():
    selector, _, _ = _selector([10.0], [[4.0], [-20.0]], _policyRule, globalIsPanic=False)
    selector.findMinima()
    panicBefore = list(selector.panicVacua)

    print("\n[GFSP-3] nearest policy:", selector.panicVacuum)
    assert selector.panicVacuum == PotentialMinimum([4.0], -1.0)

    selector.setWhichPanicVacuum(True)
    print("[GFSP-3] global policy :", selector.panicVacuum)
    assert selector.panicVacuum == PotentialMinimum([-20.0], -5.0)
    assert selector.panicVacua == panicBefore

    fresh, _, _ = _selector([10.0], [[4.0], [-20.0]], _policyRule, globalIsPanic=True)
    fresh.findMinima()
    assert fresh.panicVacua == panicBefore
    assert fresh.panicVacuum == PotentialMinimum([-20.0], -5.0)


def test_blockGFSP_4_selectPanicVacua_fold_and_ties():
    dsb = PotentialMinimum([0.0, 0.0], 0.0)
    a = PotentialMinimum([1.0, 0.0], -2.0)
    b = PotentialMinimum([0.0, -1.0], -2.0)   # same depth and distance as a
    c = PotentialMinimum([3.0, 3.0], -1.0)

    selection = selectPanicVacua([a, b, c], dsb)
    print(f"\n[GFSP-4] global={selection.globalMinimum}, nearest={selection.nearestMinimum}")
    assert selection.globalMinimum == a
    assert selection.nearestMinimum == a

    # Order of candidates only matters for ties.
    selection = selectPanicVacua([c, b, a], dsb)
    assert selection.globalMinimum == b
    assert selection.nearestMinimum == b

    assert selectPanicVacua([], dsb) == (None, None)


def test_blockGFSP_5_phase_rotation_is_componentwise():
    dsb = PotentialMinimum([10.0, 5.0], 0.0)
    assert isPhaseRotationOfDsbVacuum(PotentialMinimum([-10.0, 5.0], 0.0), dsb, 0.5)
    assert isPhaseRotationOfDsbVacuum(PotentialMinimum([-10.2, -4.9], 0.0), dsb, 0.5)
    assert not isPhaseRotationOfDsbVacuum(PotentialMinimum([5.0, 10.0], 0.0), dsb, 0.5)

    # A sign flip of the DSB vacuum is never a panic vacuum, however deep.
    def rule(x):
        if x[0] > 0:
            return PotentialMinimum([10.0, 5.0], 0.0)
        return PotentialMinimum([-10.0, 5.0], -3.0)

    selector, _, _ = _selector([10.0, 5.0], [[-0.5, 0.2]], rule)
    selector.findMinima()
    print(f"\n[GFSP-5] found {selector.foundMinima}, panic {selector.panicVacua}")
    assert selector.panicVacua == []


def test_blockGFSP_6_starting_points_requested_once():
    selector, finder, _ = _selector([0.0], [[0.0], [5.0]], _twoMinimaRule)
    selector.findMinima(0.0)
    firstDsb = selector.dsbVacuum
    firstPanic = list(selector.panicVacua)

    selector.findMinima(0.0)
    print(f"\n[GFSP-6] finder called {finder.calls} time(s)")
    assert finder.calls == 1
    assert selector.doneStartingPoints
    assert selector.dsbVacuum == firstDsb
    assert selector.panicVacua == firstPanic


def test_blockGFSP_7_nan_results_are_retried_toward_origin():
    def rule(x):
        if abs(x[0] - 10.0) < 1.0:
            return PotentialMinimum([10.0], 0.0)
        if x[0] > 15.0:
            return PotentialMinimum(x, float("nan"))
        return PotentialMinimum([-30.0], -4.0)

    selector, _, minimizer = _selector([10.0], [[20.0]], rule)
    selector.findMinima()
    rolled = [float(c[0]) for c in minimizer.calls]
    print(f"\n[GFSP-7] minimizer called from {rolled}")

    # DSB, then 20 -> 16 -> 12.8
    assert rolled[:4] == pytest.approx([10.0, 20.0, 16.0, 12.8])
    assert selector.panicVacua == [PotentialMinimum([-30.0], -4.0)]


def test_blockGFSP_8_nan_retries_are_bounded():
    clearWarnings()

    def rule(x):
        if abs(x[0] - 10.0) < 1.0:
            return PotentialMinimum([10.0], 0.0)
        if 3.0 < x[0] < 8.0:
            return PotentialMinimum(x, float("nan"))
        return PotentialMinimum([-30.0], -4.0)

    selector, _, minimizer = _selector([10.0], [[7.0]], rule, maxNanRetries=3)
    selector.findMinima()
    rolled = [float(c[0]) for c in minimizer.calls]
    print(f"\n[GFSP-8] minimizer called from {rolled}")
    print(f"  warnings: {warningMessages()}")

    # DSB + the point itself + three scaled versions of it.
    assert len(minimizer.calls) == 5
    assert selector.foundMinima == []
    assert any("skipped" in message for message in warningMessages())

    def alwaysNan(x):
        return PotentialMinimum(x, float("nan"))

    broken, _, _ = _selector([10.0], [[7.0]], alwaysNan, maxNanRetries=2)
    with pytest.raises(MinimizationError):
        broken.findMinima()


def test_blockGFSP_9_far_point_rolling_into_dsb_is_rerolled():
    def rule(x):
        if abs(x[0]) > 30.0:
            return PotentialMinimum([-40.0], -7.0)
        if x[0] < 0:
            return PotentialMinimum([-10.0], 0.0)
        return PotentialMinimum([10.0], 0.0)

    selector, _, minimizer = _selector([10.0], [[-9.0], [0.0]], rule)
    selector.findMinima()
    rolled = [float(c[0]) for c in minimizer.calls]
    print(f"\n[GFSP-9] minimizer called from {rolled}")

    # -9 rolls to the sign flip [-10]; it is far from [10], so it is rolled
    # again from 4 * (-9). The origin is never re-rolled.
    assert rolled == pytest.approx([10.0, -9.0, -36.0, 0.0])
    assert selector.panicVacua == [PotentialMinimum([-40.0], -7.0)]


def test_blockGFSP_10_scipy_minimizer_and_line_scan():
    """
    Tilted double well V = ((phi - 2)(phi + 4))^2 + phi / 2, with minima near
    1.993 (the DSB vacuum) and -4.007 (deeper). The two are not sign flips of
    each other, so the deeper one is a genuine panic vacuum.
    """
    def V(x, T):
        return ((x[0] - 2.0) * (x[0] + 4.0)) ** 2 + 0.5 * x[0]

    potential = CallablePotential(V, ["phi"], [2.0])
    minimizer = ScipyGradientMinimizer(potential)

    right = minimizer([1.5])
    left = minimizer([-3.5])
    print(f"\n[GFSP-10] right minimum {right}")
    print(f"[GFSP-10] left minimum  {left}")
    assert right.fieldConfiguration[0] == pytest.approx(1.993, abs=1e-2)
    assert left.fieldConfiguration[0] == pytest.approx(-4.007, abs=1e-2)
    assert left.functionValue < right.functionValue
    assert right.functionError >= 0.0

    minima = findApproxLocalMin(potential, [-8.0], [8.0], n=401)
    print(f"[GFSP-10] approximate minima along the line: {minima.ravel()}")
    assert minima.shape == (2, 1)

    finder = LineScanStartingPoints(potential, fieldRange=8.0, pointsPerLine=200)
    points = finder()
    print(f"[GFSP-10] line-scan starting points: {[p.tolist() for p in points]}")
    assert any(abs(p[0] + 4.0) < 0.1 for p in points)

    selector = GradientFromStartingPoints(potential, finder, minimizer)
    selector.findMinima()
    print(f"[GFSP-10] DSB {selector.dsbVacuum}, panic {selector.panicVacuum}")
    assert selector.panicVacuum is not None
    assert selector.panicVacuum.fieldConfiguration[0] == pytest.approx(-4.007, abs=1e-2)


def test_blockGFSP_11_fixed_starting_points():
    finder = FixedStartingPoints([[1, 2], (3.0, 4.0)])
    first = finder()
    first[0][0] = 99.0
    assert [p.tolist() for p in finder()] == [[1.0, 2.0], [3.0, 4.0]]


# ---------------------------------------------------------------------------
# Optional: manual run
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    test_blockGFSP_1_two_minima_end_to_end()
    test_blockGFSP_2_depth_comparison_is_error_aware()
    test_blockGFSP_3_policy_flag_only_changes_active_vacuum()
    test_blockGFSP_4_selectPanicVacua_fold_and_ties()
    test_blockGFSP_5_phase_rotation_is_componentwise()
    test_blockGFSP_6_starting_points_requested_once()
    test_blockGFSP_7_nan_results_are_retried_toward_origin()
    test_blockGFSP_8_nan_retries_are_bounded()
    test_blockGFSP_9_far_point_rolling_into_dsb_is_rerolled()
    test_blockGFSP_10_scipy_minimizer_and_line_scan()
    test_blockGFSP_11_fixed_starting_points()
    print("\n[Block GFSP] All example tests executed.")
