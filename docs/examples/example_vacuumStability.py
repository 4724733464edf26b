# -----------------------------------------------------------------------------
# End-to-end demo for VacuumStabilityCalculator
# -----------------------------------------------------------------------------
# What this script provides
# ------------------------
# A one-field toy model with a DSB vacuum at phi = -v and a second vacuum near
# phi = +v, tilted by eps and lifted at finite temperature by c T^2 phi^2:
#
#     V(phi, T) = lambda/4 (phi^2 - v^2)^2 - eps/2 (phi/v + 1) + c T^2 phi^2
#
# A) one parameter point, printed step by step (vacua, tunneling, verdict);
# B) a scan over the tilt eps, plotting ln(-ln P) of the quantum and thermal
#    survival probabilities and marking where the verdict changes.
#
# Usage
# -----
#   python docs/examples/example_vacuumStability.py
#
# or import and call `run_all(save_dir=None)` from your notebook.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import os
from typing import Optional

import numpy as np
import matplotlib.pyplot as plt

from VacuumStability import (
    BounceActionTunneler,
    CallablePotential,
    GradientFromStartingPoints,
    LineScanStartingPoints,
    NOT_CALCULATED,
    ScipyGradientMinimizer,
    StraightPathBounceAction,
    TunnelingStrategy,
    VacuumStabilityCalculator,
)

np.set_printoptions(precision=6, suppress=True)

lam: float = 0.1
v: float = 100.0        # GeV
c: float = 0.05


def make_calculator(eps: float,
                    strategy: TunnelingStrategy = TunnelingStrategy.QuantumThenThermal
                    ) -> VacuumStabilityCalculator:
    def V(x, T=0.0):
        phi = x[0]
        return (0.25 * lam * (phi ** 2 - v ** 2) ** 2
                - 0.5 * eps * (phi / v + 1.0)
                + c * T ** 2 * phi ** 2)

    potential = CallablePotential(V, ["phi"], [-v])
    selector = GradientFromStartingPoints(
        potential,
        LineScanStartingPoints(potential, pointsPerLine=400),
        ScipyGradientMinimizer(potential),
    )
    tunneler = BounceActionTunneler(StraightPathBounceAction(), strategy)
    return VacuumStabilityCalculator(potential, selector, tunneler)


# -----------------------------------------------------------------------------
# A) A single point
# -----------------------------------------------------------------------------
def example_A_single_point(eps: float = 2.0e7) -> None:
    print(f"=== A) single point, eps = {eps:g} GeV^4 ===")
    calculator = make_calculator(eps)
    result = calculator.runPoint()
    print(f"DSB vacuum:   {result.dsbVacuum}")
    print(f"Panic vacuum: {result.panicVacuum}")
    tr = result.tunnelingResult
    print(f"Quantum: P = {tr.quantumSurvivalProbability:.6g}, "
          f"lifetime = {tr.quantumLifetimeInSeconds:.6g} s")
    if tr.thermalSurvivalProbability != NOT_CALCULATED:
        print(f"Thermal: P = {tr.thermalSurvivalProbability:.6g}, "
              f"T_dom = {tr.dominantTemperatureInGigaElectronVolts:.6g} GeV")
    print(f"Verdict: {result.verdict}")
    for message in result.warnings:
        print(f"  warning: {message}")


# -----------------------------------------------------------------------------
# B) Scan over the tilt
# -----------------------------------------------------------------------------
def example_B_tilt_scan(save_dir: Optional[str] = None, n: int = 15) -> None:
    print("=== B) scan over eps ===")
    tilts = np.geomspace(5.0e6, 5.0e7, n)
    quantum, thermal, verdicts = [], [], []
    for eps in tilts:
        # Both evaluators are wanted for the plot, so no short-circuit.
        result = make_calculator(eps, TunnelingStrategy.JustQuantum).runPoint()
        quantum.append(result.tunnelingResult.logOfMinusLogOfQuantumProbability)
        thermalResult = make_calculator(eps, TunnelingStrategy.JustThermal).runPoint()
        thermal.append(thermalResult.tunnelingResult.logOfMinusLogOfThermalProbability)
        verdicts.append(result.verdict)
        print(f"eps = {eps:10.4g}: quantum {result.verdict:12s} "
              f"thermal {thermalResult.verdict}")

    fig, ax = plt.subplots(figsize=(7, 4.5))
    ax.semilogx(tilts, quantum, "o-", label="quantum")
    ax.semilogx(tilts, thermal, "s--", label="thermal")
    ax.axhline(np.log(-np.log(0.01)), color="k", lw=0.8, ls=":",
               label="P = 0.01")
    ax.set_xlabel(r"$\epsilon$ [GeV$^4$]")
    ax.set_ylabel(r"$\ln(-\ln P)$")
    ax.set_title("Survival of the DSB vacuum")
    ax.legend()
    fig.tight_layout()
    plt.show()
    if save_dir:
        os.makedirs(save_dir, exist_ok=True)
        fig.savefig(os.path.join(save_dir, "B_tilt_scan.png"), dpi=160, bbox_inches="tight")


def run_all(save_dir: Optional[str] = None) -> None:
    example_A_single_point()
    example_B_tilt_scan(save_dir=save_dir)
    print("=== Showcase complete. ===")


# -----------------------------------------------------------------------------
# Script entry
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_all(save_dir=None)
