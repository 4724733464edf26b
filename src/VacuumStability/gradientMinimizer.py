"""
gradientMinimizer
=================

Local minimizers that roll a starting field configuration down to the nearest
minimum of the potential at a fixed temperature.

:class:`GradientMinimizer` is the interface used by the vacuum selector;
:class:`ScipyGradientMinimizer` is the default implementation built on
:func:`scipy.optimize.minimize`.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Mapping, Optional

import numpy as np
import numpy.typing as npt
from scipy import optimize

from .helper_functions import gradientFunction
from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum

log = logging.getLogger(__name__)

__all__ = ["GradientMinimizer", "ScipyGradientMinimizer"]


class GradientMinimizer(ABC):
    """
    Roll a starting point to a minimum of ``potentialFunction`` at the
    temperature set by :meth:`setTemperature` (zero by default).

    A failed minimization must not raise: it is reported by returning a
    :class:`PotentialMinimum` whose value or error is NaN, which the caller
    treats as a request to retry from another point.
    """

    def __init__(self, potentialFunction: PotentialFunction) -> None:
        self.potentialFunction = potentialFunction
        self.minimizationTemperature = 0.0

    def setTemperature(self, minimizationTemperature: float) -> None:
        self.minimizationTemperature = float(minimizationTemperature)

    @abstractmethod
    def __call__(self, startingPoint: npt.ArrayLike) -> PotentialMinimum:
        """Minimum reached from ``startingPoint``."""


class ScipyGradientMinimizer(GradientMinimizer):
    """
    Quasi-Newton minimization with a finite-difference gradient.

    Parameters
    ----------
    potentialFunction :
        Potential to minimize.
    method :
        Any gradient-based method accepted by :func:`scipy.optimize.minimize`
        (default ``"BFGS"``).
    relativeGradientStep :
        Finite-difference step, relative to ``max(1, |x0|)`` of each starting
        point.
    gtol :
        Gradient tolerance passed to the optimizer.
    maxiter :
        Maximum number of optimizer iterations.
    options :
        Extra options merged into the optimizer options.

    Notes
    -----
    ``functionError`` of the returned minimum is the estimated distance to the
    minimum, ``0.5 * g^T H^{-1} g`` with the final gradient ``g`` and the
    optimizer's inverse-Hessian estimate. When the method does not provide an
    inverse Hessian, a relative round-off bound on the function value is used.
    """

    def __init__(
        self,
        potentialFunction: PotentialFunction,
        method: str = "BFGS",
        relativeGradientStep: float = 1e-5,
        gtol: float = 1e-8,
        maxiter: int = 2000,
        options: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(potentialFunction)
        if not relativeGradientStep > 0.0:
            raise ValueError("ScipyGradientMinimizer: relativeGradientStep must be positive.")
        self.method = method
        self.relativeGradientStep = float(relativeGradientStep)
        self.options = {"gtol": float(gtol), "maxiter": int(maxiter)}
        if options:
            self.options.update(options)

    def __call__(self, startingPoint: npt.ArrayLike) -> PotentialMinimum:
        x0 = np.asarray(startingPoint, dtype=float).reshape(-1)
        n_fields = self.potentialFunction.numberOfFieldVariables()
        if x0.size != n_fields:
            msg = (
                f"ScipyGradientMinimizer: starting point has {x0.size} entries, "
                f"the potential has {n_fields} fields."
            )
            raise ValueError(msg)

        temperature = self.minimizationTemperature
        potential = self.potentialFunction

        def V_fixed(x: np.ndarray) -> float:
            return float(potential(x, temperature))

        step = self.relativeGradientStep * max(1.0, float(np.linalg.norm(x0)))
        dV_fixed = gradientFunction(V_fixed, eps=step, Ndim=n_fields, order=4)

        try:
            with np.errstate(all="ignore"):
                result = optimize.minimize(
                    V_fixed, x0, jac=dV_fixed, method=self.method, options=self.options
                )
                x_min = np.asarray(result.x, dtype=float).reshape(-1)
                value = V_fixed(x_min)
                error = self._estimatedDistanceToMinimum(result, dV_fixed, x_min, value)
        except (ArithmeticError, ValueError, np.linalg.LinAlgError) as err:
            log.debug("Minimization from %s failed: %s", x0, err)
            return PotentialMinimum(x0, float("nan"), float("nan"))

        log.debug(
            "Rolled %s to %s at T=%g (V=%g, success=%s)",
            x0, x_min, temperature, value, result.success,
        )
        return PotentialMinimum(x_min, value, error)

    @staticmethod
    def _estimatedDistanceToMinimum(result, dV_fixed, x_min, value) -> float:
        hess_inv = getattr(result, "hess_inv", None)
        if hess_inv is None:
            return float(np.sqrt(np.finfo(float).eps) * max(1.0, abs(value)))
        if hasattr(hess_inv, "todense"):
            hess_inv = hess_inv.todense()
        hess_inv = np.asarray(hess_inv, dtype=float)
        g = dV_fixed(x_min)
        return float(0.5 * abs(g @ hess_inv @ g))
