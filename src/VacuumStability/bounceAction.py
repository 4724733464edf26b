"""
bounceAction
============

Bounce-action collaborators: callables returning the Euclidean action of the
bounce between two vacua at a given temperature,

- the dimensionless O(4) action S_4 at zero temperature, or
- the O(3) action S_3 (in GeV) at non-zero temperature.

Any solver (path deformation, an external program, ...) can be plugged in by
subclassing :class:`BounceActionCalculator`. Two self-contained solvers work
along the straight path between the vacua:

- :class:`StraightPathBounceAction` solves the bounce equation along the path
  with :class:`tunneling1D.SingleFieldInstanton`;
- :class:`ThinWallBounceAction` is the thin-wall estimate, accurate only for
  nearly degenerate vacua.
"""

from abc import ABC, abstractmethod
import logging

import numpy as np
from scipy import integrate

from .potentialFunction import PotentialFunction
from .potentialMinimum import PotentialMinimum
from .tunneling1D import PotentialError, SingleFieldInstanton

log = logging.getLogger(__name__)

__all__ = ["BounceActionCalculator", "StraightPathBounceAction", "ThinWallBounceAction"]


class BounceActionCalculator(ABC):
    """Interface of a bounce-action solver."""

    def prepareCommonExtras(self, potentialFunction: PotentialFunction) -> None:
        """
        Called once per tunneling request before any action is computed, e.g.
        to write the potential out for an external solver. Does nothing by
        default.
        """

    @abstractmethod
    def __call__(
        self,
        potentialFunction: PotentialFunction,
        falseVacuum: PotentialMinimum,
        trueVacuum: PotentialMinimum,
        temperature: float,
    ) -> float:
        """Bounce action for tunneling from ``falseVacuum`` to ``trueVacuum``."""


class ThinWallBounceAction(BounceActionCalculator):
    r"""
    Thin-wall estimate of the bounce action along the straight path.

    With :math:`\epsilon = V(\phi_f) - V(\phi_t)` and the wall tension

    .. math::

        \sigma = \int_0^L \sqrt{2 \left[ V(s) - V(\phi_f)
                  - \tfrac{s}{L}\,(V(\phi_t) - V(\phi_f)) \right]}\; ds ,

    where the linear tilt between the vacua is removed from the potential
    before integrating, the actions are

    .. math::

        S_4 = \frac{27 \pi^2 \sigma^4}{2 \epsilon^3}, \qquad
        S_3 = \frac{16 \pi \sigma^3}{3 \epsilon^2}.

    Parameters
    ----------
    quadLimit :
        Subdivision limit for :func:`scipy.integrate.quad`.
    epsrel :
        Relative tolerance of the quadrature.

    Notes
    -----
    The estimate is only accurate for nearly degenerate vacua. If the true
    vacuum is not deeper the action is ``+inf``; if there is no barrier it
    is ``0``.
    """

    def __init__(self, quadLimit: int = 200, epsrel: float = 1e-8) -> None:
        self.quadLimit = int(quadLimit)
        self.epsrel = float(epsrel)

    def wallTension(
        self,
        potentialFunction: PotentialFunction,
        falseVacuum: PotentialMinimum,
        trueVacuum: PotentialMinimum,
        temperature: float,
    ) -> float:
        """Tension of the tilt-subtracted barrier along the straight path (GeV^3)."""
        x_false = falseVacuum.fieldConfiguration
        x_true = trueVacuum.fieldConfiguration
        direction = x_true - x_false
        length = float(np.linalg.norm(direction))
        if length == 0.0:
            return 0.0
        unit = direction / length
        V_false = potentialFunction(x_false, temperature)
        V_true = potentialFunction(x_true, temperature)

        def integrand(s: float) -> float:
            barrier = (
                potentialFunction(x_false + s * unit, temperature)
                - V_false
                - (s / length) * (V_true - V_false)
            )
            return float(np.sqrt(2.0 * barrier)) if barrier > 0.0 else 0.0

        sigma, abserr = integrate.quad(
            integrand, 0.0, length, limit=self.quadLimit, epsrel=self.epsrel
        )
        log.debug("Wall tension %g (+- %g) at T=%g", sigma, abserr, temperature)
        return float(sigma)

    def __call__(
        self,
        potentialFunction: PotentialFunction,
        falseVacuum: PotentialMinimum,
        trueVacuum: PotentialMinimum,
        temperature: float,
    ) -> float:
        epsilon = (
            potentialFunction(falseVacuum.fieldConfiguration, temperature)
            - potentialFunction(trueVacuum.fieldConfiguration, temperature)
        )
        if not epsilon > 0.0:
            return float("inf")
        sigma = self.wallTension(potentialFunction, falseVacuum, trueVacuum, temperature)
        if sigma == 0.0:
            return 0.0
        if temperature > 0.0:
            return float(16.0 * np.pi * sigma ** 3 / (3.0 * epsilon ** 2))
        return float(27.0 * np.pi ** 2 * sigma ** 4 / (2.0 * epsilon ** 3))


class StraightPathBounceAction(BounceActionCalculator):
    """
    Bounce action from the overshoot/undershoot solution along the straight
    line from the false to the true vacuum.

    The potential restricted to the line, ``V(x_false + s * unit, T)`` with
    ``0 <= s <= |x_true - x_false|``, is handed to
    :class:`tunneling1D.SingleFieldInstanton` with ``alpha = 3`` at ``T = 0``
    (S_4) and ``alpha = 2`` at ``T > 0`` (S_3, in GeV). Keyword arguments are
    passed on to :meth:`tunneling1D.SingleFieldInstanton.findProfile`.

    The action is ``+inf`` if the true vacuum is not deeper and ``0`` if there
    is no barrier along the line. Integration failures propagate as
    :class:`helper_functions.IntegrationError`.
    """

    def __init__(self, **profileOptions) -> None:
        self.profileOptions = dict(profileOptions)

    def __call__(
        self,
        potentialFunction: PotentialFunction,
        falseVacuum: PotentialMinimum,
        trueVacuum: PotentialMinimum,
        temperature: float,
    ) -> float:
        x_false = falseVacuum.fieldConfiguration
        direction = trueVacuum.fieldConfiguration - x_false
        length = float(np.linalg.norm(direction))
        V_false = potentialFunction(x_false, temperature)
        V_true = potentialFunction(trueVacuum.fieldConfiguration, temperature)
        if length == 0.0 or not V_true < V_false:
            return float("inf")
        unit = direction / length

        def pathPotential(s):
            s = np.asarray(s, dtype=float)
            values = [potentialFunction(x_false + si * unit, temperature) for si in s.ravel()]
            if s.ndim == 0:
                return float(values[0])
            return np.reshape(values, s.shape)

        alpha = 2 if temperature > 0.0 else 3
        try:
            instanton = SingleFieldInstanton(length, 0.0, pathPotential, alpha=alpha)
        except PotentialError as err:
            if "no barrier" in err.args:
                log.debug("No barrier along the path at T=%g", temperature)
                return 0.0
            raise
        profile = instanton.findProfile(**self.profileOptions)
        action = instanton.findAction(profile)
        log.debug("Bounce action %g (alpha=%d) at T=%g", action, alpha, temperature)
        return action
