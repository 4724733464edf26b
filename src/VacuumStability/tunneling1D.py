"""
tunneling1D
===========

Bounce solutions for a single scalar field, found with the classic
overshoot/undershoot method. The field obeys

    phi'' + (alpha / r) phi' = dV/dphi,

with ``alpha = 3`` for the O(4) bounce at zero temperature and ``alpha = 2``
for the O(3) bounce at finite temperature. :class:`SingleFieldInstanton`
shoots on the field value at the centre of the bubble until the profile
neither overshoots the false vacuum nor turns back before reaching it, then
integrates the Euclidean action of that profile.

Multi-field potentials are reduced to one field by
:class:`bounceAction.StraightPathBounceAction`.
"""

from collections import namedtuple
import logging
from typing import Callable, Optional, Union

import numpy as np
from scipy import integrate, optimize, special
from scipy.integrate import simpson

from .helper_functions import IntegrationError

log = logging.getLogger(__name__)

__all__ = ["PotentialError", "SingleFieldInstanton"]


class PotentialError(Exception):
    """
    Raised when the potential lacks the features needed for tunneling.

    The second item of ``args`` is one of ``'no barrier'`` or
    ``'stable, not metastable'``.
    """
    pass


class SingleFieldInstanton:
    """
    Bounce profile and action of a single field between two minima.

    Parameters
    ----------
    phi_absMin : float
        Field value of the true (deeper) minimum.
    phi_metaMin : float
        Field value of the false (metastable) minimum.
    V : callable
        ``V(phi)``, accepting floats and 1D arrays.
    alpha : float, optional
        Friction coefficient, the number of spatial dimensions of the bubble.
    phi_eps : float, optional
        Finite-difference step, relative to ``|phi_metaMin - phi_absMin|``.
    phi_bar, rscale : float, optional
        Barrier edge and radial scale; found with :meth:`findBarrierLocation`
        and :meth:`findRScale` if not given.

    Raises
    ------
    PotentialError
        If ``V(phi_metaMin) <= V(phi_absMin)`` (reason ``'stable, not
        metastable'``) or there is no barrier between the minima (reason
        ``'no barrier'``).
    """

    def __init__(
        self,
        phi_absMin: float,
        phi_metaMin: float,
        V: Callable[[Union[float, np.ndarray]], Union[float, np.ndarray]],
        alpha: float = 2,
        phi_eps: float = 1e-3,
        phi_bar: Optional[float] = None,
        rscale: Optional[float] = None,
    ):
        self.phi_absMin = float(phi_absMin)
        self.phi_metaMin = float(phi_metaMin)
        self.V = V
        if not np.isfinite(alpha) or alpha < 0:
            raise ValueError("SingleFieldInstanton: `alpha` must be a non-negative number.")
        self.alpha = float(alpha)

        self.V_abs = float(V(self.phi_absMin))
        self.V_meta = float(V(self.phi_metaMin))
        if not (np.isfinite(self.V_abs) and np.isfinite(self.V_meta)):
            raise PotentialError("Potential is not finite at one of the minima.")
        if self.V_meta <= self.V_abs:
            raise PotentialError(
                "V(phi_metaMin) <= V(phi_absMin); tunneling cannot occur.",
                "stable, not metastable",
            )

        self.delta_phi = self.phi_metaMin - self.phi_absMin
        if self.delta_phi == 0.0:
            raise PotentialError("phi_metaMin and phi_absMin coincide.", "no barrier")
        self.phi_eps = float(phi_eps) * abs(self.delta_phi)

        self.phi_bar = self.findBarrierLocation() if phi_bar is None else float(phi_bar)
        self.rscale = self.findRScale() if rscale is None else float(rscale)

    # --- derivatives -------------------------------------------------------
    def dV(self, phi):
        """Fourth-order central difference for dV/dphi."""
        V = self.V
        h = self.phi_eps
        return (V(phi - 2 * h) - 8 * V(phi - h) + 8 * V(phi + h) - V(phi + 2 * h)) / (12.0 * h)

    def d2V(self, phi):
        """Fourth-order central difference for d2V/dphi2."""
        V = self.V
        h = self.phi_eps
        return (-V(phi - 2 * h) + 16 * V(phi - h) - 30 * V(phi)
                + 16 * V(phi + h) - V(phi + 2 * h)) / (12.0 * h * h)

    def dV_from_absMin(self, delta_phi: float) -> float:
        """
        dV/dphi at ``phi_absMin + delta_phi``, blended with the linear estimate
        ``d2V * delta_phi`` where the finite difference loses precision.
        """
        phi = self.phi_absMin + delta_phi
        dV_fd = float(self.dV(phi))
        dV_lin = float(self.d2V(phi)) * delta_phi
        w = np.exp(-(delta_phi / self.phi_eps) ** 2)
        return float(w * dV_lin + (1.0 - w) * dV_fd)

    # --- barrier and scale -------------------------------------------------
    def findBarrierLocation(self) -> float:
        """
        Edge of the barrier: the field value between the barrier top and the
        true minimum where ``V(phi_bar) = V(phi_metaMin)``.

        The top is located with a bounded scalar maximisation and cached in
        ``self.phi_top``; the edge with Brent's method.
        """
        left, right = sorted((self.phi_metaMin, self.phi_absMin))
        width = abs(self.delta_phi)
        xtol = max(1e-12 * width, np.finfo(float).eps ** 0.5 * width)

        result = optimize.minimize_scalar(
            lambda x: -float(self.V(x)), bounds=(left, right), method="bounded",
            options={"xatol": xtol},
        )
        phi_top = float(result.x)
        V_top = float(self.V(phi_top)) - self.V_meta
        if not (left < phi_top < right) or not V_top > 0.0:
            raise PotentialError("No barrier between the minima.", "no barrier")
        self.phi_top = phi_top

        def G(x):
            return float(self.V(x)) - self.V_meta

        lo, hi = sorted((phi_top, self.phi_absMin))
        return float(optimize.brentq(G, lo, hi, xtol=xtol))

    def findRScale(self) -> float:
        """
        Radial scale of a cubic potential with its maximum at the barrier top
        and its minimum at the false vacuum. Stays finite for flat-topped
        barriers, where ``1 / sqrt(|V''(phi_top)|)`` would not.
        """
        if not hasattr(self, "phi_top"):
            self.findBarrierLocation()
        V_top = float(self.V(self.phi_top)) - self.V_meta
        return abs(self.phi_top - self.phi_metaMin) / np.sqrt(6.0 * V_top)

    # --- local solution near the centre ------------------------------------
    _exactSolution_rval = namedtuple("exactSolution_rval", "phi dphi")

    def exactSolution(self, r: float, phi0: float, dV: float, d2V: float):
        r"""
        Regular solution at radius ``r`` for the potential expanded to second
        order about ``phi0``. With ``nu = (alpha - 1)/2``,
        ``beta = sqrt(|d2V|)`` and ``t = beta r``,

        .. math::

            \phi(r) - \phi_0 = \frac{V'}{V''}\left[\Gamma(\nu+1)
            \left(\tfrac{t}{2}\right)^{-\nu} I_\nu(t) - 1\right],

        with :math:`I_\nu \to J_\nu` for ``d2V < 0``. Small ``t`` uses the
        power series of the bracket.
        """
        if r == 0.0 or dV == 0.0:
            return self._exactSolution_rval(phi0, 0.0)
        if d2V == 0.0:
            phi = phi0 + dV * r * r / (2.0 * (self.alpha + 1.0))
            dphi = dV * r / (self.alpha + 1.0)
            return self._exactSolution_rval(float(phi), float(dphi))

        nu = 0.5 * (self.alpha - 1.0)
        beta = np.sqrt(abs(d2V))
        t = beta * r
        gamma = special.gamma(nu + 1.0)

        if t <= 1e-5:
            sign = 1.0 if d2V > 0.0 else -1.0
            tau = 0.5 * t
            series = dseries = 0.0
            for k in (1, 2, 3):
                ck = gamma / (special.factorial(k) * special.gamma(k + nu + 1.0)) * sign ** k
                series += ck * tau ** (2 * k)
                dseries += ck * 2 * k * tau ** (2 * k - 1) * 0.5 * beta
            return self._exactSolution_rval(
                float(phi0 + dV / d2V * series), float(dV / d2V * dseries)
            )

        with np.errstate(over="ignore", invalid="ignore"):
            if d2V > 0.0:
                bessel = special.iv
                derivative = bessel(nu - 1.0, t) + bessel(nu + 1.0, t)
            else:
                bessel = special.jv
                derivative = bessel(nu - 1.0, t) - bessel(nu + 1.0, t)
            scale = (0.5 * t) ** (-nu)
            phi = phi0 + dV / d2V * (gamma * scale * bessel(nu, t) - 1.0)
            dphi = gamma * dV / d2V * (
                -nu * scale / r * bessel(nu, t) + scale * 0.5 * beta * derivative
            )
        return self._exactSolution_rval(float(phi), float(dphi))

    _initialConditions_rval = namedtuple("initialConditions_rval", "r0 phi dphi")

    def initialConditions(self, delta_phi0: float, rmin: float, delta_phi_cutoff: float):
        """
        Starting radius and field for the integration, for a bubble centred
        on ``phi_absMin + delta_phi0``.

        The integration starts at ``rmin`` if the field has already moved
        ``delta_phi_cutoff`` away from the true minimum there. Otherwise ``r``
        is grown tenfold until it has, and the crossing is then located with
        Brent's method. For thin walls this starts the integration just
        inside the wall.

        Raises
        ------
        IntegrationError
            If the field never moves far enough from the true minimum.
        """
        phi0 = self.phi_absMin + delta_phi0
        dV0 = self.dV_from_absMin(delta_phi0)
        d2V0 = float(self.d2V(phi0))
        cutoff = abs(delta_phi_cutoff)

        phi_r0, dphi_r0 = self.exactSolution(rmin, phi0, dV0, d2V0)
        if abs(phi_r0 - self.phi_absMin) > cutoff:
            return self._initialConditions_rval(rmin, phi_r0, dphi_r0)
        # Moving away from the false vacuum: growing r will not help.
        if np.sign(dphi_r0) != np.sign(delta_phi0) and dphi_r0 != 0.0:
            return self._initialConditions_rval(rmin, phi_r0, dphi_r0)

        def deltaPhiDiff(r):
            phi = self.exactSolution(r, phi0, dV0, d2V0).phi
            if not np.isfinite(phi):
                # Bessel overflow, far beyond the cutoff.
                return cutoff
            return abs(phi - self.phi_absMin) - cutoff

        r = rmin
        for _ in range(60):
            r_last = r
            r *= 10.0
            if deltaPhiDiff(r) > 0.0:
                break
        else:
            raise IntegrationError(
                "initialConditions: the field never leaves the true minimum."
            )

        r0 = optimize.brentq(deltaPhiDiff, r_last, r, disp=False)
        phi_r0, dphi_r0 = self.exactSolution(r0, phi0, dV0, d2V0)
        return self._initialConditions_rval(float(r0), phi_r0, dphi_r0)

    # --- integration -------------------------------------------------------
    def equationOfMotion(self, r, y):
        """Right-hand side of the bounce equation for ``y = [phi, dphi/dr]``."""
        return np.array([y[1], float(self.dV(y[0])) - self.alpha * y[1] / r])

    _integrateProfile_rval = namedtuple("integrateProfile_rval", "r y convergence_type")

    def integrateProfile(self, r0, y0, rmax, rtol, atol):
        """
        Integrate outwards from ``(r0, y0)`` until the field overshoots the
        false vacuum, turns back before reaching it (undershoot), or ``r0 +
        rmax`` is reached, which counts as converged.

        Returns
        -------
        integrateProfile_rval
            ``(r, y, convergence_type)`` at the stopping point.

        Raises
        ------
        IntegrationError
            If the ODE solver fails.
        """
        towardsMeta = np.sign(self.delta_phi)
        if y0[1] * towardsMeta <= 0.0:
            return self._integrateProfile_rval(r0, np.asarray(y0, dtype=float), "undershoot")

        def overshoot(r, y):
            return (self.phi_metaMin - y[0]) * towardsMeta
        overshoot.terminal = True
        overshoot.direction = -1

        def undershoot(r, y):
            return y[1] * towardsMeta
        undershoot.terminal = True
        undershoot.direction = -1

        solution = integrate.solve_ivp(
            self.equationOfMotion, (r0, r0 + rmax), y0, method="RK45",
            rtol=rtol, atol=atol, events=(overshoot, undershoot),
        )
        if solution.status == -1:
            raise IntegrationError(f"integrateProfile: {solution.message}")

        stops = [
            (times[0], states[0], name)
            for times, states, name in zip(
                solution.t_events, solution.y_events, ("overshoot", "undershoot")
            )
            if times.size
        ]
        if stops:
            r, y, convergence_type = min(stops, key=lambda stop: stop[0])
            return self._integrateProfile_rval(float(r), y, convergence_type)
        return self._integrateProfile_rval(float(solution.t[-1]), solution.y[:, -1], "converged")

    profile_rval = namedtuple("Profile1D", "R Phi dPhi")

    def findProfile(
        self,
        xguess: Optional[float] = None,
        xtol: float = 1e-4,
        phitol: float = 1e-4,
        thinCutoff: float = 0.01,
        npoints: int = 500,
        rmin: float = 1e-4,
        rmax: float = 1e4,
        maxIterations: int = 200,
        maxInteriorPoints: Optional[int] = None,
    ):
        r"""
        Shoot on the centre of the bubble,

        .. math::

            \phi(0) = \phi_{\rm absMin} + e^{-x} (\phi_{\rm metaMin} - \phi_{\rm absMin}),

        bisecting in ``x`` between undershoots (``x`` too small: the field
        starts too far from the true minimum to reach the false one) and
        overshoots (``x`` too large) until the bracket is narrower than
        ``xtol``, then integrate the last trial once more on ``npoints``
        radii.

        ``rmin`` and ``rmax`` are in units of :attr:`rscale`. ``thinCutoff``
        sets how far from the true minimum, relative to the distance between
        the minima, the integration starts. ``x`` is capped at 650 so that
        ``e^{-x}`` stays a normal float; walls thinner than that give the
        profile at the cap.

        The interior ``0 <= r < r0`` is filled with up to ``maxInteriorPoints``
        (default ``npoints // 2``) radii from :meth:`exactSolution`.

        Returns
        -------
        Profile1D
            ``(R, Phi, dPhi)``. Without interior points ``R[0]`` can be far
            from zero for thin walls.

        Raises
        ------
        IntegrationError
            If no bracket is found within ``maxIterations`` trials.
        """
        rmin = float(rmin) * self.rscale
        rmax = float(rmax) * self.rscale
        delta_phi = self.delta_phi
        rtol = phitol
        atol = np.array([abs(delta_phi) * phitol, abs(delta_phi) * phitol / self.rscale])
        delta_phi_cutoff = thinCutoff * delta_phi

        if xguess is None:
            x = -np.log(abs((self.phi_bar - self.phi_absMin) / delta_phi))
        else:
            x = float(xguess)
        xmin = xtol * 10.0
        xmax = np.inf
        xcap = 650.0
        xincrease = 5.0

        def grow(x):
            nonlocal xmax
            if x * xincrease < xcap:
                return x * xincrease
            xmax = xcap
            return 0.5 * (xmin + xmax)

        r0 = rf = y0 = None
        delta_phi_start = None
        convergence_type = None
        for _ in range(maxIterations):
            delta_phi0 = np.exp(-x) * delta_phi
            try:
                r0_try, phi0, dphi0 = self.initialConditions(delta_phi0, rmin, delta_phi_cutoff)
            except IntegrationError as err:
                # The field sits on the true minimum: x is too large.
                log.debug("No initial conditions at x = %g: %s", x, err)
                xmax = x
                x = 0.5 * (xmin + xmax)
                continue

            r0 = r0_try
            delta_phi_start = delta_phi0
            y0 = np.array([phi0, dphi0])
            rf, yf, convergence_type = self.integrateProfile(r0, y0, rmax, rtol, atol)
            if convergence_type == "converged":
                break
            if convergence_type == "undershoot":
                xmin = x
                x = grow(x) if np.isinf(xmax) else 0.5 * (xmin + xmax)
            else:
                xmax = x
                x = 0.5 * (xmin + xmax)
            if not np.isinf(xmax) and xmax - xmin < xtol:
                break
        else:
            raise IntegrationError(
                "findProfile: no overshoot/undershoot bracket within "
                f"{maxIterations} trials (last: {convergence_type}, "
                f"bracket [{xmin:g}, {xmax:g}])."
            )
        if r0 is None:
            raise IntegrationError("findProfile: no trial could be started.")
        log.debug("Bounce found at x = %g, r0 = %g, rf = %g (%s)", x, r0, rf, convergence_type)

        if rf <= r0:
            rf = r0 + 1e-6 * self.rscale
        R = np.linspace(r0, rf, max(int(npoints), 2))
        solution = integrate.solve_ivp(
            self.equationOfMotion, (r0, rf), y0, method="RK45", t_eval=R, rtol=rtol, atol=atol,
        )
        if solution.status == -1:
            raise IntegrationError(f"findProfile: {solution.message}")
        R, Phi, dPhi = solution.t, solution.y[0], solution.y[1]

        if maxInteriorPoints is None:
            maxInteriorPoints = len(R) // 2
        n = min(int(np.ceil(r0 / (R[1] - R[0]))), int(maxInteriorPoints))
        if n > 0:
            R_int = np.linspace(0.0, r0, n + 1)[:-1]
            phi_center = self.phi_absMin + delta_phi_start
            dV0 = self.dV_from_absMin(delta_phi_start)
            d2V0 = float(self.d2V(phi_center))
            interior = np.array([self.exactSolution(r, phi_center, dV0, d2V0) for r in R_int])
            R = np.append(R_int, R)
            Phi = np.append(interior[:, 0], Phi)
            dPhi = np.append(interior[:, 1], dPhi)
        return self.profile_rval(R, Phi, dPhi)

    # --- action ------------------------------------------------------------
    def findAction(self, profile) -> float:
        r"""
        Euclidean action of ``profile``,

        .. math::

            S = \Omega_\alpha \int \left[\tfrac12 \phi'^2 + V(\phi) - V(\phi_{\rm metaMin})\right]
                r^\alpha \, dr,
            \qquad \Omega_\alpha = \frac{2\pi^{(\alpha+1)/2}}{\Gamma((\alpha+1)/2)},

        plus the potential energy of the interior ball ``r < R[0]``, taken at
        ``V(Phi[0])``. The gradient energy there is negligible.
        """
        r = np.asarray(profile.R, dtype=float)
        phi = np.asarray(profile.Phi, dtype=float)
        dphi = np.asarray(profile.dPhi, dtype=float)
        if r.ndim != 1 or phi.shape != r.shape or dphi.shape != r.shape or r.size < 2:
            raise ValueError("findAction: R, Phi and dPhi must be 1D arrays of the same length >= 2.")

        d = self.alpha + 1.0
        omega = 2.0 * np.pi ** (0.5 * d) / special.gamma(0.5 * d)
        density = 0.5 * dphi ** 2 + np.asarray(self.V(phi), dtype=float) - self.V_meta
        S_wall = simpson(density * r ** self.alpha * omega, x=r)

        r0 = r[0]
        S_interior = 0.0
        if r0 > 0.0:
            volume = np.pi ** (0.5 * d) * r0 ** d / special.gamma(0.5 * d + 1.0)
            S_interior = volume * (float(self.V(phi[0])) - self.V_meta)
        return float(S_wall + S_interior)
