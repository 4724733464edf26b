"""
startingPointFinder
===================

Producers of starting field configurations for the gradient minimizer.

The expensive, complete way of doing this (solving the tree-level
stationary-point equations by homotopy continuation) is an external
collaborator. This module provides the interface plus two cheap finders:
a fixed list, and a scan for approximate local minima along straight lines
in field space.
"""

from abc import ABC, abstractmethod
import logging
from typing import List, Optional, Sequence

import numpy as np
import numpy.typing as npt

from .potentialFunction import PotentialFunction

log = logging.getLogger(__name__)

__all__ = [
    "StartingPointFinder",
    "FixedStartingPoints",
    "LineScanStartingPoints",
    "findApproxLocalMin",
]


class StartingPointFinder(ABC):
    """Callable returning a list of starting field configurations."""

    @abstractmethod
    def __call__(self) -> List[npt.NDArray[np.float64]]:
        """Starting points, each a 1D float array."""


class FixedStartingPoints(StartingPointFinder):
    """Return a given list of starting points."""

    def __init__(self, startingPoints: Sequence[npt.ArrayLike]) -> None:
        self.startingPoints = [
            np.asarray(point, dtype=float).reshape(-1) for point in startingPoints
        ]

    def __call__(self) -> List[npt.NDArray[np.float64]]:
        return [point.copy() for point in self.startingPoints]


def findApproxLocalMin(
    f,
    x1: npt.ArrayLike,
    x2: npt.ArrayLike,
    args: tuple = (),
    n: int = 100,
    edge: float = 0.05,
) -> npt.NDArray[np.float64]:
    """
    Find approximate local minima along the straight line between two points.

    ``f`` is sampled on ``n`` uniformly spaced points of the segment, leaving
    out a fraction ``edge`` at each end, and the interior samples lower than
    both neighbours are returned.

    Parameters
    ----------
    f : callable
        Scalar function ``f(x, *args)`` of a single 1D field configuration.
    x1, x2 : array_like
        Endpoints of the segment, same shape.
    args : tuple, optional
        Extra arguments for ``f`` (e.g. the temperature).
    n : int, optional
        Number of sample points.
    edge : float, optional
        Fraction of the segment excluded at each end, ``0 <= edge < 0.5``.

    Returns
    -------
    minima : ndarray, shape (k, ndim)
        Approximate minima; shape ``(0, ndim)`` if there are none.
    """
    x1_vec = np.asarray(x1, dtype=float).reshape(-1)
    x2_vec = np.asarray(x2, dtype=float).reshape(-1)
    if x1_vec.shape != x2_vec.shape:
        raise ValueError(
            "findApproxLocalMin: x1 and x2 must have the same shape. "
            f"Got {x1_vec.shape} and {x2_vec.shape}."
        )
    ndim = x1_vec.size
    if not (0.0 <= edge < 0.5):
        raise ValueError(
            f"findApproxLocalMin: 'edge' must satisfy 0 <= edge < 0.5, got {edge}."
        )
    if n < 3:
        return np.empty((0, ndim), dtype=float)

    t_grid = np.linspace(edge, 1.0 - edge, n).reshape(n, 1)
    x_grid = x1_vec[None, :] + t_grid * (x2_vec - x1_vec)[None, :]
    y = np.array([f(x, *args) for x in x_grid], dtype=float)

    is_min = (y[2:] > y[1:-1]) & (y[:-2] > y[1:-1])
    minima = x_grid[1:-1][is_min]
    if minima.size == 0:
        return np.empty((0, ndim), dtype=float)
    return minima


class LineScanStartingPoints(StartingPointFinder):
    """
    Approximate minima of the potential along lines out of the field origin.

    The lines run from the origin to ``±fieldRange`` along every field axis,
    and to ``±fieldRange`` along the direction of the DSB field values. The
    DSB field values themselves are always included, and points closer than
    ``mergeDistance`` to an earlier one are dropped.

    Parameters
    ----------
    potentialFunction :
        Potential to scan.
    fieldRange :
        Length (GeV) of each scanned line. Defaults to four times the length
        of the DSB field values, or 1 if those vanish.
    pointsPerLine :
        Samples per line.
    temperature :
        Temperature at which the potential is scanned.
    mergeDistance :
        Minimum separation between returned points. Defaults to
        ``fieldRange / pointsPerLine``.
    """

    def __init__(
        self,
        potentialFunction: PotentialFunction,
        fieldRange: Optional[float] = None,
        pointsPerLine: int = 200,
        temperature: float = 0.0,
        mergeDistance: Optional[float] = None,
    ) -> None:
        self.potentialFunction = potentialFunction
        dsb = potentialFunction.dsbFieldValues()
        if fieldRange is None:
            dsb_length = float(np.linalg.norm(dsb))
            fieldRange = 4.0 * dsb_length if dsb_length > 0.0 else 1.0
        if not fieldRange > 0.0:
            raise ValueError("LineScanStartingPoints: fieldRange must be positive.")
        self.fieldRange = float(fieldRange)
        self.pointsPerLine = int(pointsPerLine)
        self.temperature = float(temperature)
        if mergeDistance is None:
            mergeDistance = self.fieldRange / max(self.pointsPerLine, 1)
        self.mergeDistance = float(mergeDistance)

    def _lineEnds(self) -> List[np.ndarray]:
        origin = self.potentialFunction.fieldValuesOrigin()
        n_fields = origin.size
        ends = []
        for i in range(n_fields):
            axis = np.zeros(n_fields)
            axis[i] = self.fieldRange
            ends.extend([origin + axis, origin - axis])
        direction = self.potentialFunction.dsbFieldValues() - origin
        norm = float(np.linalg.norm(direction))
        if norm > 0.0:
            direction *= self.fieldRange / norm
            ends.extend([origin + direction, origin - direction])
        return ends

    def __call__(self) -> List[npt.NDArray[np.float64]]:
        origin = self.potentialFunction.fieldValuesOrigin()
        candidates = [self.potentialFunction.dsbFieldValues()]
        for end in self._lineEnds():
            minima = findApproxLocalMin(
                self.potentialFunction, origin, end,
                args=(self.temperature,), n=self.pointsPerLine, edge=0.0,
            )
            candidates.extend(minima)

        merge2 = self.mergeDistance ** 2
        points: List[np.ndarray] = []
        for candidate in candidates:
            candidate = np.asarray(candidate, dtype=float)
            if all(np.dot(candidate - p, candidate - p) >= merge2 for p in points):
                points.append(candidate)
        log.debug("Line scan found %d starting points.", len(points))
        return points
