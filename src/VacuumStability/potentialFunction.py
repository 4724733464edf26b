"""
potentialFunction
=================

Interface to the scalar potential whose vacua are studied.

The evaluation of a realistic potential (loop corrections, running couplings,
model files) lives outside this package. Anything exposing the methods of
:class:`PotentialFunction` can be used; :class:`CallablePotential` adapts a
plain Python function ``V(x, T)``, which is the form used throughout the
examples and tests.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

import numpy as np
import numpy.typing as npt

from .potentialMinimum import PotentialMinimum

__all__ = ["PotentialFunction", "CallablePotential"]


class PotentialFunction(ABC):
    """
    Abstract potential energy density over an N-dimensional field space.

    Subclasses must implement :meth:`__call__`; the remaining methods have
    defaults built from the data given to the constructor.

    Parameters
    ----------
    fieldNames :
        Names of the scalar fields, for diagnostics.
    dsbFieldValues :
        Field values of the intended symmetry-breaking (reference) vacuum,
        used as the starting point for rolling the reference vacuum.
    fieldOrigin :
        Field values of the symmetric point. Defaults to all zeros.
    minimumScaleSquared :
        Lower bound (GeV^2) on :meth:`scaleSquaredRelevantToTunneling`.
    """

    def __init__(
        self,
        fieldNames: Sequence[str],
        dsbFieldValues: npt.ArrayLike,
        fieldOrigin: Optional[npt.ArrayLike] = None,
        minimumScaleSquared: float = 1.0,
    ) -> None:
        self._fieldNames: List[str] = [str(name) for name in fieldNames]
        n_fields = len(self._fieldNames)
        if n_fields == 0:
            raise ValueError("PotentialFunction: at least one field is required.")

        self._dsbFieldValues = np.asarray(dsbFieldValues, dtype=float).reshape(-1)
        if self._dsbFieldValues.size != n_fields:
            msg = (
                f"PotentialFunction: {n_fields} field names but "
                f"{self._dsbFieldValues.size} DSB field values."
            )
            raise ValueError(msg)

        if fieldOrigin is None:
            self._fieldOrigin = np.zeros(n_fields, dtype=float)
        else:
            self._fieldOrigin = np.asarray(fieldOrigin, dtype=float).reshape(-1)
            if self._fieldOrigin.size != n_fields:
                raise ValueError(
                    "PotentialFunction: fieldOrigin must have one entry per field."
                )

        if not minimumScaleSquared > 0.0:
            raise ValueError("PotentialFunction: minimumScaleSquared must be positive.")
        self.minimumScaleSquared = float(minimumScaleSquared)

    @abstractmethod
    def __call__(self, fieldConfiguration: npt.ArrayLike, temperature: float = 0.0) -> float:
        """Energy density (GeV^4) at the given field values and temperature."""

    def numberOfFieldVariables(self) -> int:
        return len(self._fieldNames)

    def fieldNames(self) -> List[str]:
        return list(self._fieldNames)

    def dsbFieldValues(self) -> npt.NDArray[np.float64]:
        return self._dsbFieldValues.copy()

    def fieldValuesOrigin(self) -> npt.NDArray[np.float64]:
        return self._fieldOrigin.copy()

    def scaleSquaredRelevantToTunneling(
        self, falseVacuum: PotentialMinimum, trueVacuum: PotentialMinimum
    ) -> float:
        """
        Square of the energy scale (GeV^2) relevant to tunneling between the
        two vacua: the larger squared field-space length of the two, but not
        below ``minimumScaleSquared``.
        """
        return max(
            self.minimumScaleSquared,
            falseVacuum.lengthSquared(),
            trueVacuum.lengthSquared(),
        )

    def fieldConfigurationAsMathematica(self, fieldConfiguration: npt.ArrayLike) -> str:
        values = np.asarray(fieldConfiguration, dtype=float).reshape(-1)
        pairs = ", ".join(
            f"{name} -> {value:.6g}" for name, value in zip(self._fieldNames, values)
        )
        return f"{{{pairs}}}"


class CallablePotential(PotentialFunction):
    """
    :class:`PotentialFunction` around a plain function ``V(x, T)``.

    Parameters
    ----------
    V :
        Function of a 1D float array of field values and a temperature,
        returning a scalar.
    fieldNames, dsbFieldValues, fieldOrigin, minimumScaleSquared :
        See :class:`PotentialFunction`.

    Example
    -------
    >>> def V(x, T=0.0):
    ...     return -x[0]**2 + 0.25 * x[0]**4
    >>> potential = CallablePotential(V, ["phi"], [1.0])
    >>> potential([2.0])
    0.0
    """

    def __init__(
        self,
        V: Callable[[npt.NDArray[np.float64], float], float],
        fieldNames: Sequence[str],
        dsbFieldValues: npt.ArrayLike,
        fieldOrigin: Optional[npt.ArrayLike] = None,
        minimumScaleSquared: float = 1.0,
    ) -> None:
        super().__init__(fieldNames, dsbFieldValues, fieldOrigin, minimumScaleSquared)
        if not callable(V):
            raise TypeError("CallablePotential: V must be callable.")
        self._V = V

    def __call__(self, fieldConfiguration: npt.ArrayLike, temperature: float = 0.0) -> float:
        x = np.asarray(fieldConfiguration, dtype=float).reshape(-1)
        if x.size != self.numberOfFieldVariables():
            msg = (
                f"CallablePotential: expected {self.numberOfFieldVariables()} "
                f"field values, got {x.size}."
            )
            raise ValueError(msg)
        return float(self._V(x, float(temperature)))
