"""
potentialMinimum
================

Value type for a single located stationary point of a potential.
"""

from typing import Optional, Sequence, Union

import numpy as np
import numpy.typing as npt

__all__ = ["PotentialMinimum"]


class PotentialMinimum:
    """
    Immutable record of a minimum found by a minimizer.

    Parameters
    ----------
    fieldConfiguration :
        Field values at the minimum, one entry per scalar field. A read-only
        copy is stored.
    functionValue :
        Value of the potential at the minimum (GeV^4).
    functionError :
        Uncertainty on ``functionValue`` reported by the minimizer.

    Notes
    -----
    Two minima compare equal when all three fields are equal; identity never
    matters. NaN values make a minimum unequal to everything, itself included.
    """

    __slots__ = ("_fieldConfiguration", "_functionValue", "_functionError")

    def __init__(
        self,
        fieldConfiguration: npt.ArrayLike,
        functionValue: float,
        functionError: float = 0.0,
    ) -> None:
        fields = np.array(fieldConfiguration, dtype=float).reshape(-1)
        fields.setflags(write=False)
        object.__setattr__(self, "_fieldConfiguration", fields)
        object.__setattr__(self, "_functionValue", float(functionValue))
        object.__setattr__(self, "_functionError", float(functionError))

    def __setattr__(self, name, value):
        raise AttributeError("PotentialMinimum is immutable")

    @property
    def fieldConfiguration(self) -> npt.NDArray[np.float64]:
        return self._fieldConfiguration

    @property
    def functionValue(self) -> float:
        return self._functionValue

    @property
    def functionError(self) -> float:
        return self._functionError

    @property
    def numberOfFields(self) -> int:
        return int(self._fieldConfiguration.size)

    def squareDistanceTo(
        self, other: Union["PotentialMinimum", Sequence[float], np.ndarray]
    ) -> float:
        """
        Squared Euclidean distance in field space to another minimum or to a
        raw field configuration.
        """
        if isinstance(other, PotentialMinimum):
            other_fields = other.fieldConfiguration
        else:
            other_fields = np.asarray(other, dtype=float).reshape(-1)
        if other_fields.shape != self._fieldConfiguration.shape:
            raise ValueError(
                "squareDistanceTo: field configurations have different "
                f"lengths ({self._fieldConfiguration.size} vs {other_fields.size})."
            )
        difference = self._fieldConfiguration - other_fields
        return float(np.dot(difference, difference))

    def lengthSquared(self) -> float:
        """Squared distance to the field origin."""
        return float(np.dot(self._fieldConfiguration, self._fieldConfiguration))

    def isFinite(self) -> bool:
        return bool(np.isfinite(self._functionValue) and np.isfinite(self._functionError))

    def asMathematica(self, fieldNames: Optional[Sequence[str]] = None) -> str:
        """
        Diagnostic string ``{ {f1 -> v1, ...}, value +- error }``. Without
        field names the fields are labelled by index.
        """
        if fieldNames is None:
            fieldNames = [f"f{i}" for i in range(self.numberOfFields)]
        pairs = ", ".join(
            f"{name} -> {value:.6g}"
            for name, value in zip(fieldNames, self._fieldConfiguration)
        )
        return (
            f"{{ {{{pairs}}}, {self._functionValue:.6g} "
            f"+- {self._functionError:.3g} }}"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, PotentialMinimum):
            return NotImplemented
        return (
            self._functionValue == other._functionValue
            and self._functionError == other._functionError
            and self._fieldConfiguration.shape == other._fieldConfiguration.shape
            and bool(np.all(self._fieldConfiguration == other._fieldConfiguration))
        )

    def __hash__(self) -> int:
        return hash(
            (tuple(self._fieldConfiguration.tolist()),
             self._functionValue,
             self._functionError)
        )

    def __copy__(self) -> "PotentialMinimum":
        return self

    def __deepcopy__(self, memo) -> "PotentialMinimum":
        return self

    def __reduce__(self):
        return (
            PotentialMinimum,
            (self._fieldConfiguration.tolist(), self._functionValue, self._functionError),
        )

    def __repr__(self) -> str:
        return (
            f"PotentialMinimum(fieldConfiguration={self._fieldConfiguration.tolist()!r}, "
            f"functionValue={self._functionValue!r}, "
            f"functionError={self._functionError!r})"
        )
