# Helper functions shared by the minimization and tunneling modules

import functools
import inspect
from typing import Any, Callable, Dict, Union

import numpy as np

ArrayLike = Union[np.ndarray, float]


###############################################################
# Configuration defaults
###############################################################

def set_default_args(func: Callable, inplace: bool = True, **kwargs) -> Callable:
    """
    Update the default values of parameters of `func`.

    All components of the package are configured through keyword arguments;
    this is the way to change a default for a whole run without threading a
    value through every call.

    Parameters
    ----------
    func : Callable
        The function, class ``__init__`` or unbound method whose defaults
        will be updated.
    inplace : bool, optional (default=True)
        If True, modifies `func` itself (its ``__defaults__`` /
        ``__kwdefaults__``). If False, returns a wrapper that applies the new
        defaults without touching `func`.
    **kwargs
        Mapping parameter_name=new_default_value.

    Returns
    -------
    Callable
        The modified function (inplace=True) or the wrapper (inplace=False).

    Raises
    ------
    TypeError
        If `func` is not callable.
    ValueError
        If a name is not a parameter of `func` or has no default value.

    Example
    -------
    >>> from VacuumStability.criticalTemperature import findMaxTunnelingTemperature
    >>> set_default_args(findMaxTunnelingTemperature, temperatureAccuracy=10)
    """
    if not callable(func):
        raise TypeError("`func` must be callable")

    original_obj = func
    is_bound_method = inspect.ismethod(func)
    if is_bound_method:
        func = func.__func__

    sig = inspect.signature(func)
    params = list(sig.parameters.values())
    param_map: Dict[str, inspect.Parameter] = {p.name: p for p in params}

    for name in kwargs:
        if name not in param_map:
            raise ValueError(f"Function '{func.__name__}' doesn't have '{name}' parameter")
        if param_map[name].default is inspect.Parameter.empty:
            raise ValueError(f"Parameter '{name}' doesn't have any default to be changed")

    positional_kinds = (inspect.Parameter.POSITIONAL_ONLY,
                        inspect.Parameter.POSITIONAL_OR_KEYWORD)
    pos_updates: Dict[str, Any] = {}
    kwonly_updates: Dict[str, Any] = {}
    for name, val in kwargs.items():
        kind = param_map[name].kind
        if kind in positional_kinds:
            pos_updates[name] = val
        else:
            kwonly_updates[name] = val

    if not inplace:
        new_sig = sig.replace(parameters=[
            p.replace(default=kwargs[p.name]) if p.name in kwargs else p
            for p in params
        ])

        @functools.wraps(func)
        def wrapper(*a, **kw):
            bound = new_sig.bind_partial(*a, **kw)
            for name, val in kwargs.items():
                if name not in bound.arguments:
                    kw[name] = val
            return func(*a, **kw)

        wrapper.__signature__ = new_sig
        return wrapper

    if kwonly_updates:
        kwdefaults = dict(getattr(func, "__kwdefaults__", None) or {})
        kwdefaults.update(kwonly_updates)
        func.__kwdefaults__ = kwdefaults

    if pos_updates:
        func.__defaults__ = tuple(
            pos_updates.get(p.name, p.default)
            for p in params
            if p.kind in positional_kinds and p.default is not inspect.Parameter.empty
        )

    return original_obj


###############################################################
# Numerical integration
###############################################################

class IntegrationError(Exception):
    """Numerical integration of a bounce profile failed."""
    pass


###############################################################
# Finite-difference gradient
###############################################################

class gradientFunction:
    """
    Callable returning the gradient of a scalar function f: R^N -> R by
    central finite differences of order 2 or 4, with per-dimension steps.

    Unlike a batched stencil, `f` is called once per displaced point, so it
    only needs to accept a single 1D field configuration. This is the case
    for potentials wrapped around external evaluation code.

    Parameters
    ----------
    f : callable
        Scalar function ``f(x, *args)`` with ``x`` of shape ``(Ndim,)``.
    eps : float or array_like
        Finite-difference step. If scalar, it is broadcast to all Ndim.
    Ndim : int
        Number of field dimensions.
    order : {2, 4}, optional
        Finite-difference accuracy order (default 4).

    Example
    -------
    >>> df = gradientFunction(lambda x: x[0]**2 + 3*x[1], eps=1e-3, Ndim=2)
    >>> df([1.0, 0.0])
    array([2., 3.])
    """

    def __init__(self, f: Callable, eps: ArrayLike, Ndim: int, order: int = 4):
        if order not in (2, 4):
            raise ValueError("order must be 2 or 4")
        self.f = f
        self.Ndim = int(Ndim)
        eps_arr = np.asarray(eps, dtype=float)
        if eps_arr.ndim == 0:
            eps_arr = np.full(self.Ndim, float(eps_arr))
        if eps_arr.shape != (self.Ndim,):
            raise ValueError(f"`eps` must be scalar or have shape ({self.Ndim},)")
        if np.any(eps_arr <= 0.0):
            raise ValueError("`eps` must be positive")
        self.eps = eps_arr

        if order == 2:
            self._offsets = np.array([-1.0, 1.0])
            self._coeffs = np.array([-0.5, 0.5])
        else:
            self._offsets = np.array([-2.0, -1.0, 1.0, 2.0])
            self._coeffs = np.array([1.0, -8.0, 8.0, -1.0]) / 12.0
        self.order = order

    def __call__(self, x: ArrayLike, *args, **kwargs) -> np.ndarray:
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.shape != (self.Ndim,):
            raise ValueError(f"x must have shape ({self.Ndim},); got {x.shape}")

        grad = np.zeros(self.Ndim, dtype=float)
        for i in range(self.Ndim):
            total = 0.0
            for offset, coeff in zip(self._offsets, self._coeffs):
                shifted = x.copy()
                shifted[i] += offset * self.eps[i]
                total += coeff * float(self.f(shifted, *args, **kwargs))
            grad[i] = total / self.eps[i]
        return grad
