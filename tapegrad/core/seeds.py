# tapegrad/core/seeds.py

#-----------------------------------------------------------------------------
# We "plant" a seed (dy/dy = 1) at the scalar output and let gradients grow
# backwards through the tape. Everything here is a thin layer over
# engine.forward_pass / engine.backward_pass.
#-----------------------------------------------------------------------------
from __future__ import annotations
import functools
import numbers
from typing import Any, Callable, Dict, Mapping, Union

import numpy as np

from .engine import backward_pass, forward_pass
from .tape import Tape
from .var import Boxed, tofloat

_PENDING = object()


def _detach(x: Any) -> Any:
    """Drop the box of a value whose tapes are all closed."""
    if isinstance(x, Boxed) and all(t.closed for t in x.tapes):
        return x.val
    return x


# ----------------------------- function transforms ----------------------------- #
def grad(fun: Callable, argnum: int = 0) -> Callable:
    """
    Return a function computing the gradient of `fun` w.r.t. positional
    argument `argnum`. The returned function takes the same arguments as
    `fun`; `fun` must be scalar-valued. The gradient has the structure of the
    argument (float, ndarray, tuple, list, dict).

    Example
    -------
    df = grad(lambda x: x * x * x)
    df(2.0)        -> 12.0
    grad(df)(2.0)  -> 12.0
    """
    @functools.wraps(fun)
    def gradfun(*args, **kwargs):
        return backward_pass(*forward_pass(fun, args, kwargs, argnum))
    return gradfun


def gradloss(fun: Callable, argnum: int = 0) -> Callable:
    """Like `grad`, but the returned function gives `(gradient, fun(...))`."""
    @functools.wraps(fun)
    def gradlossfun(*args, **kwargs):
        seed, result, tape = forward_pass(fun, args, kwargs, argnum)
        return backward_pass(seed, result, tape), _detach(result)
    return gradlossfun


def grads(f: Callable[[Dict[str, Any]], Any],
          inputs: Mapping[str, Union[float, np.ndarray]]) -> Dict[str, Any]:
    """
    Gradient of a scalar-output function y=f(vars) w.r.t. ALL inputs (dict form).
    One reverse pass gives every ∂y/∂var.

    Example
    -------
    grads(lambda v: v["a"] * v["b"], {"a": 3.0, "b": 5.0}) -> {"a": 5.0, "b": 3.0}
    Every input gets an entry; numeric inputs that `f` never touches get a
    zero of their own shape.
    """
    g = grad(f)(dict(inputs))
    touched = value(g) or {}
    out: Dict[str, Any] = {}
    for k, v in inputs.items():
        gk = g[k] if k in touched else None
        out[k] = _zero_input(v) if gk is None else gk
    return out


def _zero_input(v: Any) -> Any:
    v = tofloat(value(v))
    if isinstance(v, np.ndarray) and v.dtype != object:
        return np.zeros_like(v)
    if isinstance(v, (numbers.Number, np.generic)):
        return v * 0
    return None


def hvp(fun: Callable, argnum: int = 0) -> Callable:
    """
    Hessian-vector product by differentiating the gradient:

        hvp(f)(x, v) = ∇_x ( ∇_x f(x) · v )

    The returned function takes the arguments of `fun` followed by `v`.
    """
    from ..ops.reductions import dot

    def directional(*args, **kwargs):
        *fargs, v = args
        return dot(grad(fun, argnum)(*fargs, **kwargs), v)

    def hvpfun(*args, **kwargs):
        return grad(directional, argnum)(*args, **kwargs)
    return hvpfun


# ----------------------------- handle-based API ----------------------------- #
class Differentiation:
    """
    Outcome of `differentiate`: the seed, the raw result and the tape.

    Unpacks as the triple `(seed, result, tape)`. The gradient is computed
    the first time `gradient()` is asked for it and cached afterwards, since
    the backward pass consumes the tape.
    """
    __slots__ = ("seed", "result", "tape", "_gradient")

    def __init__(self, seed: Boxed, result: Any, tape: Tape):
        self.seed = seed
        self.result = result
        self.tape = tape
        self._gradient = _PENDING

    def __iter__(self):
        return iter((self.seed, self.result, self.tape))

    def __repr__(self):
        return f"Differentiation(value={value(self)!r}, {self.tape!r})"

    def gradient(self):
        if self._gradient is _PENDING:
            self._gradient = backward_pass(self.seed, self.result, self.tape)
        return self._gradient


def differentiate(fun: Callable, *args, **kwargs) -> Differentiation:
    """
    Run `fun(*args, **kwargs)` recording operations on its first positional
    argument. Use `gradient(d)` for the gradient and `value(d)` for the output.

    Example
    -------
    d = differentiate(lambda x: tapegrad.sum(x * x), [1, 2, 3])
    value(d)     -> 14.0
    gradient(d)  -> array([2., 4., 6.])
    """
    return Differentiation(*forward_pass(fun, args, kwargs, 0))


def gradient(d: Differentiation):
    """Gradient held by `d`; None (or zero) means the input had no effect."""
    return d.gradient()


def value(x: Any) -> Any:
    """Plain value of `x`: unboxes Boxed and Differentiation results, recursively."""
    while True:
        if isinstance(x, Differentiation):
            x = x.result
        elif isinstance(x, Boxed):
            x = x.val
        else:
            return x
