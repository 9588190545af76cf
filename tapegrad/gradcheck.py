"""
Finite-difference checking of reverse-mode gradients.

`numerical_grad` perturbs every scalar leaf of one argument (floats, arrays,
and tuples/lists/dicts of those) with a central difference; `gradcheck`
compares it with `grad`.
"""

import logging
import numbers
import warnings
from typing import Any, Callable, Optional, Tuple

import numpy as np

from .config import config
from .core.seeds import grad
from .core.var import tofloat

logger = logging.getLogger(__name__)


def _flatten(x: Any) -> Tuple[np.ndarray, Callable[[np.ndarray], Any]]:
    """Return (flat float vector, function rebuilding a value shaped like x)."""
    if isinstance(x, np.ndarray) and x.dtype != object:
        shape = x.shape
        return x.astype(float).ravel(), lambda v: v.reshape(shape).copy()
    if isinstance(x, numbers.Real):
        return np.array([float(x)]), lambda v: float(v[0])
    if isinstance(x, (tuple, list, dict)):
        keys = list(x.keys()) if isinstance(x, dict) else range(len(x))
        parts = [_flatten(x[k]) for k in keys]
        sizes = [p[0].size for p in parts]
        flat = np.concatenate([p[0] for p in parts]) if parts else np.zeros(0)

        def unflatten(v):
            items, start = [], 0
            for (_, unf), n in zip(parts, sizes):
                items.append(unf(v[start:start + n]))
                start += n
            if isinstance(x, dict):
                return dict(zip(keys, items))
            return type(x)(items)
        return flat, unflatten
    raise TypeError(f"gradcheck: cannot perturb values of type {type(x).__name__}")


def _flatten_grad(g: Any, x: Any) -> np.ndarray:
    """Flatten gradient `g` in the leaf order of `x`; None counts as zeros."""
    if g is None:
        return np.zeros(_flatten(x)[0].size)
    if isinstance(x, dict):
        parts = [_flatten_grad(g.get(k), x[k]) for k in x]
        return np.concatenate(parts) if parts else np.zeros(0)
    if isinstance(x, (tuple, list)):
        parts = [_flatten_grad(gi, xi) for gi, xi in zip(g, x)]
        return np.concatenate(parts) if parts else np.zeros(0)
    return np.ravel(np.asarray(g, dtype=float))


def numerical_grad(f: Callable, *args, argnum: int = 0,
                   eps: Optional[float] = None, **kwargs) -> np.ndarray:
    """Central-difference gradient of scalar `f` w.r.t. `args[argnum]`, flattened."""
    eps = config.gradcheck_eps if eps is None else eps
    x0, unflatten = _flatten(tofloat(args[argnum]))
    out = np.zeros_like(x0)
    call_args = list(args)
    for i in range(x0.size):
        xp, xm = x0.copy(), x0.copy()
        xp[i] += eps
        xm[i] -= eps
        call_args[argnum] = unflatten(xp)
        fp = f(*call_args, **kwargs)
        call_args[argnum] = unflatten(xm)
        fm = f(*call_args, **kwargs)
        out[i] = (float(fp) - float(fm)) / (2.0 * eps)
    return out


def gradcheck(f: Callable, *args, argnum: int = 0, eps: Optional[float] = None,
              rtol: Optional[float] = None, atol: Optional[float] = None, **kwargs) -> bool:
    """
    True when `grad(f, argnum)(*args, **kwargs)` matches central differences.

    Tolerances default to `tapegrad.config` (gradcheck_rtol / gradcheck_atol).
    """
    rtol = config.gradcheck_rtol if rtol is None else rtol
    atol = config.gradcheck_atol if atol is None else atol

    analytic = _flatten_grad(grad(f, argnum)(*args, **kwargs), tofloat(args[argnum]))
    numeric = numerical_grad(f, *args, argnum=argnum, eps=eps, **kwargs)

    if not (np.all(np.isfinite(analytic)) and np.all(np.isfinite(numeric))):
        warnings.warn(
            f"gradcheck: non-finite gradient for {getattr(f, '__name__', f)}: "
            f"analytic={analytic}, numeric={numeric}"
        )
        return False

    ok = bool(np.allclose(analytic, numeric, rtol=rtol, atol=atol))
    if not ok:
        logger.debug("gradcheck failed for %s: analytic=%s numeric=%s",
                     getattr(f, "__name__", f), analytic, numeric)
    return ok
