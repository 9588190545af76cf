# tapegrad/core/accumulate.py
#-----------------------------------------------------------------------------
# Summing the gradient contributions that reach one node.
#
# A node with several consumers receives one contribution per consumer. They
# are summed once, right before the node's own gradient functions run.
# Contributions may be boxed on a still-open outer tape (higher-order
# differentiation), so the actual summation is a registered primitive.
#-----------------------------------------------------------------------------
from __future__ import annotations
import numbers
from typing import Any, List, Sequence

import numpy as np

from .errors import AccumulationTypeError
from .primitive import register_primitive


def sum_outgrads(outgrads: Sequence[Any]) -> Any:
    """
    Combine gradient contributions into one value.

    None marks "no contribution" and is dropped. With zero contributions the
    result is None; a single contribution is returned as is.
    """
    if len(outgrads) == 0:
        return None
    if len(outgrads) == 1:
        return outgrads[0]
    present = [g for g in outgrads if g is not None]
    if len(present) == 0:
        return None
    if len(present) == 1:
        return present[0]
    return sum_helper(*present)


def _is_scalar(x) -> bool:
    if isinstance(x, np.ndarray):
        return x.ndim == 0 and x.dtype != object
    return isinstance(x, (numbers.Number, np.generic))


def _kind(x) -> str:
    if _is_scalar(x):
        return "scalar"
    if isinstance(x, np.ndarray):
        return "array"
    if isinstance(x, tuple):
        return "tuple"
    if isinstance(x, list):
        return "list"
    if isinstance(x, dict):
        return "dict"
    return type(x).__name__


def _sum_sequences(xs: List[Sequence], kind: str):
    n = len(xs[0])
    if any(len(x) != n for x in xs):
        raise AccumulationTypeError(
            f"cannot sum {kind} gradients of lengths {[len(x) for x in xs]}"
        )
    return [sum_outgrads(list(e)) for e in zip(*xs)]


def _sum_helper(*xs):
    kinds = {_kind(x) for x in xs}
    if len(kinds) != 1:
        raise AccumulationTypeError(
            f"cannot sum gradients of mixed types: {sorted(kinds)}"
        )
    kind = kinds.pop()

    if kind == "scalar":
        total = xs[0]
        for x in xs[1:]:
            total = total + x
        return total

    if kind == "array":
        if all(x.dtype != object for x in xs):
            try:
                return np.add.reduce(np.broadcast_arrays(*xs))
            except ValueError as err:
                raise AccumulationTypeError(
                    f"cannot sum arrays of shapes {[x.shape for x in xs]}"
                ) from err
        shape = xs[0].shape
        if any(x.shape != shape for x in xs):
            raise AccumulationTypeError(
                f"cannot sum object arrays of shapes {[x.shape for x in xs]}"
            )
        out = np.empty(shape, dtype=object)
        for i in np.ndindex(shape):
            out[i] = sum_outgrads([x[i] for x in xs])
        return out

    if kind == "tuple":
        return tuple(_sum_sequences(xs, kind))

    if kind == "list":
        return _sum_sequences(xs, kind)

    if kind == "dict":
        z = {}
        for d in xs:
            for k, v in d.items():
                if v is None:
                    continue
                z[k] = v if k not in z else sum_outgrads([z[k], v])
        return z

    raise AccumulationTypeError(f"don't know how to sum gradients of type {kind}")


sum_helper = register_primitive(_sum_helper, name="sum_helper")
# d(x1 + x2 + ...)/dxi = 1 for every position
sum_helper.defgrad(None, lambda dy, y, *xs: dy)
