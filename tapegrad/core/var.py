# tapegrad/core/var.py
from __future__ import annotations
import numbers
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .node import Node


def findeq(seq: Sequence, item) -> int:
    """Index of `item` in `seq` using identity (`is`), or -1."""
    for i, x in enumerate(seq):
        if x is item:
            return i
    return -1


class Boxed:
    """
    A value that is being differentiated.

    A Boxed wraps a plain payload and remembers which primitive produced it
    (`func`, `args`, `kwargs`) so the reverse sweep can call that primitive's
    gradient functions. It may be recorded on several tapes at once, one per
    differentiation in progress; `tapes[i]` and `nodes[i]` form the ordered
    (tape, node) association list.

    Attributes
    ----------
    val    : Any
        Plain payload (float, ndarray, tuple, dict, ...). Never a Boxed.
    func   : Primitive | None
        Producing primitive, None for the input of a forward pass.
    args   : tuple
        Original positional arguments of the producing call (boxed or not).
    kwargs : dict
        Original keyword arguments of the producing call.
    tapes  : list[Tape]
    nodes  : list[Node]
    """

    # NumPy operators and ufuncs must return NotImplemented so that
    # `ndarray * Boxed` reaches Boxed.__rmul__.
    __array_ufunc__ = None

    def __init__(self, val: Any, tape, *, func=None, args: Tuple = (),
                 kwargs: Optional[Dict[str, Any]] = None):
        if isinstance(val, Boxed):
            raise TypeError("cannot box an already boxed value")
        self.val = val
        self.func = func
        self.args = tuple(args)
        self.kwargs = dict(kwargs) if kwargs else {}
        node = Node.for_value(self)
        tape.push_node(node)
        self.tapes = [tape]
        self.nodes = [node]

    def node_on(self, tape) -> Optional[Node]:
        i = findeq(self.tapes, tape)
        return self.nodes[i] if i >= 0 else None

    def __repr__(self):
        name = getattr(self.func, "name", "input")
        return f"Boxed({self.val!r}, {name}, tapes={len(self.tapes)})"

    # -- payload metadata (never recorded) --
    @property
    def shape(self):
        return np.shape(self.val)

    @property
    def ndim(self):
        return np.ndim(self.val)

    @property
    def size(self):
        return np.size(self.val)

    @property
    def T(self):
        from ..ops.reductions import transpose
        return transpose(self)

    def __len__(self):
        return len(self.val)

    def __bool__(self):
        return bool(self.val)

    # Operator overloading for differentiable operations
    def __add__(self, other):
        from ..ops.arithmetic import add
        return add(self, other)

    def __radd__(self, other):
        from ..ops.arithmetic import add
        return add(other, self)

    def __sub__(self, other):
        from ..ops.arithmetic import sub
        return sub(self, other)

    def __rsub__(self, other):
        from ..ops.arithmetic import sub
        return sub(other, self)

    def __mul__(self, other):
        from ..ops.arithmetic import mul
        return mul(self, other)

    def __rmul__(self, other):
        from ..ops.arithmetic import mul
        return mul(other, self)

    def __truediv__(self, other):
        from ..ops.arithmetic import div
        return div(self, other)

    def __rtruediv__(self, other):
        from ..ops.arithmetic import div
        return div(other, self)

    def __neg__(self):
        from ..ops.arithmetic import neg
        return neg(self)

    def __pos__(self):
        return self

    def __pow__(self, other):
        from ..ops.arithmetic import pow
        return pow(self, other)

    def __rpow__(self, other):
        from ..ops.arithmetic import pow
        return pow(other, self)

    def __abs__(self):
        from ..ops.arithmetic import abs
        return abs(self)

    def __matmul__(self, other):
        from ..ops.reductions import dot
        return dot(self, other)

    def __rmatmul__(self, other):
        from ..ops.reductions import dot
        return dot(other, self)

    def __getitem__(self, idx):
        from ..ops.indexing import getitem
        return getitem(self, idx)

    # Comparisons are piecewise constant: plain results, nothing recorded.
    def __lt__(self, other):
        return unbox(self) < unbox(other)

    def __le__(self, other):
        return unbox(self) <= unbox(other)

    def __gt__(self, other):
        return unbox(self) > unbox(other)

    def __ge__(self, other):
        return unbox(self) >= unbox(other)

    def __eq__(self, other):
        return unbox(self) == unbox(other)

    def __ne__(self, other):
        return unbox(self) != unbox(other)

    # tapes and nodes are looked up by identity
    __hash__ = object.__hash__

    def __float__(self):
        return float(self.val)


def unbox(x: Any) -> Any:
    """Return the payload of a Boxed; pass anything else through unchanged."""
    return x.val if isinstance(x, Boxed) else x


getval = unbox


def _is_plain_number(x) -> bool:
    return isinstance(x, numbers.Number) and not isinstance(x, Boxed)


def tofloat(x: Any, dtype=np.float64) -> Any:
    """
    Normalise a differentiation target to floating point.

    - int/bool/float scalars -> float (complex left alone)
    - integer or bool ndarrays -> `dtype` arrays; object arrays element-wise
    - list of plain numbers   -> `dtype` ndarray
    - tuple / other list / mapping -> same structure, converted element-wise
    Anything else is returned unchanged.
    """
    if isinstance(x, (bool, numbers.Integral)):
        return float(x)
    if isinstance(x, np.generic):
        if np.issubdtype(x.dtype, np.integer) or x.dtype == np.bool_:
            return dtype(x)
        return x
    if isinstance(x, numbers.Number):
        return x
    if isinstance(x, np.ndarray):
        if x.dtype == object:
            out = np.empty(x.shape, dtype=object)
            for i in np.ndindex(x.shape):
                out[i] = tofloat(x[i], dtype)
            return out
        if np.issubdtype(x.dtype, np.integer) or x.dtype == np.bool_:
            return x.astype(dtype)
        return x
    if isinstance(x, list):
        if x and all(_is_plain_number(e) for e in x):
            return np.asarray(x, dtype=dtype)
        return [tofloat(e, dtype) for e in x]
    if isinstance(x, tuple):
        return tuple(tofloat(e, dtype) for e in x)
    if isinstance(x, dict):
        out = x.copy()
        for k, v in x.items():
            out[k] = tofloat(v, dtype)
        return out
    return x
