# tapegrad/ops/indexing.py
import operator

import numpy as np

from ..core.primitive import register_primitive

getitem = register_primitive(operator.getitem, name="getitem")


@register_primitive(name="ungetindex")
def ungetindex(x, dy, idx):
    """
    Gradient of `x[idx]`: a container shaped like `x` holding `dy` at `idx`.

    Arrays are zero-filled (repeated fancy indices accumulate); tuples and
    lists hold None at untouched positions; dicts only carry the key `idx`.
    """
    if isinstance(x, np.ndarray):
        if x.dtype == object:
            z = np.empty(x.shape, dtype=object)
            z[idx] = dy
            return z
        z = np.zeros(x.shape, dtype=np.result_type(x.dtype, np.asarray(dy).dtype))
        np.add.at(z, idx, dy)
        return z
    if isinstance(x, dict):
        return {idx: dy}
    if isinstance(x, (tuple, list)):
        z = [None] * len(x)
        if isinstance(idx, slice):
            for i, g in zip(range(*idx.indices(len(x))), dy):
                z[i] = g
        else:
            z[idx] = dy
        return tuple(z) if isinstance(x, tuple) else z
    raise TypeError(f"ungetindex: unsupported container {type(x).__name__}")


getitem.defgrad(0, lambda dy, y, x, idx: ungetindex(x, dy, idx))
# x only supplies the shape template
ungetindex.defgrad(0, lambda ddx, dx, x, dy, idx: None)
ungetindex.defgrad(1, lambda ddx, dx, x, dy, idx: getitem(ddx, idx))
