# tapegrad/ops/reductions.py
import numpy as np

from ..core.primitive import register_primitive
from ..core.var import unbox
from .arithmetic import unbroadcast


def _reduced_axes(axis, ndim):
    axes = (axis,) if isinstance(axis, int) else tuple(axis)
    return tuple(a % ndim for a in axes)


# ---------------- shape ops ---------------- #
reshape = register_primitive(np.reshape, name="reshape")
reshape.defgrad(0, lambda dy, y, x, *shape, **kw: reshape(dy, np.shape(unbox(x))))


@register_primitive(name="transpose")
def transpose(x, axes=None):
    return np.transpose(x, axes)


@transpose.defgrad(0)
def _transpose_grad(dy, y, x, axes=None):
    if axes is None:
        return transpose(dy)
    return transpose(dy, tuple(np.argsort(axes)))


# ---------------- reductions ---------------- #
@register_primitive(name="sum")
def sum(x, axis=None, keepdims=False):
    return np.sum(x, axis=axis, keepdims=keepdims)


@sum.defgrad(0)
def _sum_grad(dy, y, x, axis=None, keepdims=False):
    shape = np.shape(unbox(x))
    if axis is not None and not keepdims:
        axes = _reduced_axes(axis, len(shape))
        dy = reshape(dy, tuple(1 if i in axes else n for i, n in enumerate(shape)))
    return dy * np.ones(shape)


def mean(x, axis=None, keepdims=False):
    """Arithmetic mean; composite of `sum` and a division by the count."""
    shape = np.shape(unbox(x))
    if axis is None:
        count = int(np.prod(shape))
    else:
        count = int(np.prod([shape[a] for a in _reduced_axes(axis, len(shape))]))
    return sum(x, axis=axis, keepdims=keepdims) / count


# ---------------- products (operands of ndim <= 2) ---------------- #
dot = register_primitive(np.dot, name="dot")
outer = register_primitive(np.outer, name="outer")


@dot.defgrad(0)
def _dot_grad_left(dy, y, a, b):
    na, nb = np.ndim(unbox(a)), np.ndim(unbox(b))
    if na == 0 or nb == 0:
        return unbroadcast(a, dy * b)
    if na == 1:
        return dy * b if nb == 1 else dot(b, dy)
    return outer(dy, b) if nb == 1 else dot(dy, transpose(b))


@dot.defgrad(1)
def _dot_grad_right(dy, y, a, b):
    na, nb = np.ndim(unbox(a)), np.ndim(unbox(b))
    if na == 0 or nb == 0:
        return unbroadcast(b, dy * a)
    if na == 1:
        return dy * a if nb == 1 else outer(a, dy)
    return dot(transpose(a), dy)


outer.defgrad(0, lambda dy, y, a, b: dot(dy, b))
outer.defgrad(1, lambda dy, y, a, b: dot(transpose(dy), a))
