# tapegrad/ops/arithmetic.py
import numpy as np

from ..core.primitive import register_primitive, register_zero_gradient
from ..core.var import unbox


def unbroadcast(x, g):
    """
    Sum the gradient `g` down to the shape of argument `x`, undoing NumPy
    broadcasting. Works on boxed `g` (the reductions are primitives).
    """
    from .reductions import sum
    shape = np.shape(unbox(x))
    while np.ndim(unbox(g)) > len(shape):
        g = sum(g, axis=0)
    for axis, size in enumerate(shape):
        if size == 1 and np.shape(unbox(g))[axis] != 1:
            g = sum(g, axis=axis, keepdims=True)
    return g


# ---------------- piecewise constant: no gradient ---------------- #
sign = register_zero_gradient(np.sign, name="sign")
floor = register_zero_gradient(np.floor, name="floor")
ceil = register_zero_gradient(np.ceil, name="ceil")
zeros_like = register_zero_gradient(np.zeros_like, name="zeros_like")
ones_like = register_zero_gradient(np.ones_like, name="ones_like")


# ---------------- binary elementwise ---------------- #
add = register_primitive(np.add, name="add")
add.defgrad(0, lambda dy, y, a, b: unbroadcast(a, dy))
add.defgrad(1, lambda dy, y, a, b: unbroadcast(b, dy))

sub = register_primitive(np.subtract, name="sub")
sub.defgrad(0, lambda dy, y, a, b: unbroadcast(a, dy))
sub.defgrad(1, lambda dy, y, a, b: unbroadcast(b, -dy))

mul = register_primitive(np.multiply, name="mul")
mul.defgrad(0, lambda dy, y, a, b: unbroadcast(a, dy * b))
mul.defgrad(1, lambda dy, y, a, b: unbroadcast(b, dy * a))

div = register_primitive(np.true_divide, name="div")
div.defgrad(0, lambda dy, y, a, b: unbroadcast(a, dy / b))
div.defgrad(1, lambda dy, y, a, b: unbroadcast(b, -dy * a / (b * b)))


@register_primitive(name="pow")
def pow(x, p):
    """
    Power x ** p.

    Local partials:
      ∂out/∂x = p * x^(p-1)
      ∂out/∂p = x^p * log(x)        (requires x>0 for non-integer p)
    """
    return np.power(x, p)


@pow.defgrad(0)
def _pow_grad_base(dy, y, x, p):
    return unbroadcast(x, dy * p * x ** (p - 1))


@pow.defgrad(1)
def _pow_grad_exponent(dy, y, x, p):
    from .transcendental import log
    return unbroadcast(p, dy * log(x) * x ** p)


# ---------------- unary ---------------- #
neg = register_primitive(np.negative, name="neg")
neg.defgrad(0, lambda dy, y, x: -dy)

abs = register_primitive(np.absolute, name="abs")
abs.defgrad(0, lambda dy, y, x: dy * sign(x))
