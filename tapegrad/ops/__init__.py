# tapegrad/ops/__init__.py
"""
Differentiable primitives built on the recording adapter.

Importing this package registers every op and makes the Boxed operator
overloads usable.
"""

from . import arithmetic
from . import transcendental
from . import special
from . import reductions
from . import indexing

# Convenience re-exports so users can do: from tapegrad.ops import mul, exp, ...
from .arithmetic import (
    add, sub, mul, div, neg, pow, abs,
    sign, floor, ceil, zeros_like, ones_like,
    unbroadcast,
)
from .transcendental import exp, log, sqrt, sin, cos, tanh, erf
from .special import norm_pdf, norm_cdf
from .reductions import sum, mean, dot, outer, transpose, reshape
from .indexing import getitem, ungetindex

__all__ = [
    "add", "sub", "mul", "div", "neg", "pow", "abs",
    "sign", "floor", "ceil", "zeros_like", "ones_like",
    "unbroadcast",
    "exp", "log", "sqrt", "sin", "cos", "tanh", "erf",
    "norm_pdf", "norm_cdf",
    "sum", "mean", "dot", "outer", "transpose", "reshape",
    "getitem", "ungetindex",
]
