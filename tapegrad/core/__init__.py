# tapegrad/core/__init__.py

"""
Core public API of the tape-based reverse-mode engine.

Exports:
    Boxed                  : value wrapper that marks what is being differentiated
    Tape, Node             : the recorded computation graph
    forward_pass           : box an argument on a fresh tape and run the function
    backward_pass          : reverse sweep returning the gradient at the seed
    sum_outgrads           : gradient accumulation at fan-in nodes
    register_primitive     : make an operation record itself on boxed inputs
    register_gradient      : attach a gradient function to one argument position
    register_zero_gradient : mark an operation as having no gradient
    grad, gradloss, differentiate, gradient, value : user-facing entry points
"""

from .errors import (
    TapegradError,
    NonScalarOutputError,
    InconsistentGraphError,
    AccumulationTypeError,
    TapeClosedError,
    NotDifferentiableError,
)
from .var import Boxed, unbox, getval, tofloat, findeq
from .node import Node
from .tape import Tape
from .primitive import (
    Grad,
    Primitive,
    PrimitiveRegistry,
    registry,
    register_primitive,
    register_gradient,
    register_zero_gradient,
)
from .accumulate import sum_outgrads
from .engine import forward_pass, backward_pass, merge_tapes
from .seeds import (
    grad,
    gradloss,
    grads,
    hvp,
    differentiate,
    Differentiation,
    gradient,
    value,
)
from .graph_utils import summarize_tape

__all__ = [
    "TapegradError", "NonScalarOutputError", "InconsistentGraphError",
    "AccumulationTypeError", "TapeClosedError", "NotDifferentiableError",
    "Boxed", "unbox", "getval", "tofloat", "findeq",
    "Node", "Tape",
    "Grad", "Primitive", "PrimitiveRegistry", "registry",
    "register_primitive", "register_gradient", "register_zero_gradient",
    "sum_outgrads",
    "forward_pass", "backward_pass", "merge_tapes",
    "grad", "gradloss", "grads", "hvp",
    "differentiate", "Differentiation", "gradient", "value",
    "summarize_tape",
]
