# tapegrad/core/engine.py
from __future__ import annotations
import logging
import numbers
from typing import Any, Dict, Sequence, Tuple

import numpy as np

from ..config import config
from .accumulate import sum_outgrads
from .errors import InconsistentGraphError, NonScalarOutputError
from .primitive import Grad, register_primitive
from .tape import Tape
from .var import Boxed, findeq, tofloat, unbox

logger = logging.getLogger(__name__)


# ---------------- merging tapes for higher-order gradients ---------------- #
def _merge_tapes(a, b):
    return a


merge_tapes = register_primitive(_merge_tapes, name="merge_tapes")
merge_tapes.defgrad(0, lambda dy, y, a, b: dy)
merge_tapes.defgrad(1, lambda dy, y, a, b: dy)


# ---------------- forward pass ---------------- #
def forward_pass(fun, args: Sequence, kwargs: Dict[str, Any], argnum: int):
    """
    Box `args[argnum]` on a fresh tape and call `fun` with it.

    If the argument is already boxed (we are inside another differentiation)
    it is merged with the new seed: the value passed to `fun` lives on the
    new tape *and* on every open tape of the original argument, so operations
    inside `fun` are recorded for all of them.

    Returns
    -------
    (seed, result, tape)
        seed   : Boxed input on `tape`; its gradient is the answer.
        result : whatever `fun` returned; boxed on `tape` only if it depends
                 on the seed.
        tape   : the new tape, still open.
    """
    tape = Tape()
    arg_wrt = args[argnum]
    seed = Boxed(tofloat(unbox(arg_wrt), config.float_dtype), tape)
    args = list(args)
    args[argnum] = merge_tapes(seed, arg_wrt) if isinstance(arg_wrt, Boxed) else seed
    logger.debug("forward %s argnum=%d nested=%s",
                 getattr(fun, "__name__", fun), argnum, isinstance(arg_wrt, Boxed))
    result = fun(*args, **kwargs)
    return seed, result, tape


# ---------------- backward pass ---------------- #
def _zero_like(seed: Boxed):
    v = seed.val
    if isinstance(v, np.ndarray) and v.dtype != object:
        return np.zeros_like(v)
    if isinstance(v, (numbers.Number, np.generic)):
        return v * 0
    return None


def _is_scalar_output(v) -> bool:
    if isinstance(v, np.ndarray):
        return v.ndim == 0 and np.issubdtype(v.dtype, np.number)
    return isinstance(v, (numbers.Number, np.number))


def backward_pass(seed: Boxed, result, tape: Tape):
    """
    Reverse sweep over `tape`, returning d(result)/d(seed).

    Steps:
      1) result not boxed on `tape` -> output independent of input: zero
         (numeric seed) or None.
      2) result must be a numeric scalar.
      3) clear outgrads, seed the output node with 1.0, close the tape.
      4) walk nodes in reverse creation order; each node with contributions
         sums them and pushes one contribution per non-empty parent slot
         through its primitive's gradient function.
      5) the first node (the seed) must have been reached.
    """
    tapeidx = findeq(result.tapes, tape) if isinstance(result, Boxed) else -1
    if tapeidx < 0:
        logger.debug("output independent of input, returning zero gradient")
        return _zero_like(seed)

    if not _is_scalar_output(result.val):
        raise NonScalarOutputError(
            f"grad requires a scalar-valued function, got {type(result.val).__name__}"
            f" with shape {np.shape(result.val)}"
        )

    for node in tape:
        node.outgrads = []
    result.nodes[tapeidx].outgrads = [1.0]

    # gradient functions may call primitives; nothing more goes on this tape
    tape.close()

    logger.debug("backward over %d nodes", len(tape) - 1)
    outgrad = None
    for node in reversed(tape.recorded()):
        if not node.outgrads:
            continue
        outgrad = sum_outgrads(node.outgrads)
        if outgrad is None:
            continue
        v = node.value
        for i, parent in enumerate(node.parents):
            if parent is None:
                continue
            og = v.func.grad(Grad[i], outgrad, v.val, *v.args, **v.kwargs)
            parent.outgrads.append(og)

    if not tape[0].outgrads:
        raise InconsistentGraphError(
            "output is recorded on the tape but its gradient never reached the input"
        )
    return outgrad


def differentiate_with(fun, args: Tuple, kwargs: Dict[str, Any], argnum: int):
    """Forward and backward in one call; returns (gradient, result)."""
    seed, result, tape = forward_pass(fun, args, kwargs, argnum)
    return backward_pass(seed, result, tape), result
