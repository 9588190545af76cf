# tapegrad/core/primitive.py
"""
Primitive interception.

A primitive is a plain function wrapped in a `Primitive` adapter. Calling the
adapter with no boxed positional argument is an ordinary call. When at least
one positional argument is a `Boxed`, the adapter

  1. unboxes every argument and calls the wrapped function,
  2. boxes the result on every *open* tape of every boxed argument (reusing
     the result's node when an earlier argument already boxed it on that
     tape), and
  3. links the result node's parent slot for that argument position to the
     argument's node on the same tape.

If the wrapped function itself hands back a `Boxed` (an element of a
container seed that an outer differentiation boxed), the fresh result is
joined with it through `merge_tapes`, so both differentiations see it.

Gradients are registered per argument position and are looked up during the
reverse sweep through a `Grad[i]` selector:

    prim.grad(Grad[i], dy, y, *args, **kwargs) -> gradient w.r.t. args[i]

Gradient functions should be written with primitives themselves, so that
they are recorded when a higher-order differentiation is in progress.

Adapters live in a `PrimitiveRegistry`, one per wrapped operation, keyed by
the operation's identity.
"""
from __future__ import annotations
import threading
from typing import Any, Callable, Dict, Optional

from .errors import NotDifferentiableError
from .node import Node
from .var import Boxed, findeq, unbox


class Grad:
    """
    Selector for the gradient w.r.t. positional argument `argnum`.

    Use `Grad[i]`; selectors are cached so `Grad[i] is Grad[i]`.
    """
    __slots__ = ("argnum",)
    _cache: Dict[int, "Grad"] = {}

    def __init__(self, argnum: int):
        self.argnum = argnum

    def __class_getitem__(cls, argnum: int) -> "Grad":
        sel = cls._cache.get(argnum)
        if sel is None:
            sel = cls._cache.setdefault(argnum, cls(argnum))
        return sel

    def __repr__(self):
        return f"Grad[{self.argnum}]"


class Primitive:
    """Recording adapter around one differentiable operation."""

    def __init__(self, fun: Callable, name: Optional[str] = None):
        self.fun = fun
        self.name = name or getattr(fun, "__name__", repr(fun))
        self.grads: Dict[Optional[int], Callable] = {}
        self.__doc__ = getattr(fun, "__doc__", None)
        self.__wrapped__ = fun

    def __repr__(self):
        return f"<primitive {self.name}>"

    def __call__(self, *args, **kwargs):
        if not any(isinstance(a, Boxed) for a in args):
            return self.fun(*args, **kwargs)

        raw = self.fun(*[unbox(a) for a in args], **kwargs)
        # a container payload may hold values boxed by an enclosing
        # differentiation; those come back boxed and must not be mutated
        foreign = raw if isinstance(raw, Boxed) else None
        result = None
        for argnum, arg in enumerate(args):
            if not isinstance(arg, Boxed):
                continue
            for tape, parent in zip(arg.tapes, arg.nodes):
                if tape.closed:
                    continue
                if result is None:
                    result = Boxed(unbox(raw), tape, func=self, args=args, kwargs=kwargs)
                    rnode = result.nodes[0]
                else:
                    s = findeq(result.tapes, tape)
                    if s >= 0:
                        rnode = result.nodes[s]
                    else:
                        rnode = Node.for_value(result)
                        tape.push_node(rnode)
                        result.tapes.append(tape)
                        result.nodes.append(rnode)
                rnode.parents[argnum] = parent
        if result is None:
            return raw
        if foreign is not None and not all(t.closed for t in foreign.tapes):
            from .engine import merge_tapes
            return merge_tapes(result, foreign)
        return result

    # ---------------- gradients ---------------- #
    def defgrad(self, argnum: Optional[int], gradfun: Optional[Callable] = None):
        """
        Install `gradfun(dy, y, *args, **kwargs)` for position `argnum`.
        `argnum=None` installs the gradient for every position without its
        own entry. Returns `gradfun`, so it also works as a decorator:

            @prim.defgrad(0)
            def _(dy, y, x): ...
        """
        if gradfun is None:
            def decorator(fn):
                self.grads[argnum] = fn
                return fn
            return decorator
        self.grads[argnum] = gradfun
        return gradfun

    def grad(self, selector: Grad, dy, y, *args, **kwargs):
        gradfun = self.grads.get(selector.argnum)
        if gradfun is None:
            gradfun = self.grads.get(None)
        if gradfun is None:
            raise NotDifferentiableError(
                f"{self.name} has no gradient w.r.t. argument {selector.argnum}"
            )
        return gradfun(dy, y, *args, **kwargs)


class ZeroGradient:
    """
    Wrapper for piecewise-constant or non-numeric operations: unboxes its
    positional arguments and returns a plain value, never recording.
    """

    def __init__(self, fun: Callable, name: Optional[str] = None):
        self.fun = fun
        self.name = name or getattr(fun, "__name__", repr(fun))
        self.__doc__ = getattr(fun, "__doc__", None)
        self.__wrapped__ = fun

    def __repr__(self):
        return f"<zerograd {self.name}>"

    def __call__(self, *args, **kwargs):
        return self.fun(*[unbox(a) for a in args], **kwargs)


class PrimitiveRegistry:
    """
    Adapter cache keyed by operation identity.

    Entries are created lazily and never replaced; creation happens under a
    lock, lookups do not take it.
    """

    def __init__(self):
        self._adapters: Dict[int, Any] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._adapters)

    def __contains__(self, fun) -> bool:
        return self.lookup(fun) is not None

    def lookup(self, fun):
        entry = self._adapters.get(id(fun))
        if entry is None or entry[0] is not fun:
            return None
        return entry[1]

    def _get_or_create(self, fun, factory, name):
        adapter = self.lookup(fun)
        if adapter is not None:
            return adapter
        with self._lock:
            adapter = self.lookup(fun)
            if adapter is None:
                adapter = factory(fun, name)
                # keep `fun` referenced so its id stays unique
                self._adapters[id(fun)] = (fun, adapter)
        return adapter

    def primitive(self, fun: Callable, name: Optional[str] = None) -> Primitive:
        adapter = self._get_or_create(fun, Primitive, name)
        if not isinstance(adapter, Primitive):
            raise TypeError(f"{adapter!r} is registered as zero-gradient")
        return adapter

    def zero_gradient(self, fun: Callable, name: Optional[str] = None) -> ZeroGradient:
        adapter = self._get_or_create(fun, ZeroGradient, name)
        if not isinstance(adapter, ZeroGradient):
            raise TypeError(f"{adapter!r} is registered as a primitive")
        return adapter


# Process-wide registry used by the built-in ops and the engine.
registry = PrimitiveRegistry()


def register_primitive(fun: Callable = None, *, name: Optional[str] = None,
                       registry: PrimitiveRegistry = registry):
    """
    Return the recording adapter for `fun`, creating it on first use.
    Works as `register_primitive(f)` or as a bare decorator.
    """
    if fun is None:
        return lambda f: registry.primitive(f, name)
    return registry.primitive(fun, name)


def register_gradient(fun, argnum: Optional[int], gradfun: Optional[Callable] = None, *,
                      registry: PrimitiveRegistry = registry):
    """
    Install `gradfun(dy, y, *args, **kwargs)` as the gradient of `fun` w.r.t.
    positional argument `argnum`. `fun` may be the plain operation or its
    adapter.
    """
    prim = fun if isinstance(fun, Primitive) else registry.primitive(fun)
    return prim.defgrad(argnum, gradfun)


def register_zero_gradient(fun: Callable = None, *, name: Optional[str] = None,
                           registry: PrimitiveRegistry = registry):
    """Mark `fun` as having no gradient; boxed arguments are simply unboxed."""
    if fun is None:
        return lambda f: registry.zero_gradient(f, name)
    return registry.zero_gradient(fun, name)
