"""
Boxed values, tapes, nodes and the primitive recording adapter.
"""

import threading

import numpy as np
import pytest

import tapegrad
from tapegrad.core import (
    Boxed,
    Grad,
    Node,
    NotDifferentiableError,
    Primitive,
    PrimitiveRegistry,
    Tape,
    TapeClosedError,
    backward_pass,
    findeq,
    register_gradient,
    register_primitive,
    register_zero_gradient,
    tofloat,
    unbox,
)
from tapegrad.ops import add, mul, sign


# ----------------------------- Boxed ----------------------------- #
def test_unbox_is_one_step_and_passes_plain_values():
    t = Tape()
    b = Boxed(np.array([1.0, 2.0]), t)
    assert unbox(b) is b.val
    assert unbox(3.5) == 3.5
    assert unbox(unbox(b)) is b.val


def test_boxing_a_boxed_value_is_rejected():
    t = Tape()
    b = Boxed(1.0, t)
    with pytest.raises(TypeError):
        Boxed(b, t)


def test_new_boxed_value_is_the_first_node_on_its_tape():
    t = Tape()
    b = Boxed(2.0, t)
    assert len(t) == 1
    assert t[0] is b.nodes[0]
    assert b.tapes == [t]
    assert b.nodes[0].value is b
    assert b.nodes[0].parents == []
    assert b.node_on(t) is b.nodes[0]
    assert b.node_on(Tape()) is None


def test_findeq_uses_identity_not_equality():
    a, b = [1, 2], [1, 2]
    assert findeq([a, b], b) == 1
    assert findeq([a], b) == -1
    assert findeq([], a) == -1


def test_boxed_metadata_and_comparisons_are_not_recorded():
    t = Tape()
    b = Boxed(np.array([1.0, -2.0, 3.0]), t)
    assert b.shape == (3,)
    assert b.ndim == 1
    assert b.size == 3
    assert len(b) == 3
    np.testing.assert_array_equal(b > 0, [True, False, True])
    assert len(t) == 1


# ----------------------------- tofloat ----------------------------- #
def test_tofloat_scalars():
    assert isinstance(tofloat(3), float)
    assert tofloat(3) == 3.0
    assert tofloat(True) == 1.0
    assert tofloat(2.5) == 2.5
    assert tofloat(np.float32(1.5)).dtype == np.float32


def test_tofloat_arrays_and_lists():
    a = tofloat(np.array([1, 2]))
    assert a.dtype == np.float64
    f = np.array([1.0, 2.0], dtype=np.float32)
    assert tofloat(f) is f
    lst = tofloat([1, 2, 3])
    assert isinstance(lst, np.ndarray)
    np.testing.assert_array_equal(lst, [1.0, 2.0, 3.0])


def test_tofloat_keeps_structure_of_containers():
    out = tofloat((1, [2, 3], {"a": 4}))
    assert isinstance(out, tuple)
    assert out[0] == 1.0
    np.testing.assert_array_equal(out[1], [2.0, 3.0])
    assert out[2] == {"a": 4.0}
    params = tofloat([np.array([1, 2]), np.array([[3]])])
    assert isinstance(params, list)
    assert params[0].dtype == np.float64
    assert tofloat("label") == "label"


# ----------------------------- Tape ----------------------------- #
def test_tape_close_appends_marker_and_rejects_pushes():
    t = Tape()
    b = Boxed(1.0, t)
    assert not t.closed
    t.close()
    assert t.closed
    assert len(t) == 2
    assert t.recorded() == [b.nodes[0]]
    with pytest.raises(TapeClosedError):
        t.push_node(Node.for_value(b))
    t.close()
    assert len(t) == 2


def test_empty_tape_is_open():
    t = Tape()
    assert not t.closed
    assert t.recorded() == []


# ----------------------------- recording ----------------------------- #
def test_primitive_without_boxed_arguments_is_a_plain_call():
    assert mul(3.0, 4.0) == 12.0
    assert not isinstance(add(1.0, 2.0), Boxed)


def test_primitive_records_result_and_parent_slots():
    t = Tape()
    x = Boxed(3.0, t)
    y = mul(x, 2.0)
    assert isinstance(y, Boxed)
    assert y.val == 6.0
    assert y.func is mul
    assert y.args == (x, 2.0)
    assert len(t) == 2
    node = y.nodes[0]
    assert node.parents[0] is x.nodes[0]
    assert node.parents[1] is None


def test_same_argument_twice_reuses_one_result_node():
    t = Tape()
    x = Boxed(3.0, t)
    y = x * x
    assert len(t) == 2
    assert len(y.nodes) == 1
    assert y.nodes[0].parents == [x.nodes[0], x.nodes[0]]


def test_result_is_recorded_on_every_open_tape_of_its_arguments():
    t1, t2 = Tape(), Tape()
    a = Boxed(1.0, t1)
    b = Boxed(2.0, t2)
    c = add(a, b)
    assert c.tapes == [t1, t2]
    assert c.node_on(t1).parents == [a.nodes[0], None]
    assert c.node_on(t2).parents == [None, b.nodes[0]]
    assert c.node_on(t1) is not c.node_on(t2)


def test_closed_tapes_are_skipped():
    t = Tape()
    x = Boxed(2.0, t)
    t.close()
    y = x * 3.0
    assert not isinstance(y, Boxed)
    assert y == 6.0
    assert len(t) == 2


def test_after_backward_the_tape_stays_closed_and_gradient_unchanged():
    seed, result, tape = tapegrad.forward_pass(lambda x: x * x, (3.0,), {}, 0)
    g = backward_pass(seed, result, tape)
    n = len(tape)
    assert tape.closed
    assert not isinstance(seed * 2.0, Boxed)
    assert len(tape) == n
    with pytest.raises(TapeClosedError):
        tape.push_node(Node.for_value(seed))
    assert g == 6.0


# ----------------------------- registry ----------------------------- #
def test_adapters_are_cached_by_operation_identity():
    reg = PrimitiveRegistry()

    def square(x):
        return x * x

    p1 = register_primitive(square, registry=reg)
    p2 = register_primitive(square, registry=reg)
    assert p1 is p2
    assert isinstance(p1, Primitive)
    assert square in reg
    assert len(reg) == 1
    assert register_primitive(np.multiply) is mul


def test_registry_creates_one_adapter_under_concurrent_first_use():
    reg = PrimitiveRegistry()

    def cube(x):
        return x ** 3

    seen = []

    def worker():
        seen.append(reg.primitive(cube))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    assert len({id(p) for p in seen}) == 1


def test_custom_primitive_with_registered_gradient():
    reg = PrimitiveRegistry()

    @register_primitive(registry=reg)
    def cube(x):
        return x ** 3

    register_gradient(cube, 0, lambda dy, y, x: dy * 3.0 * x * x, registry=reg)
    assert tapegrad.grad(cube)(2.0) == pytest.approx(12.0)


def test_gradient_decorator_form():
    reg = PrimitiveRegistry()

    def hypot(a, b):
        return np.hypot(a, b)

    prim = reg.primitive(hypot)

    @prim.defgrad(0)
    def _(dy, y, a, b):
        return dy * a / prim(a, b)

    @prim.defgrad(1)
    def _(dy, y, a, b):
        return dy * b / prim(a, b)

    assert tapegrad.grad(prim)(3.0, 4.0) == pytest.approx(0.6)
    assert tapegrad.grad(prim, 1)(3.0, 4.0) == pytest.approx(0.8)


def test_missing_gradient_raises():
    reg = PrimitiveRegistry()
    twice = reg.primitive(lambda x: 2.0 * x)
    with pytest.raises(NotDifferentiableError):
        tapegrad.grad(twice)(1.0)


def test_grad_selectors_are_cached():
    assert Grad[0] is Grad[0]
    assert Grad[1] is not Grad[0]
    assert Grad[2].argnum == 2
    assert repr(Grad[1]) == "Grad[1]"


def test_zero_gradient_ops_never_record():
    t = Tape()
    x = Boxed(-2.0, t)
    s = sign(x)
    assert not isinstance(s, Boxed)
    assert s == -1.0
    assert len(t) == 1
    assert tapegrad.grad(lambda x: sign(x) * x)(-2.0) == -1.0


def test_zero_gradient_and_primitive_registrations_do_not_mix():
    reg = PrimitiveRegistry()

    def f(x):
        return x

    register_zero_gradient(f, registry=reg)
    with pytest.raises(TypeError):
        register_primitive(f, registry=reg)
