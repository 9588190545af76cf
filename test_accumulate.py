"""
Gradient accumulation at fan-in nodes.
"""

import numpy as np
import pytest

from tapegrad.core import AccumulationTypeError, Boxed, Tape, backward_pass, sum_outgrads


def test_no_contributions():
    assert sum_outgrads([]) is None
    assert sum_outgrads([None]) is None
    assert sum_outgrads([None, None]) is None


def test_single_contribution_is_returned_unchanged():
    a = np.array([1.0, 2.0])
    assert sum_outgrads([a]) is a
    assert sum_outgrads([None, a]) is a
    assert sum_outgrads([a, None]) is a


def test_scalars():
    assert sum_outgrads([1.0, 2.0, np.float64(3.0)]) == 6.0
    assert sum_outgrads([1.0, np.array(2.0)]) == 3.0


def test_arrays():
    out = sum_outgrads([np.array([1.0, 2.0]), np.array([3.0, 4.0]), np.array([0.5, 0.5])])
    np.testing.assert_allclose(out, [4.5, 6.5])


def test_arrays_broadcast():
    out = sum_outgrads([np.ones((2, 3)), np.array([1.0, 2.0, 3.0])])
    np.testing.assert_allclose(out, [[2.0, 3.0, 4.0], [2.0, 3.0, 4.0]])


def test_object_arrays_recurse_per_element():
    a = np.empty(2, dtype=object)
    b = np.empty(2, dtype=object)
    a[0], a[1] = (1.0, None), (2.0, 2.0)
    b[0], b[1] = (None, 5.0), (1.0, 1.0)
    out = sum_outgrads([a, b])
    assert out.dtype == object
    assert out[0] == (1.0, 5.0)
    assert out[1] == (3.0, 3.0)


def test_tuples_recurse_per_position():
    assert sum_outgrads([(1.0, None), (None, 2.0)]) == (1.0, 2.0)
    out = sum_outgrads([(np.array([1.0]), 1.0), (np.array([2.0]), 1.0)])
    assert isinstance(out, tuple)
    np.testing.assert_allclose(out[0], [3.0])
    assert out[1] == 2.0


def test_lists_recurse_per_position():
    out = sum_outgrads([[1.0, None, 3.0], [1.0, 2.0, None]])
    assert out == [2.0, 2.0, 3.0]


def test_dicts_union_keys():
    out = sum_outgrads([{"a": 1.0}, {"a": 2.0, "b": 3.0}, {"c": None}])
    assert out == {"a": 3.0, "b": 3.0}


def test_nested_dicts():
    out = sum_outgrads([{"w": np.array([1.0, 1.0])}, {"w": np.array([2.0, 0.0])}])
    np.testing.assert_allclose(out["w"], [3.0, 1.0])


@pytest.mark.parametrize("contributions", [
    [1.0, np.array([1.0, 2.0])],
    [(1.0,), (1.0, 2.0)],
    [{"a": 1.0}, (1.0,)],
    [[1.0], [1.0, 2.0]],
    [np.ones(2), np.ones(3)],
    ["a", "b"],
])
def test_structural_mismatch_raises(contributions):
    with pytest.raises(AccumulationTypeError):
        sum_outgrads(contributions)


def test_accumulation_is_recorded_on_open_tapes():
    tape = Tape()
    a = Boxed(1.0, tape)
    total = sum_outgrads([a, 2.0, a])
    assert isinstance(total, Boxed)
    assert total.val == 4.0
    assert backward_pass(a, total, tape) == 2.0


def test_accumulation_skips_closed_tapes():
    tape = Tape()
    a = Boxed(1.0, tape)
    tape.close()
    total = sum_outgrads([a, 2.0])
    assert not isinstance(total, Boxed)
    assert total == 3.0
