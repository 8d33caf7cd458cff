"""
Unit tests for the taped reverse-mode engine: tracing, reverse sweep,
edge-pushing Hessian and tape replay.
"""

import numpy as np
import pytest

from aad_helpers.aad import ADVar, ops
from aad_helpers.aad.core import tape as tape_mod
from aad_helpers.aad.core.engine import edge_push_hessian, gradient, reverse, zero_adjoints
from aad_helpers.aad.core.graph_utils import get_graph_stats


def traced(f, values, index=1):
    """Record f on a fresh tape and return (tape, output, inputs)."""
    tape = tape_mod.trace_on(index)
    try:
        xs = [ADVar(v, name=f"x{i}") for i, v in enumerate(values)]
        for i, x in enumerate(xs):
            tape.register_independent(i, x)
        y = f(xs)
        tape.register_dependent(0, y)
    finally:
        tape_mod.trace_off()
    return tape, y, xs


class TestADVar:
    def test_rejects_non_scalars(self):
        with pytest.raises(TypeError):
            ADVar(np.array([1.0, 2.0]))
        with pytest.raises(TypeError):
            ADVar(True)

    def test_numpy_scalar_operands(self):
        x = ADVar(2.0)
        y = np.float64(3.0) * x
        assert isinstance(y, ADVar)
        assert float(y) == 6.0

    def test_comparisons_use_primal(self):
        assert ADVar(1.0) < ADVar(2.0)
        assert ADVar(2.0) >= 2.0


class TestTracing:
    def test_trace_on_routes_operations(self):
        tape, y, _ = traced(lambda x: x[0] * x[1], [2.0, 3.0])
        assert [n.op_tag for n in tape.nodes] == ["mul"]
        assert tape_mod.get_tape(1) is tape
        assert not tape_mod.is_tracing()

    def test_trace_off_without_trace_on(self):
        with pytest.raises(RuntimeError):
            tape_mod.trace_off()
        with pytest.raises(RuntimeError):
            tape_mod.trace_abort()

    def test_get_unknown_tape(self):
        with pytest.raises(KeyError):
            tape_mod.get_tape(42)
        assert not tape_mod.has_tape(42)

    def test_retrace_replaces_tape(self):
        first, _, _ = traced(lambda x: x[0] + 1.0, [1.0])
        second, _, _ = traced(lambda x: x[0] * 2.0, [1.0])
        assert tape_mod.get_tape(1) is second
        assert first is not second
        assert list(tape_mod.recorded_tape_indices()) == [1]

    def test_one_trace_at_a_time(self):
        first = tape_mod.trace_on(1)
        with pytest.raises(RuntimeError):
            tape_mod.trace_on(2)
        assert tape_mod.active_tape() is first
        tape_mod.trace_off()
        assert list(tape_mod.recorded_tape_indices()) == [1]

    def test_tape_stored_only_when_trace_ends(self):
        tape_mod.trace_on(3)
        ADVar(1.0) * 2.0
        assert not tape_mod.has_tape(3)
        tape_mod.trace_off()
        assert tape_mod.has_tape(3)

    def test_abort_keeps_previous_tape(self):
        kept, _, _ = traced(lambda x: x[0] * 2.0, [1.0], index=4)
        tape_mod.trace_on(4)
        ADVar(1.0) + 1.0
        tape_mod.trace_abort()
        assert not tape_mod.is_tracing()
        assert tape_mod.get_tape(4) is kept

    def test_nothing_recorded_outside_a_trace(self):
        x = ADVar(2.0)
        y = ops.exp(x * x)
        assert float(y) == pytest.approx(np.exp(4.0))
        tape, _, _ = traced(lambda v: v[0] + 1.0, [1.0])
        assert [n.op_tag for n in tape.nodes] == ["add"]

    def test_reverse_needs_a_tape(self):
        with pytest.raises(RuntimeError):
            reverse(ADVar(1.0))


class TestReverse:
    def test_reverse_sweep(self):
        tape = tape_mod.trace_on(1)
        x = ADVar(2.0)
        y = ADVar(5.0)
        z = ops.exp(x) * y + ops.sin(y)
        tape_mod.trace_off()
        reverse(z, tape=tape)
        assert x.adj == pytest.approx(np.exp(2.0) * 5.0)
        assert y.adj == pytest.approx(np.exp(2.0) + np.cos(5.0))

    def test_reverse_defaults_to_recording_tape(self):
        tape_mod.trace_on(1)
        x = ADVar(3.0)
        z = x * x
        reverse(z)
        tape_mod.trace_off()
        assert x.adj == pytest.approx(6.0)

    def test_zero_adjoints(self):
        tape, z, (x,) = traced(lambda v: v[0] * v[0], [2.0])
        reverse(z, tape=tape)
        zero_adjoints(tape)
        assert x.adj == 0.0 and z.adj == 0.0

    def test_gradient_is_repeatable(self):
        tape, y, xs = traced(lambda x: x[0] * x[1] + x[0], [2.0, 3.0])
        g1 = gradient(tape, y, xs)
        g2 = gradient(tape, y, xs)
        np.testing.assert_array_equal(g1, g2)
        np.testing.assert_allclose(g1, [4.0, 2.0])

    def test_constants_receive_no_adjoint(self):
        tape = tape_mod.trace_on(1)
        c = ADVar(3.0, requires_grad=False)
        x = ADVar(2.0)
        z = c * x
        tape_mod.trace_off()
        reverse(z, tape=tape)
        assert c.adj == 0.0
        assert x.adj == 3.0


class TestEdgePushing:
    def test_repeated_parent(self):
        tape, y, xs = traced(lambda x: x[0] * x[0], [3.0])
        np.testing.assert_allclose(edge_push_hessian(tape, y, xs), [[2.0]])

    def test_repeated_parent_through_intermediate(self):
        # f = (x0 x1)² : the intermediate u = x0 x1 is squared
        def f(x):
            u = x[0] * x[1]
            return u * u
        tape, y, xs = traced(f, [2.0, 3.0])
        a, b = 2.0, 3.0
        expected = [[2 * b * b, 4 * a * b], [4 * a * b, 2 * a * a]]
        np.testing.assert_allclose(edge_push_hessian(tape, y, xs), expected)

    def test_chain_of_unary_ops(self):
        tape, y, xs = traced(lambda x: ops.exp(ops.sin(x[0])), [0.4])
        s, c = np.sin(0.4), np.cos(0.4)
        expected = np.exp(s) * (c * c - s)
        np.testing.assert_allclose(edge_push_hessian(tape, y, xs), [[expected]])

    def test_leaf_output(self):
        tape, _, xs = traced(lambda x: x[0] * 2.0, [1.0])
        np.testing.assert_array_equal(edge_push_hessian(tape, xs[0], xs), [[0.0]])

    def test_unused_nodes_are_ignored(self):
        def f(x):
            ops.exp(x[1])  # recorded but not part of the output
            return x[0] * x[1]
        tape, y, xs = traced(f, [2.0, 3.0])
        np.testing.assert_allclose(edge_push_hessian(tape, y, xs), [[0.0, 1.0], [1.0, 0.0]])

    def test_symmetric(self):
        def f(x):
            return ops.log(x[0] * x[1] + x[2]) / (x[0] + x[2]) ** 2.0
        tape, y, xs = traced(f, [0.8, 1.5, 2.1])
        H = edge_push_hessian(tape, y, xs)
        np.testing.assert_allclose(H, H.T, atol=1e-14)


class TestReplay:
    def test_replay_updates_values_and_partials(self):
        tape, y, xs = traced(lambda x: ops.exp(x[0]) * x[1], [0.0, 2.0])
        tape.replay([1.0, 3.0])
        assert float(y.val) == pytest.approx(np.e * 3.0)
        np.testing.assert_allclose(gradient(tape, y, xs), [np.e * 3.0, np.e])
        np.testing.assert_allclose(edge_push_hessian(tape, y, xs),
                                   [[np.e * 3.0, np.e], [np.e, 0.0]])

    def test_replay_wrong_length(self):
        tape, _, _ = traced(lambda x: x[0] + x[1], [1.0, 2.0])
        with pytest.raises(ValueError):
            tape.replay([1.0])

    def test_replay_follows_recorded_branch(self):
        def f(x):
            return x[0] * 2.0 if x[0] > 0 else x[0] * -1.0
        tape, y, _ = traced(f, [1.0])
        tape.replay([-3.0])
        assert float(y.val) == pytest.approx(-6.0)


class TestPrimitiveRegistry:
    def test_every_primitive_has_second_order_rule(self):
        from aad_helpers.aad.core.engine import _second_locals
        from aad_helpers.aad.core.node import Node
        for tag, rule in ops.PRIMITIVES.items():
            parents = [(ADVar(0.5), 0.0) for _ in rule.partials]
            _second_locals(Node(op_tag=tag, out=ADVar(0.5), parents=parents))

    def test_duplicate_primitive_rejected(self):
        from aad_helpers.aad.ops.registry import def_primitive
        with pytest.raises(ValueError):
            def_primitive("mul", lambda a, b: a * b, lambda a, b: b, lambda a, b: a)


class TestGraphStats:
    def test_counts(self):
        tape, _, _ = traced(lambda x: x[0] * x[1] + ops.exp(x[0]), [1.0, 2.0])
        stats = get_graph_stats(tape)
        assert stats["nodes"] == 3
        assert stats["edges"] == 5
        assert stats["operations"] == {"mul": 1, "exp": 1, "add": 1}
        assert stats["max_fan_in"] == 2
