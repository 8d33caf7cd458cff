# aad/ops/registry.py
"""
Primitive registry: one entry per op_tag holding the rule that evaluates the
primitive and its local partials from the parents' primal values.

The same rule serves both for recording (`record`) and for replaying a tape
at new independent-variable values (`replay_node`), so a primitive can never
be recorded without being replayable.
"""
from __future__ import annotations
from typing import Callable, Dict, NamedTuple, Sequence
import numpy as np

from ..core.var import ADVar
from ..core import tape as tape_mod


class Primitive(NamedTuple):
    value: Callable[..., float]
    partials: Sequence[Callable[..., float]]


PRIMITIVES: Dict[str, Primitive] = {}


def def_primitive(tag: str, value: Callable[..., float], *partials: Callable[..., float]):
    """Register the value rule and the local partial rules (one per parent) of `tag`."""
    if tag in PRIMITIVES:
        raise ValueError(f"Primitive {tag!r} is already registered")
    PRIMITIVES[tag] = Primitive(value, partials)
    return PRIMITIVES[tag]


def _as_ad(x, requires_grad=False):
    """Ensure x is an ADVar; otherwise wrap it as a constant ADVar."""
    return x if isinstance(x, ADVar) else ADVar(x, requires_grad=requires_grad)


def record(tag: str, *args) -> ADVar:
    """
    Generic primitive:
      - computes out.val = value(*parent_vals)
      - pushes a Node with local partials (∂out/∂parent_k) on the recording
        tape; outside trace_on()/trace_off() nothing is recorded
    """
    rule = PRIMITIVES[tag]
    parents = [_as_ad(a, requires_grad=False) for a in args]
    vals = [p.val for p in parents]
    out = ADVar(rule.value(*vals))
    tape = tape_mod.active_tape()
    if tape is None:
        return out
    tape.push_node(
        op_tag=tag, out=out,
        parents=[(p, float(d(*vals))) for p, d in zip(parents, rule.partials)]
    )
    return out


def replay_node(node):
    """Recompute node.out.val and the local partials from the current parent values."""
    rule = PRIMITIVES[node.op_tag]
    parents = node.parent_vars
    vals = [p.val for p in parents]
    node.out.val = np.float64(rule.value(*vals))
    node.parents = [(p, float(d(*vals))) for p, d in zip(parents, rule.partials)]
