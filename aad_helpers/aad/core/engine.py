# aad/core/engine.py
from __future__ import annotations
import numpy as np
from collections import defaultdict
from typing import Dict, Optional, Sequence, Union
from . import tape as tape_mod
from .tape import Tape
from .var import ADVar


def _resolve(tape: Optional[Tape]) -> Tape:
    tape = tape if tape is not None else tape_mod.active_tape()
    if tape is None:
        raise RuntimeError("No tape given and none is recording")
    return tape


def zero_adjoints(tape: Optional[Tape] = None):
    """
    Set all adjoints (bar variables) on a tape to zero.
    We scan the recorded nodes to find all reachable ADVars (outputs and parents)
    and zero their `.adj` fields. Registered leaves that no node uses are
    cleared as well.
    """
    tape = _resolve(tape)
    for v in tape.independents.values():
        v.adj = 0.0
    for node in tape.nodes:
        node.out.adj = 0.0
        for p, _ in node.parents:
            p.adj = 0.0


def reverse(outputs: Union[ADVar, Sequence[ADVar]], seed=1.0, tape: Optional[Tape] = None):
    """
    Run a single reverse pass from the given output(s).

    Args:
        outputs: an ADVar or a (list/tuple) of ADVars to seed.
        seed: scalar used as the adjoint seed. If `outputs` is a sequence,
              each output is seeded with 1.0 (the `seed` arg is ignored in
              that case).
        tape: tape to sweep; defaults to the tape currently recording.

    Notes:
        For each node, we propagate: p.adj += y.adj * (∂y/∂p).
    """
    tape = _resolve(tape)
    # Seed adjoints
    if isinstance(outputs, (list, tuple)):
        for y in outputs:
            y.adj += 1.0
    else:
        outputs.adj += float(seed)

    # Backward sweep
    for node in reversed(tape.nodes):
        y = node.out
        if y.adj == 0.0:
            continue  # nothing to propagate
        for (p, local_partial) in node.parents:
            if not p.requires_grad:
                continue
            p.adj = p.adj + y.adj * local_partial


def gradient(tape: Tape, output: ADVar, inputs: Sequence[ADVar]) -> np.ndarray:
    """Gradient of one recorded output w.r.t. `inputs` (one reverse sweep)."""
    zero_adjoints(tape)
    for x in inputs:
        x.adj = 0.0
    reverse(output, seed=1.0, tape=tape)
    return np.array([float(x.adj) for x in inputs], dtype=float)


# ---------------- Edge-Pushing: Componentwise (Algorithm 4) ---------------- #
# For i = L…1 do
#   (1) Pushing   (push masses involving y_i onto parents)
#   (2) Creating  (add vbar[i] * local 2nd derivatives into {·} / {·,·} space)
#   (3) Adjoint   (standard first-order reverse propagation)
# After the sweep, (4) Projection: H = P W P^T: project all masses that land on
# input–input pairs into the final Hessian buckets.


def _add_pair(W, a: int, b: int, w: float):
    """
    Accumulate mass on the unordered pair {a, b}.

    A pair mass stands for both H[a,b] and H[b,a]; when the two endpoints are
    the same variable (e.g. the parents of x*x) both land on the diagonal.
    """
    if a == b:
        W[frozenset((a,))] += 2.0 * w
    else:
        W[frozenset((a, b))] += w


def edge_push_hessian(tape: Tape, output: ADVar, inputs: Sequence[ADVar]) -> np.ndarray:
    """
    Compute the dense Hessian of a recorded scalar `output` with respect to
    `inputs` via the componentwise edge-pushing algorithm.

    Intermediate masses are kept in a variable-pair accumulator `W` keyed by
        frozenset({id_a})       for singletons {a}      (diagonal mass)
        frozenset({id_a, id_b}) for unordered pairs {a,b}
    and only projected onto the inputs at the very end.

    Parameters
    ----------
    tape   : the recorded tape (values as of the last record/replay)
    output : ADVar on `tape`, the function to differentiate
    inputs : leaf ADVars defining the Hessian's row/column order
    """
    n = len(inputs)
    H = np.zeros((n, n), dtype=float)

    node_index = {id(nd.out): i for i, nd in enumerate(tape.nodes)}
    out_idx = node_index.get(id(output))
    if out_idx is None:
        # Output is a leaf or a constant: no second-order information
        return H
    input_col = {id(x): i for i, x in enumerate(inputs)}

    vbar = defaultdict(float)   # first-order adjoints on nodes (indexed by tape idx)
    W = defaultdict(float)      # variable-pair masses (ids of ADVars)
    vbar[out_idx] = 1.0

    # ---------- Reverse sweep over the tape ----------
    for i in range(out_idx, -1, -1):
        node = tape.nodes[i]
        y_id = id(node.out)
        parents = node.parents  # [(ADVar, ∂y/∂p), ...]
        parent_ids = [id(p) for p, _ in parents]
        m = len(parents)

        # ===== (1) Pushing =====
        if W:
            touched = [k for k in W if y_id in k]
            for pk in touched:
                w = W.pop(pk)
                if len(pk) == 1:
                    # {y}: push to every (r, s) combination of parents
                    for r in range(m):
                        a_r = parents[r][1]
                        W[frozenset((parent_ids[r],))] += w * a_r * a_r
                        for s in range(r + 1, m):
                            _add_pair(W, parent_ids[r], parent_ids[s], w * a_r * parents[s][1])
                else:
                    # {y, q}: replace y by each of its parents
                    (q_id,) = pk - {y_id}
                    for r in range(m):
                        _add_pair(W, parent_ids[r], q_id, w * parents[r][1])

        # ===== (2) Creating =====
        vb = vbar[i]
        if vb != 0.0:
            for key, d2 in _second_locals(node).items():
                kind, pos = key
                if kind == "diag":
                    W[frozenset((parent_ids[pos],))] += float(d2 * vb)
                else:
                    u, v = pos
                    _add_pair(W, parent_ids[u], parent_ids[v], float(d2 * vb))

        # ===== (3) Adjoint =====
        if vb != 0.0:
            for (p_ad, a) in parents:
                p_idx = node_index.get(id(p_ad))
                if p_idx is not None:
                    vbar[p_idx] += vb * a

    # ===== (4) Projection: H = P W Pᵀ =====
    for pair_key, w in W.items():
        ids = list(pair_key)
        if len(ids) == 1:
            col = input_col.get(ids[0])
            if col is not None:
                H[col, col] += float(w)
        else:
            a, b = input_col.get(ids[0]), input_col.get(ids[1])
            if a is not None and b is not None:
                H[a, b] += float(w)
                H[b, a] += float(w)
    return H


def _second_locals(node) -> Dict:
    """
    Return local second derivatives for a primitive op.

    Keys:
        ("diag", u) -> ∂²y / ∂p_u²
        ("cross", (u,v)) -> ∂²y / ∂p_u ∂p_v   (u < v)

    u,v are parent indices (0,1,...).
    """
    tag = node.op_tag
    out = {}

    if tag in ("add", "sub", "neg"):
        return out

    if tag == "mul":
        # y = x*z ; ∂²y/∂x∂z = 1
        out[("cross", (0, 1))] = 1.0
        return out

    if tag == "div":
        # y = x / z
        x = node.parents[0][0].val
        z = node.parents[1][0].val
        out[("cross", (0, 1))] = -1.0 / (z * z)     # ∂²y/∂x∂z
        out[("diag", 1)] = 2.0 * x / (z ** 3)       # ∂²y/∂z²
        return out

    if tag == "pow":
        # y = x^p
        x = node.parents[0][0].val
        p = node.parents[1][0].val
        if p not in (0.0, 1.0):
            out[("diag", 0)] = p * (p - 1.0) * (x ** (p - 2.0))              # ∂²/∂x²
        if x > 0:
            out[("diag", 1)] = (x ** p) * (np.log(x) ** 2)                   # ∂²/∂p²
            out[("cross", (0, 1))] = (x ** (p - 1.0)) * (1.0 + p * np.log(x))  # ∂²/∂x∂p
        return out

    x = node.parents[0][0].val

    if tag == "exp":
        out[("diag", 0)] = node.out.val
    elif tag == "log":
        out[("diag", 0)] = -1.0 / (x * x)
    elif tag == "sqrt":
        out[("diag", 0)] = -0.25 * (x ** -1.5)
    elif tag == "sin":
        out[("diag", 0)] = -np.sin(x)
    elif tag == "cos":
        out[("diag", 0)] = -np.cos(x)
    elif tag == "erf":
        out[("diag", 0)] = -2.0 * x * (2.0 / np.sqrt(np.pi)) * np.exp(-x * x)
    elif tag == "norm_cdf":
        phi = np.exp(-0.5 * x * x) / np.sqrt(2.0 * np.pi)
        out[("diag", 0)] = -x * phi
    else:
        raise NotImplementedError(f"No second-order rule for primitive {tag!r}")
    return out
