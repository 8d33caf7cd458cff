# aad/core/tape.py
from __future__ import annotations
import logging
import numpy as np
import pickle
from pathlib import Path
from typing import Dict, List, Tuple, Iterable, Optional, Sequence
from .node import Node
from .var import ADVar

logger = logging.getLogger(__name__)


class Tape:
    """
    Records Nodes in forward order, together with the leaves (independent
    variables) and outputs (dependent variables) registered on it.

    A tape that was recorded once can be replayed at new leaf values: every
    node recomputes its output value and local partials through the replay
    rule of its primitive.
    """
    def __init__(self, index: int = 0, *, keep_values: bool = True,
                 buffer_sizes: Optional[Tuple[int, int, int, int]] = None):
        self.index = index
        self.keep_values = keep_values
        self.buffer_sizes = buffer_sizes
        self.nodes: List[Node] = []
        self.independents: Dict[int, ADVar] = {}
        self.dependents: Dict[int, ADVar] = {}

    def __repr__(self):
        return (f"Tape(index={self.index}, nodes={len(self.nodes)}, "
                f"independents={len(self.independents)}, dependents={len(self.dependents)})")

    def reset(self):
        self.nodes.clear()
        self.independents.clear()
        self.dependents.clear()

    def push_node(self, *, op_tag: str, out, parents: List[Tuple]):
        """
        Append a Node(op_tag, out, parents) to the tape.
        `parents` is a list of (parent_ADVar, local_partial_numeric).
        """
        self.nodes.append(Node(op_tag=op_tag, out=out, parents=parents))
        return len(self.nodes) - 1

    def register_independent(self, index: int, var: ADVar):
        self.independents[index] = var

    def register_dependent(self, index: int, var: ADVar):
        self.dependents[index] = var

    @property
    def n_independents(self) -> int:
        return len(self.independents)

    @property
    def n_dependents(self) -> int:
        return len(self.dependents)

    def ordered_independents(self) -> List[ADVar]:
        return [self.independents[i] for i in sorted(self.independents)]

    def replay(self, values: Sequence[float]):
        """
        Re-evaluate the recorded operations at new independent-variable values.

        Leaf values are overwritten in place and every node is recomputed in
        recording order, so outputs and local partials reflect `values`.
        Control flow taken while recording is not re-examined.
        """
        from ..ops.registry import replay_node  # local import to avoid cycles
        leaves = self.ordered_independents()
        if len(values) != len(leaves):
            raise ValueError(
                f"Tape {self.index} records {len(leaves)} independent variables, "
                f"got {len(values)} values"
            )
        for leaf, v in zip(leaves, values):
            leaf.val = np.float64(v)
        for node in self.nodes:
            replay_node(node)

    def save(self, path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as fh:
            pickle.dump(self, fh)
        logger.info("Wrote tape %d (%d nodes) to %s", self.index, len(self.nodes), path)
        return path

    @staticmethod
    def load(path) -> "Tape":
        with open(path, "rb") as fh:
            tape = pickle.load(fh)
        if not isinstance(tape, Tape):
            raise TypeError(f"{path} does not contain a Tape")
        return tape


# Tapes recorded by index; owned by the AD layer, independent of any helper
_recorded_tapes: Dict[int, Tape] = {}

# Tape currently receiving operations; None outside trace_on()/trace_off()
_active: Optional[Tape] = None


def trace_on(index: int, *, keep_values: bool = True,
             buffer_sizes: Optional[Tuple[int, int, int, int]] = None) -> Tape:
    """
    Start recording onto a fresh tape for `index`.

    Only one tape records at a time. The tape is stored under `index` by
    trace_off(); until then any tape previously recorded under the same
    index stays available, and trace_abort() leaves it in place.
    """
    global _active
    if _active is not None:
        raise RuntimeError(
            f"Tape {_active.index} is still recording; call trace_off() first"
        )
    _active = Tape(index, keep_values=keep_values, buffer_sizes=buffer_sizes)
    logger.debug("trace_on: tape %d", index)
    return _active


def trace_off() -> Tape:
    """Stop recording and store the finished tape under its index."""
    global _active
    if _active is None:
        raise RuntimeError("trace_off() called without a matching trace_on()")
    finished, _active = _active, None
    _recorded_tapes[finished.index] = finished
    logger.debug("trace_off: tape %d (%d nodes)", finished.index, len(finished.nodes))
    return finished


def trace_abort():
    """Stop recording and discard the partial tape."""
    global _active
    if _active is None:
        raise RuntimeError("trace_abort() called without a matching trace_on()")
    logger.debug("trace_abort: tape %d discarded", _active.index)
    _active = None


def active_tape() -> Optional[Tape]:
    return _active


def is_tracing() -> bool:
    return _active is not None


def get_tape(index: int) -> Tape:
    try:
        return _recorded_tapes[index]
    except KeyError:
        raise KeyError(f"No tape recorded under index {index}") from None


def has_tape(index: int) -> bool:
    return index in _recorded_tapes


def recorded_tape_indices() -> Iterable[int]:
    return sorted(_recorded_tapes)


def clear_tapes():
    """Forget every recorded tape (the active trace, if any, is kept)."""
    _recorded_tapes.clear()
