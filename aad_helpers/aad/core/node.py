from dataclasses import dataclass
from typing import List, Tuple, Any

@dataclass
class Node:
    """
    One node on the tape produced by a primitive operation.

    Attributes
    ----------
    op_tag : str
        Primitive tag (e.g., "add", "mul"); selects the replay rule.
    out    : Any
        The ADVar produced by this op.
    parents: List[Tuple[Any, Any]]
        List of (parent_var, local_partial) pairs:
          - parent_var : the ADVar input that this node depends on
          - local_partial : float, ∂out/∂parent at the current parent values.
        Rebuilt in place when the tape is replayed.
    """
    op_tag: str
    out: Any
    parents: List[Tuple[Any, Any]]

    @property
    def parent_vars(self) -> List[Any]:
        return [p for p, _ in self.parents]
