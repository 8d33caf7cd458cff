# aad/core/var.py
from __future__ import annotations
import numbers
import numpy as np
from typing import Any, Optional

class ADVar:
    """
    Active scalar for reverse-mode Automatic Differentiation (AD).

    Attributes
    ----------
    val : np.float64
        Forward (primal) value of this variable. On a recorded tape the value
        is overwritten in place whenever the tape is replayed.
    adj : float
        Reverse-mode adjoint (gradient accumulator).
    requires_grad : bool
        Whether this variable participates in differentiation. Constants
        wrapped by the primitives carry False and never receive adjoints.
    name : Optional[str]
        Optional debug/pretty-print name (independent variables are "x0", "x1", ...).
    """

    __array_priority__ = 1000
    __array_ufunc__ = None  # numpy scalars defer to the ADVar operators

    def __init__(self, val: Any, *, requires_grad: bool = True, name: Optional[str] = None):
        # Only real scalars: the helpers work with scalar independent variables
        if isinstance(val, bool) or not isinstance(val, numbers.Real):
            raise TypeError(
                f"ADVar only accepts real scalars (int, float, numpy scalar), "
                f"but got {type(val)}"
            )
        self.val = np.float64(val)
        self.adj = 0.0
        self.requires_grad = requires_grad
        self.name = name

    def __repr__(self):
        # Short label: "req" if requires_grad=True, else "const"
        rg = "req" if self.requires_grad else "const"
        return f"ADVar({float(self.val)!r}, {rg}, name={self.name!r})"

    def __float__(self):
        return float(self.val)

    # Arithmetic operators (+ - * / ** and unary -) are bound by aad.ops.arithmetic
    def __pos__(self):
        return self

    # Comparisons act on primal values only; branches are frozen into the tape
    def __lt__(self, other):
        return self.val < _primal(other)

    def __le__(self, other):
        return self.val <= _primal(other)

    def __gt__(self, other):
        return self.val > _primal(other)

    def __ge__(self, other):
        return self.val >= _primal(other)


def _primal(x):
    return x.val if isinstance(x, ADVar) else x
