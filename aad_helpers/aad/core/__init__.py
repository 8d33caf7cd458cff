# aad/core/__init__.py

"""
Core public API for the AAD package.

Exports:
    ADVar            : The differentiable scalar used by the taped backend.
    Tape             : A recorded computation graph (nodes + registered leaves/outputs).
    trace_on/off     : Start/stop recording onto a tape stored by index.
    trace_abort      : Stop recording and discard the partial tape.
    reverse          : Run a single reverse pass to accumulate first-order adjoints.
    zero_adjoints    : Reset all adjoints on a tape to zero.
    gradient         : Gradient of one recorded output w.r.t. given leaves.
    edge_push_hessian: Dense Hessian of one recorded output via edge-pushing.
"""

from .var import ADVar
from .tape import Tape, trace_on, trace_off, trace_abort, is_tracing, get_tape, has_tape
from .engine import reverse, zero_adjoints, gradient, edge_push_hessian

__all__ = [
    "ADVar",
    "Tape",
    "trace_on", "trace_off", "trace_abort", "is_tracing", "get_tape", "has_tape",
    "reverse", "zero_adjoints", "gradient", "edge_push_hessian",
]
