# aad/__init__.py
# Automatic differentiation numbers used by the helpers' backends

from .core.var import ADVar
from .core.tape import Tape, trace_on, trace_off
from .core.engine import (
    reverse,
    zero_adjoints,
    gradient,
    edge_push_hessian,
)
from . import ops

# Taylor expansion module (tapeless numbers)
from . import taylor
from .taylor import TVar, taylor_grad_hessian

# Backend-agnostic elementary functions
from . import elementary

__all__ = [
    # Core
    'ADVar',
    'Tape',
    'trace_on',
    'trace_off',
    # Engine
    'reverse',
    'zero_adjoints',
    'gradient',
    'edge_push_hessian',
    'ops',
    # Taylor
    'taylor',
    'TVar',
    'taylor_grad_hessian',
    'elementary',
]
