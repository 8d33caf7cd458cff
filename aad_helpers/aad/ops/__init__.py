# aad/ops/__init__.py

# Ensure operator overloading and replay rules are registered
from . import registry
from . import arithmetic
from . import transcendental
from . import special

# Convenience re-exports so users can do: from aad.ops import mul, exp, ...
from .arithmetic import add, sub, mul, div, neg, pow
from .transcendental import exp, log, sqrt, sin, cos, erf
from .special import norm_cdf, norm_pdf
from .registry import PRIMITIVES

__all__ = [
    "add", "sub", "mul", "div", "neg", "pow",
    "exp", "log", "sqrt", "sin", "cos", "erf",
    "norm_cdf", "norm_pdf",
    "PRIMITIVES",
]
