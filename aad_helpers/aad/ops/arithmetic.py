# aad/ops/arithmetic.py
import numpy as np
from ..core.var import ADVar
from .registry import def_primitive, record

def_primitive("add", lambda a, b: a + b, lambda a, b: 1.0, lambda a, b: 1.0)
def_primitive("sub", lambda a, b: a - b, lambda a, b: 1.0, lambda a, b: -1.0)
def_primitive("mul", lambda a, b: a * b, lambda a, b: b,   lambda a, b: a)
def_primitive("div", lambda a, b: a / b, lambda a, b: 1.0 / b, lambda a, b: -a / np.square(b))
def_primitive("neg", lambda a: -a, lambda a: -1.0)


def _pow_dx(x, p):
    return p * (x ** (p - 1.0)) if p != 0.0 else 0.0


def _pow_dp(x, p):
    # ∂(x^p)/∂p = x^p log(x), only defined for x > 0
    return (x ** p) * np.log(x) if x > 0 else 0.0


def_primitive("pow", lambda x, p: x ** p, _pow_dx, _pow_dp)


def add(x, y): return record("add", x, y)
def sub(x, y): return record("sub", x, y)
def mul(x, y): return record("mul", x, y)
def div(x, y): return record("div", x, y)

def neg(x):
    """
    Unary negation:
      out.val = -x.val
    """
    return record("neg", x)

def pow(x, y):
    """
    Power:
      out.val = x.val ** y.val

    Local partials:
      ∂out/∂x = y * x^(y-1)
      ∂out/∂y = x^y * log(x)        (0 for x<=0, where only integer y make sense)
    """
    return record("pow", x, y)

# Bind Python operators to ADVar
ADVar.__add__      = lambda self, other: add(self, other)
ADVar.__radd__     = lambda self, other: add(other, self)
ADVar.__sub__      = lambda self, other: sub(self, other)
ADVar.__rsub__     = lambda self, other: sub(other, self)
ADVar.__mul__      = lambda self, other: mul(self, other)
ADVar.__rmul__     = lambda self, other: mul(other, self)
ADVar.__truediv__  = lambda self, other: div(self, other)
ADVar.__rtruediv__ = lambda self, other: div(other, self)
ADVar.__neg__      = lambda self: neg(self)
ADVar.__pow__      = lambda self, other: pow(self, other)
ADVar.__rpow__     = lambda self, other: pow(other, self)
