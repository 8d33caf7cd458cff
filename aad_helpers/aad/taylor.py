# aad/taylor.py
# 2nd-order forward (tapeless) engine, independent from the tape/edge-pushing

import math
import numpy as np
from scipy.special import erf as scipy_erf
from typing import Callable, Sequence, Tuple


class TVar:
    """
    2nd-order Taylor variable over n independent directions:
        v0 = value
        v1 = gradient, shape (n,)
        v2 = Hessian,  shape (n, n)

    Constants carry the scalar 0.0 in place of v1/v2; broadcasting turns them
    into zero arrays wherever they meet a sensitive variable.
    """
    __slots__ = ("v0", "v1", "v2")
    __array_ufunc__ = None  # numpy scalars defer to the TVar operators

    def __init__(self, v0, v1=0.0, v2=0.0):
        self.v0 = float(v0)
        self.v1 = v1
        self.v2 = v2

    @classmethod
    def independent(cls, value: float, index: int, n: int) -> "TVar":
        """Seed variable `index` of `n`: gradient e_index, zero Hessian."""
        v1 = np.zeros(n)
        v1[index] = 1.0
        return cls(value, v1, np.zeros((n, n)))

    def __repr__(self):
        return f"TVar({self.v0!r})"

    def __float__(self):
        return self.v0

    def gradient(self, n: int) -> np.ndarray:
        return np.array(np.broadcast_to(self.v1, (n,)), dtype=float)

    def hessian(self, n: int) -> np.ndarray:
        return np.array(np.broadcast_to(self.v2, (n, n)), dtype=float)

    def __add__(a, b):
        if not isinstance(b, TVar): b = TVar(b)
        return TVar(a.v0 + b.v0, a.v1 + b.v1, a.v2 + b.v2)
    __radd__ = __add__

    def __sub__(a, b):
        if not isinstance(b, TVar): b = TVar(b)
        return TVar(a.v0 - b.v0, a.v1 - b.v1, a.v2 - b.v2)

    def __rsub__(b, a):
        if not isinstance(a, TVar): a = TVar(a)
        return TVar(a.v0 - b.v0, a.v1 - b.v1, a.v2 - b.v2)

    def __mul__(a, b):
        if not isinstance(b, TVar): b = TVar(b)
        v0 = a.v0 * b.v0
        v1 = a.v1 * b.v0 + a.v0 * b.v1
        v2 = a.v2 * b.v0 + _sym_outer(a.v1, b.v1) + a.v0 * b.v2
        return TVar(v0, v1, v2)
    __rmul__ = __mul__

    def recip(self):
        x0 = self.v0
        return _chain(self, 1.0 / x0, -1.0 / (x0 * x0), 2.0 / (x0 ** 3))

    def __truediv__(a, b):
        if not isinstance(b, TVar): b = TVar(b)
        return a * b.recip()

    def __rtruediv__(b, a):
        return TVar(a) * b.recip()

    def __pow__(a, b):
        if isinstance(b, TVar):
            return texp(b * tlog(a))
        # Constant exponent: stays defined for negative bases and integer b
        p = float(b)
        x0 = a.v0
        f1 = p * x0 ** (p - 1.0) if p != 0.0 else 0.0
        f2 = p * (p - 1.0) * x0 ** (p - 2.0) if p not in (0.0, 1.0) else 0.0
        return _chain(a, x0 ** p, f1, f2)

    def __rpow__(b, a):
        return texp(b * math.log(a))

    def __neg__(a):
        return TVar(-a.v0, -a.v1, -a.v2)

    def __pos__(a):
        return a

    def __lt__(a, b):
        return a.v0 < float(b)

    def __le__(a, b):
        return a.v0 <= float(b)

    def __gt__(a, b):
        return a.v0 > float(b)

    def __ge__(a, b):
        return a.v0 >= float(b)


def _outer(u, w):
    # Scalar derivative parts only ever hold the constant 0.0
    if np.ndim(u) == 0 or np.ndim(w) == 0:
        return 0.0
    return np.multiply.outer(u, w)


def _sym_outer(u, w):
    """u wᵀ + w uᵀ: the cross term of the product rule for Hessians."""
    uw = _outer(u, w)
    return uw + np.transpose(uw) if np.ndim(uw) else 0.0


def _chain(x: TVar, f0: float, f1: float, f2: float) -> TVar:
    """
    Compose a scalar function f (value f0, derivatives f1, f2 at x.v0) with x:
        ∇f(x)  = f1 ∇x
        ∇²f(x) = f1 ∇²x + f2 ∇x ∇xᵀ
    """
    return TVar(f0, f1 * x.v1, f1 * x.v2 + f2 * _outer(x.v1, x.v1))


# ----- Elementary functions (2nd order) -----
def texp(x: TVar):
    """Exponential function with 2nd-order Taylor propagation."""
    e = math.exp(x.v0)
    return _chain(x, e, e, e)


def tlog(x: TVar):
    """Natural logarithm with 2nd-order Taylor propagation."""
    x0 = x.v0
    return _chain(x, math.log(x0), 1.0 / x0, -1.0 / (x0 * x0))


def tsqrt(x: TVar):
    """Square root with 2nd-order Taylor propagation."""
    r = math.sqrt(x.v0)
    return _chain(x, r, 0.5 / r, -0.25 / (r * x.v0))


def tcos(x: TVar):
    """Cosine with 2nd-order Taylor propagation."""
    s, c = math.sin(x.v0), math.cos(x.v0)
    return _chain(x, c, -s, -c)


def tsin(x: TVar):
    """Sine with 2nd-order Taylor propagation."""
    s, c = math.sin(x.v0), math.cos(x.v0)
    return _chain(x, s, c, -s)


def norm_pdf0(x0: float):
    """Standard normal PDF at x0."""
    return math.exp(-0.5 * x0 * x0) / math.sqrt(2.0 * math.pi)


def norm_cdf(x: TVar):
    """Standard normal CDF with 2nd-order Taylor propagation."""
    x0 = x.v0
    phi0 = norm_pdf0(x0)
    Phi0 = 0.5 * (1.0 + math.erf(x0 / math.sqrt(2.0)))
    return _chain(x, Phi0, phi0, -x0 * phi0)


def terf(x: TVar):
    """Error function with 2nd-order Taylor propagation."""
    x0 = x.v0
    # d/dx erf(x) = (2/sqrt(pi)) * exp(-x^2)
    derf = (2.0 / math.sqrt(math.pi)) * math.exp(-x0 * x0)
    # d^2/dx^2 erf(x) = -2x * (2/sqrt(pi)) * exp(-x^2)
    return _chain(x, float(scipy_erf(x0)), derf, -2.0 * x0 * derf)


# Alias names for convenience
exp = texp
log = tlog
sqrt = tsqrt
cos = tcos
sin = tsin
erf = terf


# ----- One-pass gradient/Hessian -----
def taylor_grad_hessian(f: Callable[[Sequence[TVar]], TVar],
                        inputs: Sequence[float]) -> Tuple[np.ndarray, np.ndarray, float]:
    """
    Compute gradient and Hessian of a scalar function in a single forward pass.

    Args:
        f: Function taking a list of TVar and returning a TVar
        inputs: Input values, one per independent variable

    Returns:
        (grad, H, f0):
        - grad: gradient, shape (n,)
        - H: Hessian, shape (n, n)
        - f0: function value
    """
    n = len(inputs)
    xs = [TVar.independent(v, i, n) for i, v in enumerate(inputs)]
    y = f(xs)
    if not isinstance(y, TVar):
        y = TVar(y)
    return y.gradient(n), y.hessian(n), y.v0
