# aad/elementary.py
"""
Elementary functions that accept any number flavour used by the helpers:

    ADVar  -> recorded primitive from aad.ops (taped backend)
    TVar   -> 2nd-order Taylor rule from aad.taylor (tapeless backend)
    other  -> plain NumPy / SciPy evaluation

User functions written against this module run unchanged under both
backends, e.g. ``f = exp(x[0]) * sin(x[1])``.
"""
import numpy as np
from scipy.special import erf as _scipy_erf

from . import ops, taylor
from .core.var import ADVar
from .taylor import TVar

__all__ = ["exp", "log", "sqrt", "sin", "cos", "erf", "norm_cdf"]


def _dispatch(taped, tapeless, plain):
    def fn(x):
        if isinstance(x, ADVar):
            return taped(x)
        if isinstance(x, TVar):
            return tapeless(x)
        return plain(x)
    fn.__name__ = taped.__name__
    fn.__doc__ = f"{taped.__name__}(x) for ADVar, TVar or plain numbers."
    return fn


exp = _dispatch(ops.exp, taylor.texp, np.exp)
log = _dispatch(ops.log, taylor.tlog, np.log)
sqrt = _dispatch(ops.sqrt, taylor.tsqrt, np.sqrt)
sin = _dispatch(ops.sin, taylor.tsin, np.sin)
cos = _dispatch(ops.cos, taylor.tcos, np.cos)
erf = _dispatch(ops.erf, taylor.terf, _scipy_erf)
norm_cdf = _dispatch(ops.norm_cdf, taylor.norm_cdf,
                     lambda x: 0.5 * (1.0 + _scipy_erf(x / np.sqrt(2.0))))
