# aad/ops/transcendental.py
import numpy as np
from scipy.special import erf as scipy_erf
from .registry import def_primitive, record

_TWO_OVER_SQRT_PI = 2.0 / np.sqrt(np.pi)

def_primitive("exp", np.exp, np.exp)
def_primitive("log", np.log, lambda x: 1.0 / x)
def_primitive("sqrt", np.sqrt, lambda x: 0.5 / np.sqrt(x))
def_primitive("sin", np.sin, np.cos)
def_primitive("cos", np.cos, lambda x: -np.sin(x))
# d/dx erf(x) = (2/√π) * e^(-x²)
def_primitive("erf", scipy_erf, lambda x: _TWO_OVER_SQRT_PI * np.exp(-x * x))


def exp(x):
    return record("exp", x)

def log(x):
    return record("log", x)

def sqrt(x):
    return record("sqrt", x)

def sin(x):
    return record("sin", x)

def cos(x):
    return record("cos", x)

def erf(x):
    """
    Error function: erf(x) = (2/√π) ∫₀ˣ e^(-t²) dt
    """
    return record("erf", x)
