"""
Pytest configuration and shared fixtures for the AD helper tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from aad_helpers.aad.core import tape as tape_mod
from aad_helpers.helpers.registry import registered_tapes


@pytest.fixture(autouse=True)
def isolated_tapes():
    """Each test starts with no recorded tapes and no open trace."""
    registered_tapes.clear()
    tape_mod.clear_tapes()
    yield
    if tape_mod.is_tracing():
        tape_mod.trace_abort()
    tape_mod.clear_tapes()
    registered_tapes.clear()


@pytest.fixture(params=["taped", "tapeless"])
def number_type(request):
    """Run a test once per number flavour."""
    return request.param


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def fd_tolerance():
    """Looser tolerance for finite-difference checks."""
    return 1e-5


def finite_difference_gradient(f, x, h=1e-6):
    """Central-difference gradient of a plain-float function."""
    x = np.asarray(x, dtype=float)
    g = np.zeros_like(x)
    for i in range(x.size):
        e = np.zeros_like(x); e[i] = h
        g[i] = (f(x + e) - f(x - e)) / (2.0 * h)
    return g


def finite_difference_hessian(f, x, h=1e-4):
    """Central-difference Hessian of a plain-float function."""
    x = np.asarray(x, dtype=float)
    n = x.size
    H = np.zeros((n, n))
    for i in range(n):
        for j in range(n):
            ei = np.zeros(n); ei[i] = h
            ej = np.zeros(n); ej[j] = h
            H[i, j] = (f(x + ei + ej) - f(x + ei - ej) - f(x - ei + ej) + f(x - ei - ej)) / (4.0 * h * h)
    return H


@pytest.fixture
def fd_gradient():
    return finite_difference_gradient


@pytest.fixture
def fd_hessian():
    return finite_difference_hessian
