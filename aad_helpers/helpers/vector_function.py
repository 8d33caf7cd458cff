"""
Helper for a vector of functions f(X): values and Jacobian.
"""

import numpy as np

from .base import ADHelperBase
from .exceptions import IndexOutOfRangeError


class ADHelperVectorFunction(ADHelperBase):
    """
    Values and Jacobian of several dependent variables sharing the same
    independent variables. Row i of the Jacobian is the gradient of f_i.
    """

    def compute_values(self) -> np.ndarray:
        self._check_ready("compute_values")
        return np.array([self._value(i) for i in range(self._n_dependent)], dtype=float)

    def compute_jacobian(self) -> np.ndarray:
        self._check_ready("compute_jacobian")
        jac = np.zeros((self._n_dependent, self._n_independent))
        for i in range(self._n_dependent):
            jac[i, :] = self._gradient(i)
        return jac

    def compute_hessian(self, index: int) -> np.ndarray:
        """Hessian of the single component f_index."""
        self._check_ready("compute_hessian")
        if not 0 <= index < self._n_dependent:
            raise IndexOutOfRangeError(
                f"Dependent variable index {index} out of range [0, {self._n_dependent})"
            )
        return self._hessian(index)
