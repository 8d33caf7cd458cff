"""
Helper for a single scalar function f(X) of several independent variables.
"""

from typing import Optional, Union

import numpy as np

from .base import ADHelperBase
from .config import HelperConfig, NumberTypes


class ADHelperScalarFunction(ADHelperBase):
    """
    Value, gradient and Hessian of one dependent variable.

    Example:
        helper = ADHelperScalarFunction(2)
        helper.start_recording(1)
        helper.set_value(0, 3.0); helper.set_value(1, 4.0)
        x0, x1 = helper.mark_sensitive(0), helper.mark_sensitive(1)
        helper.register_dependent_variable(0, x0 * x0 + x1 * x1)
        helper.stop_recording()
        helper.compute_value()     # 25.0
        helper.compute_gradient()  # [6., 8.]
    """

    def __init__(self, n_independent_variables: int,
                 number_type: Union[str, NumberTypes, None] = None,
                 config: Optional[HelperConfig] = None):
        super().__init__(n_independent_variables, 1, number_type=number_type, config=config)

    def reset(self, n_independent_variables: Optional[int] = None,
              n_dependent_variables: Optional[int] = None,
              clear_registered_tapes: bool = True):
        if n_dependent_variables not in (None, 1):
            raise ValueError("A scalar function helper has exactly one dependent variable")
        super().reset(n_independent_variables, 1, clear_registered_tapes)

    def compute_value(self) -> float:
        """f(X)"""
        self._check_ready("compute_value")
        return self._value(0)

    def compute_gradient(self) -> np.ndarray:
        """df/dX, shape (n_independent,)"""
        self._check_ready("compute_gradient")
        return self._gradient(0)

    def compute_hessian(self) -> np.ndarray:
        """d²f/dX², shape (n_independent, n_independent)"""
        self._check_ready("compute_hessian")
        return self._hessian(0)
