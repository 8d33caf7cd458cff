"""
Values and Jacobian of vector-valued functions.
"""

import numpy as np
import pytest

from aad_helpers.aad import elementary as el
from aad_helpers.helpers import ADHelperVectorFunction, IndexOutOfRangeError


def vector_function(x):
    return [x[0] * x[1], el.sin(x[0]) + x[1] * x[1], 3.0]


def record(helper, f, values, tape_index=1):
    helper.start_recording(tape_index)
    helper.set_independent_variables(values)
    x = helper.get_sensitive_variables()
    helper.register_dependent_variables(f(x))
    helper.stop_recording()


class TestVectorFunction:
    def test_values(self, number_type):
        helper = ADHelperVectorFunction(2, 3, number_type=number_type)
        record(helper, vector_function, [0.5, 2.0])
        np.testing.assert_allclose(helper.compute_values(), [1.0, np.sin(0.5) + 4.0, 3.0])

    def test_jacobian(self, number_type, tolerance):
        helper = ADHelperVectorFunction(2, 3, number_type=number_type)
        record(helper, vector_function, [0.5, 2.0])
        expected = [[2.0, 0.5],
                    [np.cos(0.5), 4.0],
                    [0.0, 0.0]]
        jac = helper.compute_jacobian()
        assert jac.shape == (3, 2)
        np.testing.assert_allclose(jac, expected, atol=tolerance)

    def test_component_hessian(self, number_type, tolerance):
        helper = ADHelperVectorFunction(2, 3, number_type=number_type)
        record(helper, vector_function, [0.5, 2.0])
        np.testing.assert_allclose(helper.compute_hessian(0), [[0.0, 1.0], [1.0, 0.0]],
                                   atol=tolerance)
        np.testing.assert_allclose(helper.compute_hessian(1),
                                   [[-np.sin(0.5), 0.0], [0.0, 2.0]], atol=tolerance)
        with pytest.raises(IndexOutOfRangeError):
            helper.compute_hessian(3)

    def test_jacobian_matches_finite_differences(self, number_type, fd_gradient, fd_tolerance):
        point = [0.3, -1.2]
        helper = ADHelperVectorFunction(2, 3, number_type=number_type)
        record(helper, vector_function, point)
        jac = helper.compute_jacobian()
        for i in range(3):
            fd = fd_gradient(lambda v: vector_function(v)[i], point)
            np.testing.assert_allclose(jac[i], fd, rtol=fd_tolerance, atol=fd_tolerance)

    def test_taped_reevaluation(self, tolerance):
        helper = ADHelperVectorFunction(2, 3)
        record(helper, vector_function, [0.5, 2.0])
        helper.set_independent_variables([1.0, -1.0])
        np.testing.assert_allclose(helper.compute_values(), [-1.0, np.sin(1.0) + 1.0, 3.0])
        np.testing.assert_allclose(helper.compute_jacobian(),
                                   [[-1.0, 1.0], [np.cos(1.0), -2.0], [0.0, 0.0]],
                                   atol=tolerance)

    def test_more_outputs_than_inputs(self, number_type):
        helper = ADHelperVectorFunction(1, 2, number_type=number_type)
        record(helper, lambda x: [x[0] * 2.0, el.exp(x[0])], [0.0])
        np.testing.assert_allclose(helper.compute_jacobian(), [[2.0], [1.0]])
