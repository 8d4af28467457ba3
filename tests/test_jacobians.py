"""
Unit tests for Jacobian correctness.

Tests analytical Jacobians against numerical differentiation. An incorrect
measurement Jacobian does not crash an EKF; it makes it biased or
overconfident, so each model is checked at several states.

Run with: python -m pytest tests/test_jacobians.py -v
"""

import numpy as np
import pytest

from pose_ekf.models import (
    JacobianPolicy,
    PositionMeasurementModel,
    SquareRootBase,
    UnicycleSystemModel,
)
from pose_ekf.utils import check_jacobian, numerical_jacobian


TEST_STATES = [
    np.array([0.0, 0.0, 0.0]),
    np.array([1.0, 2.0, np.pi / 2]),
    np.array([-3.0, 4.5, 2.5]),
    np.array([10.0, -7.0, -1.2]),
    np.array([0.5, 0.5, 25.0]),  # unwrapped heading
]


class TestNumericalJacobian:
    """Sanity checks of the finite-difference helper itself."""

    def test_linear_function(self):
        A = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        J = numerical_jacobian(lambda x: A @ x, np.array([0.3, -0.2, 1.0]))
        np.testing.assert_allclose(J, A, atol=1e-7)

    def test_shape(self):
        J = numerical_jacobian(lambda x: np.array([x[0] * x[1]]), np.array([2.0, 3.0]))
        assert J.shape == (1, 2)
        np.testing.assert_allclose(J, [[3.0, 2.0]], atol=1e-6)


class TestPositionMeasurementJacobian:
    """Test the lever-arm measurement Jacobian."""

    @pytest.mark.parametrize("offset", [(-0.01, 0.03), (0.6, 0.2), (0.0, -1.5)])
    def test_exact_jacobian_matches_numerical(self, offset):
        model = PositionMeasurementModel(*offset)

        for x in TEST_STATES:
            H_analytical = model.linearize(x).copy()
            H_numerical = numerical_jacobian(model.h, x)

            np.testing.assert_allclose(
                H_analytical, H_numerical,
                rtol=1e-5, atol=1e-8,
                err_msg=f"Position Jacobian mismatch at x={x}, offset={offset}"
            )

    def test_square_root_noise_does_not_change_jacobian(self):
        model = PositionMeasurementModel(0.6, 0.2, covariance_base=SquareRootBase)
        for x in TEST_STATES:
            ok, err = check_jacobian(model, x)
            assert ok, f"max error {err} at x={x}"

    def test_identity_jacobian_detected_with_offset(self):
        """The identity approximation misses the heading column."""
        with pytest.warns(UserWarning):
            model = PositionMeasurementModel(0.6, 0.2, jacobian=JacobianPolicy.IDENTITY)

        ok, err = check_jacobian(model, np.array([1.0, 2.0, 0.7]))
        assert not ok
        assert err > 0.1

    def test_identity_jacobian_exact_without_offset(self):
        model = PositionMeasurementModel(0.0, 0.0, jacobian="identity")
        for x in TEST_STATES:
            ok, _ = check_jacobian(model, x)
            assert ok

    def test_measurement_jacobian_shapes(self):
        model = PositionMeasurementModel(-0.01, 0.03)
        H = model.linearize(np.array([1.0, 2.0, 0.3]))
        assert H.shape == (2, 3), f"Expected (2,3), got {H.shape}"
        assert model.V.shape == (2, 2), f"Expected (2,2), got {model.V.shape}"


class TestUnicycleJacobian:
    """Test the unicycle process Jacobian."""

    @pytest.mark.parametrize("u", [
        np.array([0.1, 0.0]),
        np.array([0.5, 0.2]),
        np.array([-0.3, -1.0]),
    ])
    def test_unicycle_jacobian_matches_numerical(self, u):
        model = UnicycleSystemModel()

        for x in TEST_STATES:
            model.update_jacobians(x, u)
            F_numerical = numerical_jacobian(lambda x_: model.f(x_, u), x)

            np.testing.assert_allclose(
                model.F, F_numerical,
                rtol=1e-5, atol=1e-8,
                err_msg=f"Unicycle Jacobian mismatch at x={x}, u={u}"
            )

    def test_process_jacobian_shapes(self):
        model = UnicycleSystemModel()
        model.update_jacobians(np.zeros(3), np.array([0.1, 0.1]))
        assert model.F.shape == (3, 3)
        assert model.W.shape == (3, 3)
