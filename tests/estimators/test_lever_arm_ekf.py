"""
Unit tests for the EKF and square-root EKF with the lever-arm sensor model.

Tests cover:
    - Convergence on a simulated run
    - Agreement of the standard and square-root covariance propagation
    - Linearize-then-predict ordering inside update()
    - Wiring of V R V^T into the innovation covariance
    - Heading information gained through the exact Jacobian
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pose_ekf.estimators import ExtendedKalmanFilter, SquareRootExtendedKalmanFilter
from pose_ekf.models import (
    PositionMeasurementModel,
    SquareRootBase,
    StandardBase,
    UnicycleSystemModel,
)
from pose_ekf.sim import simulate_lever_arm_run
from pose_ekf.utils import angle_diff


Q = np.diag([0.02**2, 0.02**2, 0.01**2])
R = np.diag([0.02**2, 0.02**2])
P0 = np.diag([0.25, 0.25, 0.25])

FILTERS = [ExtendedKalmanFilter, SquareRootExtendedKalmanFilter]


def make_models(offset, covariance_base=StandardBase):
    system = UnicycleSystemModel(covariance_base=covariance_base)
    system.set_covariance(Q)
    sensor = PositionMeasurementModel(*offset, covariance_base=covariance_base)
    sensor.set_covariance(R)
    return system, sensor


def run(filter_cls, run_data, covariance_base=StandardBase, initial_error=(0.2, -0.2, 0.2)):
    system, sensor = make_models(run_data.offset, covariance_base)
    ekf = filter_cls(run_data.true_states[0] + np.asarray(initial_error), P0)

    estimates = [ekf.state.copy()]
    covariances = [ekf.covariance.copy()]
    for u, z in zip(run_data.controls, run_data.measurements):
        ekf.predict(system, u)
        ekf.update(sensor, z)
        estimates.append(ekf.state.copy())
        covariances.append(ekf.covariance.copy())
    return np.array(estimates), np.array(covariances)


class TestConvergence:
    """Test that the filter tracks a simulated run."""

    @pytest.mark.parametrize("filter_cls", FILTERS)
    @pytest.mark.parametrize("offset", [(-0.01, 0.03), (0.6, 0.2)])
    def test_tracks_ground_truth(self, filter_cls, offset):
        data = simulate_lever_arm_run(n_steps=200, offset=offset, seed=7)
        estimates, covariances = run(filter_cls, data)

        tail = slice(100, None)
        pos_err = estimates[tail, :2] - data.true_states[tail, :2]
        heading_err = angle_diff(estimates[tail, 2], data.true_states[tail, 2])

        assert np.sqrt(np.mean(np.sum(pos_err**2, axis=1))) < 0.1
        assert np.max(np.abs(heading_err)) < 0.3
        assert np.all(np.linalg.eigvalsh(covariances[-1]) > 0)

    def test_covariance_shrinks_from_prior(self):
        data = simulate_lever_arm_run(n_steps=50, offset=(0.6, 0.2))
        _, covariances = run(ExtendedKalmanFilter, data)
        assert np.trace(covariances[-1]) < np.trace(P0)


class TestSquareRootAgreement:
    """Test that both covariance representations give the same filter."""

    @pytest.mark.parametrize("offset", [(-0.01, 0.03), (0.6, 0.2)])
    def test_same_estimates_and_covariances(self, offset):
        data = simulate_lever_arm_run(n_steps=60, offset=offset, seed=3)

        est_std, cov_std = run(ExtendedKalmanFilter, data)
        est_sr, cov_sr = run(
            SquareRootExtendedKalmanFilter, data, covariance_base=SquareRootBase
        )

        assert_allclose(est_sr, est_std, rtol=1e-7, atol=1e-9)
        assert_allclose(cov_sr, cov_std, rtol=1e-6, atol=1e-10)

    def test_factor_stays_lower_triangular(self):
        data = simulate_lever_arm_run(n_steps=10, offset=(0.6, 0.2))
        system, sensor = make_models(data.offset, SquareRootBase)
        ekf = SquareRootExtendedKalmanFilter(data.true_states[0], P0)

        for u, z in zip(data.controls, data.measurements):
            ekf.predict(system, u)
            ekf.update(sensor, z)
            S = ekf.covariance_square_root
            assert_allclose(S, np.tril(S), atol=1e-14)
            assert np.all(np.diag(S) >= 0)

    def test_innovation_covariance_agrees(self):
        system, sensor = make_models((0.6, 0.2))
        x0 = np.array([1.0, 2.0, 0.4])
        z = np.array([1.6, 2.5])

        ekf = ExtendedKalmanFilter(x0, P0)
        srekf = SquareRootExtendedKalmanFilter(x0, P0)

        nu, S = ekf.get_innovation(sensor, z)
        nu_sr, S_sr = srekf.get_innovation(sensor, z)

        assert_allclose(nu_sr, nu, atol=1e-12)
        assert_allclose(S_sr, S, atol=1e-12)


class TestUpdateProtocol:
    """Test how update() drives the measurement model."""

    @pytest.mark.parametrize("filter_cls", FILTERS)
    def test_update_linearizes_at_prior_estimate(self, filter_cls):
        _, sensor = make_models((0.6, 0.2))
        sensor.linearize(np.array([10.0, 10.0, 3.0]))

        ekf = filter_cls(np.array([1.0, 2.0, 0.4]), P0)
        prior = ekf.state.copy()
        ekf.update(sensor, np.array([1.6, 2.5]))

        assert sensor.is_linearized_at(prior)
        assert not sensor.is_linearized_at(ekf.state)

    def test_innovation_uses_sensor_position(self):
        _, sensor = make_models((0.6, 0.2))
        state = np.array([1.0, 2.0, np.pi / 2])
        ekf = ExtendedKalmanFilter(state, P0)

        z = sensor.sensor_position(state) + np.array([0.05, -0.03])
        nu, _ = ekf.get_innovation(sensor, z)

        assert_allclose(nu, [0.05, -0.03], atol=1e-12)

    def test_innovation_covariance_includes_noise(self):
        _, sensor = make_models((0.6, 0.2))
        state = np.array([1.0, 2.0, 0.4])
        ekf = ExtendedKalmanFilter(state, P0)

        _, S = ekf.get_innovation(sensor, np.zeros(2))
        H = sensor.H

        assert_allclose(S, H @ P0 @ H.T + R, atol=1e-12)

    def test_custom_innovation_function(self):
        _, sensor = make_models((0.0, 0.0))
        ekf = ExtendedKalmanFilter(
            np.zeros(3), P0, innovation_func=lambda z, z_pred: 2.0 * (z - z_pred)
        )
        nu, _ = ekf.get_innovation(sensor, np.array([0.1, 0.0]))
        assert_allclose(nu, [0.2, 0.0])

    @pytest.mark.parametrize("filter_cls", FILTERS)
    def test_rejects_wrong_measurement_shape(self, filter_cls):
        _, sensor = make_models((0.6, 0.2))
        ekf = filter_cls(np.zeros(3), P0)
        with pytest.raises(ValueError, match="Measurement shape"):
            ekf.update(sensor, np.zeros(3))

    @pytest.mark.parametrize("filter_cls", FILTERS)
    def test_rejects_model_of_other_dimension(self, filter_cls):
        _, sensor = make_models((0.6, 0.2))
        ekf = filter_cls(np.zeros(4), np.eye(4))
        with pytest.raises(ValueError, match="state_dim"):
            ekf.update(sensor, np.zeros(2))

    def test_rejects_invalid_initial_covariance(self):
        with pytest.raises(ValueError):
            ExtendedKalmanFilter(np.zeros(3), -np.eye(3))


class TestHeadingObservability:
    """Test what the exact and identity Jacobians tell the filter about heading."""

    @pytest.mark.parametrize("filter_cls", FILTERS)
    def test_exact_jacobian_reduces_heading_variance(self, filter_cls):
        _, sensor = make_models((0.6, 0.2))
        state = np.array([1.0, 2.0, 0.4])
        ekf = filter_cls(state, P0)

        ekf.update(sensor, sensor.sensor_position(state))

        assert ekf.covariance[2, 2] < P0[2, 2]

    def test_identity_jacobian_leaves_heading_variance(self):
        with pytest.warns(UserWarning):
            sensor = PositionMeasurementModel(0.6, 0.2, jacobian="identity")
        sensor.set_covariance(R)
        state = np.array([1.0, 2.0, 0.4])
        ekf = ExtendedKalmanFilter(state, P0)

        ekf.update(sensor, sensor.sensor_position(state))

        assert ekf.covariance[2, 2] == pytest.approx(P0[2, 2])
        assert ekf.state[2] == pytest.approx(0.4)
