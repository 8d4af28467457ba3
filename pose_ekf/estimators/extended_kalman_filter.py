"""
Extended Kalman Filters driven by linearized models.

Implements:
    - Prediction
      x̂_k^- = f(x̂_{k-1}, u_k)
      P_k^- = F P_{k-1} F^T + W Q W^T
    - Update
      ν = z - h(x̂_k^-)
      S = H P_k^- H^T + V R V^T
      K = P_k^- H^T S^{-1}
      x̂_k = x̂_k^- + K ν
      P_k = (I - K H) P_k^- (I - K H)^T + K V R V^T K^T   (Joseph form)

Every step linearizes its model before use: `update_jacobians` is always
called on the model at the current estimate before F or H is read.

Two covariance representations are provided:
    - ExtendedKalmanFilter: propagates P directly
    - SquareRootExtendedKalmanFilter: propagates a lower-triangular S with
      P = S S^T, using QR-based array algorithms
"""

import logging
from typing import Callable, Optional, Tuple

import numpy as np
import scipy.linalg

from pose_ekf.estimators.base import StateEstimator
from pose_ekf.models.base import LinearizedMeasurementModel, LinearizedSystemModel
from pose_ekf.models.covariance import validate_covariance

logger = logging.getLogger(__name__)

InnovationFunc = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _lower_triangular_factor(A: np.ndarray) -> np.ndarray:
    """
    Lower-triangular L with L L^T = A A^T (LQ decomposition of A).

    Diagonal entries are made non-negative.
    """
    _, r = np.linalg.qr(A.T, mode='reduced')
    L = r.T
    signs = np.where(np.diag(L) < 0, -1.0, 1.0)
    return L * signs


def _check_measurement(model: LinearizedMeasurementModel, z: np.ndarray) -> np.ndarray:
    z = np.asarray(z, dtype=float)
    if z.shape != (model.measurement_dim,):
        raise ValueError(
            f"Measurement shape {z.shape} inconsistent with measurement_dim "
            f"{model.measurement_dim}"
        )
    return z


class ExtendedKalmanFilter(StateEstimator):
    """
    Extended Kalman Filter with full covariance.

    Attributes:
        state: Current state estimate x̂_k (n,)
        covariance: Current state covariance P_k (n×n)
        innovation_func: Optional function computing ν = g(z, z_pred),
            default z - z_pred.

    Example:
        >>> from pose_ekf.models import PositionMeasurementModel, UnicycleSystemModel
        >>> ekf = ExtendedKalmanFilter(np.zeros(3), np.eye(3))
        >>> ekf.predict(UnicycleSystemModel(), np.array([0.1, 0.0]))
        >>> ekf.update(PositionMeasurementModel(-0.01, 0.03), np.array([0.09, 0.03]))
    """

    def __init__(
        self,
        x0: np.ndarray,
        P0: np.ndarray,
        innovation_func: Optional[InnovationFunc] = None,
    ):
        """
        Initialize Extended Kalman Filter.

        Args:
            x0: Initial state estimate (n,).
            P0: Initial state covariance (n×n).
            innovation_func: Optional innovation function, default z - z_pred.

        Raises:
            ValueError: If dimensions are inconsistent.
        """
        state_dim = len(x0)
        super().__init__(state_dim)

        self.innovation_func = innovation_func
        self.state = np.asarray(x0, dtype=float).copy()
        self.covariance = validate_covariance(P0, state_dim, name="P0").copy()

    def _check_models(self, model) -> None:
        if model.state_dim != self.state_dim:
            raise ValueError(
                f"Model state_dim {model.state_dim} inconsistent with filter "
                f"state_dim {self.state_dim}"
            )

    def predict(self, system_model: LinearizedSystemModel, u: np.ndarray) -> None:
        """
        Perform prediction step (time update).

        F is evaluated at the pre-prediction estimate x̂_{k-1}.

        Args:
            system_model: Linearized process model.
            u: Control input vector.
        """
        if self.state is None or self.covariance is None:
            raise RuntimeError("State and covariance must be initialized")
        self._check_models(system_model)

        x_pre = self.state.copy()

        system_model.update_jacobians(x_pre, u)
        F = system_model.F
        W = system_model.W

        self.state = np.asarray(system_model.f(x_pre, u), dtype=float)

        Q = system_model.get_covariance()
        self.covariance = F @ self.covariance @ F.T + W @ Q @ W.T

        logger.debug("EKF predict: u=%s -> x=%s", u, self.state)

    def _innovation(self, z: np.ndarray, z_pred: np.ndarray) -> np.ndarray:
        if self.innovation_func is not None:
            return self.innovation_func(z, z_pred)
        return z - z_pred

    def update(self, measurement_model: LinearizedMeasurementModel, z: np.ndarray) -> None:
        """
        Perform measurement update (correction step).

        Args:
            measurement_model: Linearized measurement model.
            z: Measurement vector (m,).
        """
        if self.state is None or self.covariance is None:
            raise RuntimeError("Must initialize the filter before update()")
        self._check_models(measurement_model)
        z = _check_measurement(measurement_model, z)

        # Linearize first, then predict: H must belong to the current state.
        H = measurement_model.linearize(self.state)
        z_pred = np.asarray(measurement_model.predict(self.state), dtype=float)

        V = measurement_model.V
        R = V @ measurement_model.get_covariance() @ V.T

        innovation = self._innovation(z, z_pred)
        S = H @ self.covariance @ H.T + R

        # K = P H^T S^{-1}, using S symmetric
        K = np.linalg.solve(S, H @ self.covariance).T

        self.state = self.state + K @ innovation

        I_KH = np.eye(self.state_dim) - K @ H
        self.covariance = I_KH @ self.covariance @ I_KH.T + K @ R @ K.T

        logger.debug("EKF update: innovation=%s", innovation)

    def get_innovation(
        self, measurement_model: LinearizedMeasurementModel, z: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute innovation (measurement residual) and its covariance.

        Args:
            measurement_model: Linearized measurement model.
            z: Measurement vector (m,).

        Returns:
            Tuple of (innovation, innovation_covariance).
        """
        if self.state is None or self.covariance is None:
            raise RuntimeError("Must initialize the filter before get_innovation()")
        z = _check_measurement(measurement_model, z)

        H = measurement_model.linearize(self.state)
        z_pred = np.asarray(measurement_model.predict(self.state), dtype=float)
        V = measurement_model.V
        R = V @ measurement_model.get_covariance() @ V.T

        innovation = self._innovation(z, z_pred)
        innovation_cov = H @ self.covariance @ H.T + R
        return innovation, innovation_cov


class SquareRootExtendedKalmanFilter(StateEstimator):
    """
    Extended Kalman Filter propagating a square root of the covariance.

    The filter keeps a lower-triangular S with P = S S^T. Prediction factors
    the pre-array [F S, W S_Q]; the update factors

        [[V S_R, H S],
         [0,     S  ]]  =  [[S_yy, 0], [K̄, S⁺]] Q

    where S_yy S_yy^T is the innovation covariance, K = K̄ S_yy^{-1} the
    gain, and S⁺ the posterior factor.

    Attributes:
        state: Current state estimate (n,)
        covariance_square_root: Lower-triangular factor S (n×n)
        covariance: P = S S^T (n×n), computed on access
    """

    def __init__(
        self,
        x0: np.ndarray,
        P0: np.ndarray,
        innovation_func: Optional[InnovationFunc] = None,
    ):
        """
        Initialize the square-root filter from a full initial covariance.

        Args:
            x0: Initial state estimate (n,).
            P0: Initial state covariance (n×n), factored on construction.
            innovation_func: Optional innovation function, default z - z_pred.
        """
        self.covariance_square_root: Optional[np.ndarray] = None
        state_dim = len(x0)
        super().__init__(state_dim)

        self.innovation_func = innovation_func
        self.state = np.asarray(x0, dtype=float).copy()
        self.covariance = validate_covariance(P0, state_dim, name="P0")

    @property
    def covariance(self) -> Optional[np.ndarray]:
        if self.covariance_square_root is None:
            return None
        S = self.covariance_square_root
        return S @ S.T

    @covariance.setter
    def covariance(self, P: Optional[np.ndarray]) -> None:
        if P is None:
            self.covariance_square_root = None
            return
        self.covariance_square_root = _lower_triangular_factor(
            _symmetric_square_root(P)
        )

    def _check_models(self, model) -> None:
        if model.state_dim != self.state_dim:
            raise ValueError(
                f"Model state_dim {model.state_dim} inconsistent with filter "
                f"state_dim {self.state_dim}"
            )

    def predict(self, system_model: LinearizedSystemModel, u: np.ndarray) -> None:
        """
        Perform prediction step on the covariance factor.

        Args:
            system_model: Linearized process model.
            u: Control input vector.
        """
        if self.state is None or self.covariance_square_root is None:
            raise RuntimeError("State and covariance must be initialized")
        self._check_models(system_model)

        x_pre = self.state.copy()

        system_model.update_jacobians(x_pre, u)
        F = system_model.F
        W = system_model.W

        self.state = np.asarray(system_model.f(x_pre, u), dtype=float)

        pre_array = np.hstack([
            F @ self.covariance_square_root,
            W @ system_model.get_covariance_square_root(),
        ])
        self.covariance_square_root = _lower_triangular_factor(pre_array)

        logger.debug("SR-EKF predict: u=%s -> x=%s", u, self.state)

    def _factor_update(
        self, measurement_model: LinearizedMeasurementModel, z: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        # Returns (innovation, S_yy, K, posterior factor)
        H = measurement_model.linearize(self.state)
        z_pred = np.asarray(measurement_model.predict(self.state), dtype=float)

        m = measurement_model.measurement_dim
        n = self.state_dim
        S = self.covariance_square_root
        noise_root = measurement_model.V @ measurement_model.get_covariance_square_root()

        pre_array = np.block([
            [noise_root, H @ S],
            [np.zeros((n, m)), S],
        ])
        L = _lower_triangular_factor(pre_array)

        S_yy = L[:m, :m]
        K_bar = L[m:, :m]
        S_post = L[m:, m:]

        # K = K̄ S_yy^{-1}
        K = scipy.linalg.solve_triangular(S_yy, K_bar.T, trans='T', lower=True).T

        if self.innovation_func is not None:
            innovation = self.innovation_func(z, z_pred)
        else:
            innovation = z - z_pred
        return innovation, S_yy, K, S_post

    def update(self, measurement_model: LinearizedMeasurementModel, z: np.ndarray) -> None:
        """
        Perform measurement update on the covariance factor.

        Args:
            measurement_model: Linearized measurement model.
            z: Measurement vector (m,).
        """
        if self.state is None or self.covariance_square_root is None:
            raise RuntimeError("Must initialize the filter before update()")
        self._check_models(measurement_model)
        z = _check_measurement(measurement_model, z)

        innovation, _, K, S_post = self._factor_update(measurement_model, z)

        self.state = self.state + K @ innovation
        self.covariance_square_root = S_post

        logger.debug("SR-EKF update: innovation=%s", innovation)

    def get_innovation(
        self, measurement_model: LinearizedMeasurementModel, z: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute innovation and its covariance S_yy S_yy^T.

        Returns:
            Tuple of (innovation, innovation_covariance).
        """
        if self.state is None or self.covariance_square_root is None:
            raise RuntimeError("Must initialize the filter before get_innovation()")
        z = _check_measurement(measurement_model, z)

        innovation, S_yy, _, _ = self._factor_update(measurement_model, z)
        return innovation, S_yy @ S_yy.T


def _symmetric_square_root(P: np.ndarray) -> np.ndarray:
    """Any A with A A^T = P, for symmetric PSD P."""
    eigvals, eigvecs = np.linalg.eigh(P)
    return eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))
