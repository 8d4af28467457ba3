"""
Base contracts for linearized models.

These classes define where the Jacobians live and how a filter reads them
after each linearization. A model is used in two explicit phases:

    H = model.linearize(x)      # update_jacobians(x), then read H
    z_pred = model.predict(x)   # evaluate the nonlinear function

Jacobians are overwritten in place on every linearization; the recorded
linearization point makes a stale H detectable with `is_linearized_at`.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from pose_ekf.models.covariance import CovarianceBaseType, StandardBase


class LinearizedMeasurementModel(ABC):
    """
    Abstract measurement model z = h(x) + V v, linearized for the EKF.

    Attributes:
        state_dim: Dimension of the state vector (n).
        measurement_dim: Dimension of the measurement vector (m).
        H: Measurement Jacobian dh/dx (m x n), overwritten in place.
        V: Noise Jacobian (m x m), identity unless a subclass changes it.
        noise: Covariance capability holding the measurement noise R.
    """

    def __init__(
        self,
        state_dim: int,
        measurement_dim: int,
        covariance_base: CovarianceBaseType = StandardBase,
    ):
        self.state_dim = state_dim
        self.measurement_dim = measurement_dim
        self.H = np.zeros((measurement_dim, state_dim))
        self.V = np.eye(measurement_dim)
        self.noise = covariance_base(measurement_dim)
        self._linearization_point: Optional[np.ndarray] = None

    @abstractmethod
    def h(self, x):
        """Predicted measurement for state x."""

    @abstractmethod
    def _compute_jacobians(self, x) -> None:
        """Write the state-dependent entries of H (and V) for state x."""

    def update_jacobians(self, x) -> None:
        """
        Recompute H in place around state x.

        Must be called before every use of H: H depends on the state and a
        stale value silently corrupts the covariance update.
        """
        self._compute_jacobians(x)
        self._linearization_point = np.array(np.asarray(x), dtype=np.float64)

    def linearize(self, x) -> np.ndarray:
        """
        Phase one: linearize the model around x.

        Args:
            x: State (model-specific type or raw array).

        Returns:
            The freshly computed H. This is the model's own buffer; it is
            overwritten by the next call.
        """
        self.update_jacobians(x)
        return self.H

    def predict(self, x):
        """Phase two: evaluate h(x)."""
        return self.h(x)

    @property
    def linearization_point(self) -> Optional[np.ndarray]:
        """State at which H was last computed, or None if never linearized."""
        if self._linearization_point is None:
            return None
        return self._linearization_point.copy()

    def is_linearized_at(self, x, atol: float = 1e-12) -> bool:
        """Whether H currently corresponds to state x."""
        if self._linearization_point is None:
            return False
        x = np.asarray(x, dtype=np.float64)
        if x.shape != self._linearization_point.shape:
            return False
        return bool(np.allclose(x, self._linearization_point, rtol=0.0, atol=atol))

    def get_covariance(self) -> np.ndarray:
        """Measurement noise covariance R."""
        return self.noise.get_covariance()

    def set_covariance(self, R: np.ndarray) -> None:
        self.noise.set_covariance(R)

    def get_covariance_square_root(self) -> np.ndarray:
        """Lower-triangular factor of R."""
        return self.noise.get_covariance_square_root()


class LinearizedSystemModel(ABC):
    """
    Abstract system model x_k = f(x_{k-1}, u_k) + W w, linearized for the EKF.

    Attributes:
        state_dim: Dimension of the state vector (n).
        control_dim: Dimension of the control vector.
        F: State Jacobian df/dx (n x n), overwritten in place.
        W: Process noise Jacobian (n x n), identity by default.
        noise: Covariance capability holding the process noise Q.
    """

    def __init__(
        self,
        state_dim: int,
        control_dim: int,
        covariance_base: CovarianceBaseType = StandardBase,
    ):
        self.state_dim = state_dim
        self.control_dim = control_dim
        self.F = np.eye(state_dim)
        self.W = np.eye(state_dim)
        self.noise = covariance_base(state_dim)

    @abstractmethod
    def f(self, x, u):
        """Propagate the state by one step under control u."""

    @abstractmethod
    def update_jacobians(self, x, u) -> None:
        """Recompute F (and W) at x, u."""

    def get_covariance(self) -> np.ndarray:
        """Process noise covariance Q."""
        return self.noise.get_covariance()

    def set_covariance(self, Q: np.ndarray) -> None:
        self.noise.set_covariance(Q)

    def get_covariance_square_root(self) -> np.ndarray:
        return self.noise.get_covariance_square_root()
