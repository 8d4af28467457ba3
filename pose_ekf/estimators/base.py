"""
Base class for recursive state estimators.

An estimator owns the state estimate and its covariance; the system and
measurement models are passed to each step, so one filter can be updated
by several sensors, each with its own linearized model.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from pose_ekf.models.base import LinearizedMeasurementModel, LinearizedSystemModel


class StateEstimator(ABC):
    """Abstract base class for recursive state estimators."""

    def __init__(self, state_dim: int):
        """
        Initialize state estimator.

        Args:
            state_dim: Dimension of the state vector.
        """
        self.state_dim = state_dim
        self.state: Optional[np.ndarray] = None
        self.covariance: Optional[np.ndarray] = None

    @abstractmethod
    def predict(self, system_model: LinearizedSystemModel, u: np.ndarray) -> None:
        """
        Perform prediction step (time update).

        Args:
            system_model: Linearized process model.
            u: Control input vector.
        """
        pass

    @abstractmethod
    def update(self, measurement_model: LinearizedMeasurementModel, z: np.ndarray) -> None:
        """
        Perform measurement update (correction step).

        Args:
            measurement_model: Linearized measurement model.
            z: Measurement vector.
        """
        pass

    def get_state(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Get current state estimate and covariance.

        Returns:
            Tuple of (state_vector, covariance_matrix).
        """
        if self.state is None or self.covariance is None:
            raise RuntimeError("Estimator not initialized.")
        return self.state.copy(), self.covariance.copy()
