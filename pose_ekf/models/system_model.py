"""
Planar unicycle system model.

State: x = [x_pos, y_pos, theta]
Control: u = [v, dtheta], forward displacement and heading change per step.

Dynamics (heading is updated first, then the robot drives along it):
    θ' = θ + dθ
    x' = x + cos(θ')·v
    y' = y + sin(θ')·v

This is the process model the position measurement model is paired with
in the example filter. It does not attempt any vehicle kinematics beyond
this.
"""

from typing import Union

import numpy as np

from pose_ekf.models.base import LinearizedSystemModel
from pose_ekf.models.covariance import CovarianceBaseType, StandardBase
from pose_ekf.types import State, as_state


class UnicycleSystemModel(LinearizedSystemModel):
    """
    Unicycle process model with displacement/turn control.

    Example:
        >>> model = UnicycleSystemModel()
        >>> x1 = model.f(np.array([0.0, 0.0, 0.0]), np.array([1.0, np.pi / 2]))
        >>> np.allclose(x1, [0.0, 1.0, np.pi / 2])
        True
    """

    CONTROL_DIM = 2

    def __init__(self, covariance_base: CovarianceBaseType = StandardBase):
        super().__init__(State.DIM, self.CONTROL_DIM, covariance_base)

    @staticmethod
    def _split_control(u) -> np.ndarray:
        u = np.asarray(u, dtype=np.float64)
        if u.shape != (2,):
            raise ValueError(f"Control must be [v, dtheta], got shape {u.shape}")
        return u

    def f(self, x: Union[State, np.ndarray], u) -> np.ndarray:
        """
        Propagate the state by one step.

        Args:
            x: State or buffer [x_pos, y_pos, theta].
            u: Control [v, dtheta].

        Returns:
            Next state as an array (3,). Heading is not wrapped.
        """
        state = as_state(x)
        v, dtheta = self._split_control(u)

        theta = state.theta + dtheta
        return np.array([
            state.x_pos + np.cos(theta) * v,
            state.y_pos + np.sin(theta) * v,
            theta,
        ])

    def update_jacobians(self, x: Union[State, np.ndarray], u) -> None:
        """Recompute F = df/dx at (x, u) in place; W stays the identity."""
        state = as_state(x)
        v, dtheta = self._split_control(u)
        theta = state.theta + dtheta

        F = self.F
        F[...] = np.eye(State.DIM)
        F[State.X, State.THETA] = -np.sin(theta) * v
        F[State.Y, State.THETA] = np.cos(theta) * v
