"""
Position measurement model for a lever-arm mounted sensor.

The sensor (GPS antenna, visual beacon) sits at a fixed offset from the
robot's reference point, expressed in the body frame (x forward, y left).
Its world-frame position is the rigid-body transform of that offset:

    z_x = x + cos(θ)·o_x - sin(θ)·o_y
    z_y = y + sin(θ)·o_x + cos(θ)·o_y

Linearization around the state (x, y, θ):

    H = [[1, 0, -sin(θ)·o_x - cos(θ)·o_y],
         [0, 1,  cos(θ)·o_x - sin(θ)·o_y]]

Sensor noise enters additively in each measurement axis, so the noise
Jacobian V is the 2x2 identity, fixed at construction.
"""

import logging
import warnings
from enum import Enum
from typing import Tuple, Union

import numpy as np

from pose_ekf.models.base import LinearizedMeasurementModel
from pose_ekf.models.covariance import CovarianceBaseType, StandardBase
from pose_ekf.types import PositionMeasurement, State, as_state

logger = logging.getLogger(__name__)


class JacobianPolicy(str, Enum):
    """
    How H is populated.

    EXACT: all partials, including the heading column.
    IDENTITY: unit block on (x, y) and a zero heading column. Ignores the
        heading dependence of the rotated offset; only acceptable when the
        lever arm is negligible against the sensor noise.
    """

    EXACT = "exact"
    IDENTITY = "identity"


class PositionMeasurementModel(LinearizedMeasurementModel):
    """
    Measurement model of a position sensor mounted at a body-frame offset.

    State: [x_pos, y_pos, theta] (3,)
    Measurement: [x_pos, y_pos] of the sensor in the world frame (2,)

    Attributes:
        offset_x: Sensor offset towards the front of the robot (meters).
        offset_y: Sensor offset towards the left of the robot (meters).
        jacobian_policy: JacobianPolicy used by update_jacobians().
        H: Measurement Jacobian (2 x 3), recomputed in place.
        V: Noise Jacobian (2 x 2), identity and read-only.

    Example:
        >>> model = PositionMeasurementModel(-0.01, 0.03)
        >>> z = model.h(State(1.0, 2.0, 0.0))
        >>> round(z.x_pos, 6), round(z.y_pos, 6)
        (0.99, 2.03)
        >>> model.linearize(State(1.0, 2.0, 0.0))
        array([[ 1.  ,  0.  , -0.03],
               [ 0.  ,  1.  , -0.01]])
    """

    def __init__(
        self,
        offset_x: float,
        offset_y: float,
        jacobian: Union[JacobianPolicy, str] = JacobianPolicy.EXACT,
        covariance_base: CovarianceBaseType = StandardBase,
    ):
        """
        Initialize the model.

        Args:
            offset_x: Body-frame sensor offset, forward (meters).
            offset_y: Body-frame sensor offset, left (meters).
            jacobian: Jacobian policy, JacobianPolicy or its string value.
            covariance_base: Representation of the measurement noise
                covariance (StandardBase or SquareRootBase).

        Raises:
            ValueError: If an offset is not finite or the policy is unknown.
        """
        super().__init__(State.DIM, PositionMeasurement.DIM, covariance_base)

        if not np.isfinite(offset_x) or not np.isfinite(offset_y):
            raise ValueError(
                f"Sensor offset must be finite, got ({offset_x}, {offset_y})"
            )
        self._offset_x = float(offset_x)
        self._offset_y = float(offset_y)
        self.jacobian_policy = JacobianPolicy(jacobian)

        if self.jacobian_policy is JacobianPolicy.IDENTITY and (
            self._offset_x != 0.0 or self._offset_y != 0.0
        ):
            warnings.warn(
                f"Identity measurement Jacobian neglects the heading dependence of "
                f"the sensor offset ({self._offset_x}, {self._offset_y}) m; "
                f"the filter will be overconfident in heading.",
                UserWarning,
            )

        # Noise enters additively per axis: V stays the identity.
        self.V = np.eye(PositionMeasurement.DIM)
        self.V.flags.writeable = False

    @property
    def offset_x(self) -> float:
        return self._offset_x

    @property
    def offset_y(self) -> float:
        return self._offset_y

    @property
    def offset(self) -> Tuple[float, float]:
        """Body-frame sensor offset (forward, left) in meters."""
        return self._offset_x, self._offset_y

    def h(self, x: Union[State, np.ndarray]) -> PositionMeasurement:
        """
        Predicted sensor position for state x.

        Args:
            x: State or buffer [x_pos, y_pos, theta].

        Returns:
            New PositionMeasurement with the world-frame sensor position.
        """
        state = as_state(x)
        c = np.cos(state.theta)
        s = np.sin(state.theta)

        measurement = PositionMeasurement()
        measurement.x_pos = state.x_pos + c * self._offset_x - s * self._offset_y
        measurement.y_pos = state.y_pos + s * self._offset_x + c * self._offset_y
        return measurement

    def sensor_position(self, x: Union[State, np.ndarray]) -> np.ndarray:
        """Predicted sensor position as an array [x_pos, y_pos]."""
        return self.h(x).to_array()

    def _compute_jacobians(self, x: Union[State, np.ndarray]) -> None:
        state = as_state(x)
        H = self.H
        H[...] = 0.0
        H[PositionMeasurement.X, State.X] = 1.0
        H[PositionMeasurement.Y, State.Y] = 1.0

        if self.jacobian_policy is JacobianPolicy.EXACT:
            c = np.cos(state.theta)
            s = np.sin(state.theta)
            H[PositionMeasurement.X, State.THETA] = -s * self._offset_x - c * self._offset_y
            H[PositionMeasurement.Y, State.THETA] = c * self._offset_x - s * self._offset_y

        logger.debug(
            "Measurement Jacobian (%s) updated at theta=%.6f",
            self.jacobian_policy.value, state.theta,
        )

    def __repr__(self) -> str:
        return (
            f"PositionMeasurementModel(offset_x={self._offset_x}, "
            f"offset_y={self._offset_y}, jacobian='{self.jacobian_policy.value}')"
        )
