"""
Simulate a robot run observed by a lever-arm mounted position sensor.

Ground truth follows the unicycle system model with a constant nominal
speed and turn rate plus Gaussian control noise; each step yields one
position reading of the sensor through the rigid-body offset, with
additive Gaussian noise per axis.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from pose_ekf.models.position_measurement import PositionMeasurementModel
from pose_ekf.models.system_model import UnicycleSystemModel


@dataclass
class LeverArmRun:
    """
    Result of a simulated run.

    Attributes:
        t: Timestamps (N+1,), seconds. t[0] is the initial state.
        controls: Commanded control [v, dtheta] per step (N, 2).
        true_states: Ground-truth states [x, y, theta] (N+1, 3).
        measurements: Noisy sensor positions for steps 1..N (N, 2).
        offset: Body-frame sensor offset used (forward, left), meters.
        noise_std: Measurement noise standard deviation per axis, meters.
    """

    t: np.ndarray
    controls: np.ndarray
    true_states: np.ndarray
    measurements: np.ndarray
    offset: Tuple[float, float]
    noise_std: Tuple[float, float]

    @property
    def n_steps(self) -> int:
        return len(self.controls)


def simulate_lever_arm_run(
    n_steps: int = 200,
    dt: float = 0.1,
    speed: float = 1.0,
    yaw_rate: float = 0.2,
    offset: Tuple[float, float] = (-0.01, 0.03),
    noise_std: Tuple[float, float] = (0.02, 0.02),
    control_noise_std: Sequence[float] = (0.01, 0.005),
    x0: Optional[np.ndarray] = None,
    seed: int = 42,
) -> LeverArmRun:
    """
    Simulate ground truth and sensor readings for a circular drive.

    Args:
        n_steps: Number of steps.
        dt: Time step (seconds).
        speed: Nominal forward speed (m/s).
        yaw_rate: Nominal turn rate (rad/s).
        offset: Body-frame sensor offset (forward, left), meters.
        noise_std: Measurement noise std per axis (meters).
        control_noise_std: Std of the realized [v, dtheta] around the command.
        x0: Initial state [x, y, theta], default zeros.
        seed: Random seed for reproducibility.

    Returns:
        LeverArmRun with commanded controls and noisy measurements.

    Raises:
        ValueError: If n_steps or dt is not positive.
    """
    if n_steps <= 0:
        raise ValueError(f"n_steps must be positive, got {n_steps}")
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")

    rng = np.random.default_rng(seed)

    system = UnicycleSystemModel()
    sensor = PositionMeasurementModel(offset[0], offset[1])

    state = np.zeros(3) if x0 is None else np.asarray(x0, dtype=float).copy()
    command = np.array([speed * dt, yaw_rate * dt])

    t = np.arange(n_steps + 1) * dt
    controls = np.tile(command, (n_steps, 1))
    true_states = np.zeros((n_steps + 1, 3))
    measurements = np.zeros((n_steps, 2))
    true_states[0] = state

    for k in range(n_steps):
        realized = command + rng.normal(0.0, control_noise_std)
        state = system.f(state, realized)
        true_states[k + 1] = state
        measurements[k] = sensor.sensor_position(state) + rng.normal(0.0, noise_std)

    return LeverArmRun(
        t=t,
        controls=controls,
        true_states=true_states,
        measurements=measurements,
        offset=(float(offset[0]), float(offset[1])),
        noise_std=(float(noise_std[0]), float(noise_std[1])),
    )
