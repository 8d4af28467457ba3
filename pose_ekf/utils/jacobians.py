"""
Numerical checks of analytic Jacobians.

An incorrect measurement Jacobian does not make an EKF crash; it makes it
biased or overconfident. `check_jacobian` compares a model's analytic H
with central differences of its h(x) at a given state.
"""

from typing import Callable, Tuple

import numpy as np

from pose_ekf.models.base import LinearizedMeasurementModel


def numerical_jacobian(
    f: Callable,
    x: np.ndarray,
    epsilon: float = 1e-7
) -> np.ndarray:
    """
    Compute Jacobian numerically using central differences.

    Args:
        f: Function that takes x and returns y (anything np.asarray accepts)
        x: Point at which to compute Jacobian
        epsilon: Step size for finite differences

    Returns:
        Numerical Jacobian, shape (len(y), len(x))
    """
    x = np.asarray(x, dtype=float)
    y0 = np.asarray(f(x), dtype=float)

    J = np.zeros((len(y0), len(x)))

    for i in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()

        x_plus[i] += epsilon
        x_minus[i] -= epsilon

        y_plus = np.asarray(f(x_plus), dtype=float)
        y_minus = np.asarray(f(x_minus), dtype=float)

        J[:, i] = (y_plus - y_minus) / (2 * epsilon)

    return J


def check_jacobian(
    model: LinearizedMeasurementModel,
    x,
    rtol: float = 1e-5,
    atol: float = 1e-8,
    epsilon: float = 1e-7,
) -> Tuple[bool, float]:
    """
    Compare a model's analytic H at x against central differences of h.

    Args:
        model: Linearized measurement model.
        x: State at which to linearize.
        rtol: Relative tolerance.
        atol: Absolute tolerance.
        epsilon: Finite-difference step.

    Returns:
        Tuple of (matches, max_abs_error).

    Example:
        >>> from pose_ekf.models import PositionMeasurementModel
        >>> ok, err = check_jacobian(PositionMeasurementModel(0.3, 0.0), [0, 0, 1.0])
        >>> ok
        True
    """
    x = np.asarray(x, dtype=float)
    H_analytic = model.linearize(x).copy()
    H_numeric = numerical_jacobian(model.h, x, epsilon=epsilon)

    max_abs_error = float(np.max(np.abs(H_analytic - H_numeric)))
    matches = bool(np.allclose(H_analytic, H_numeric, rtol=rtol, atol=atol))
    return matches, max_abs_error
