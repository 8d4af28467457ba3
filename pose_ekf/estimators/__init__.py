"""
Recursive state estimators for the planar pose filter.

Available estimators:
    - Extended Kalman Filter (EKF), full covariance
    - Square-root Extended Kalman Filter (SR-EKF), Cholesky-factor covariance
"""

from pose_ekf.estimators.base import StateEstimator
from pose_ekf.estimators.extended_kalman_filter import (
    ExtendedKalmanFilter,
    SquareRootExtendedKalmanFilter,
)

__all__ = [
    "StateEstimator",
    "ExtendedKalmanFilter",
    "SquareRootExtendedKalmanFilter",
]
