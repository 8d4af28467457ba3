"""
Measurement and system models for the pose filter.

Models are linearized explicitly before use (`linearize` / `update_jacobians`)
and carry their noise covariance in a pluggable representation
(`StandardBase` or `SquareRootBase`).
"""

from .covariance import (
    COVARIANCE_BASES,
    SquareRootBase,
    StandardBase,
    validate_covariance,
)
from .base import LinearizedMeasurementModel, LinearizedSystemModel
from .position_measurement import JacobianPolicy, PositionMeasurementModel
from .system_model import UnicycleSystemModel

__all__ = [
    # Covariance representations
    'StandardBase',
    'SquareRootBase',
    'COVARIANCE_BASES',
    'validate_covariance',

    # Base contracts
    'LinearizedMeasurementModel',
    'LinearizedSystemModel',

    # Models
    'PositionMeasurementModel',
    'JacobianPolicy',
    'UnicycleSystemModel',
]
