"""
Utility functions for the pose filter: angle handling and Jacobian checks.
"""

from .angles import wrap_angle, angle_diff
from .jacobians import numerical_jacobian, check_jacobian

__all__ = [
    'wrap_angle',
    'angle_diff',
    'numerical_jacobian',
    'check_jacobian',
]
