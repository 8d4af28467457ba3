"""
Angle wrapping utilities.

The models never wrap the heading themselves; these helpers are for
callers that report or compare headings (e.g. heading error in the
example filter).
"""

from typing import Union

import numpy as np


def wrap_angle(angle: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Wrap angle(s) to [-π, π].

    Args:
        angle: Angle or array of angles in radians (any value).

    Returns:
        Wrapped angle(s) in range [-π, π].

    Example:
        >>> wrap_angle(3.5 * np.pi)  # 630° -> -90°
        -1.5707963267948966
    """
    # atan2 of (sin, cos) is robust for any magnitude
    return np.arctan2(np.sin(angle), np.cos(angle))


def angle_diff(angle1: Union[float, np.ndarray],
               angle2: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Shortest signed difference angle1 - angle2, wrapped to [-π, π].

    Example:
        >>> round(angle_diff(np.pi - 0.1, -np.pi + 0.1), 6)
        -0.2
    """
    return wrap_angle(np.asarray(angle1) - np.asarray(angle2))
