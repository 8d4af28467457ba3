"""Value types shared by the measurement and system models.

Key types:
    - State: planar robot pose [x_pos, y_pos, theta]
    - PositionMeasurement: world-frame sensor position [x_pos, y_pos]

Both types convert to and from the raw NumPy buffers held by the filters
(`from_array`, `to_array`, `np.asarray(...)`), so models can be called with
either representation.
"""

from dataclasses import dataclass
from typing import ClassVar, Union

import numpy as np


@dataclass
class State:
    """
    Planar robot state consumed by the measurement model.

    Attributes:
        x_pos: Reference-point position along world x (meters).
        y_pos: Reference-point position along world y (meters).
        theta: Heading (radians), counter-clockwise from world x. Not
               wrapped: any finite value is accepted and used as-is.

    Examples:
        >>> s = State(x_pos=1.0, y_pos=2.0, theta=np.pi / 2)
        >>> s.to_array()
        array([1.        , 2.        , 1.57079633])
        >>> State.from_array(np.array([1.0, 2.0, 0.0])).theta
        0.0
    """

    X: ClassVar[int] = 0
    Y: ClassVar[int] = 1
    THETA: ClassVar[int] = 2
    DIM: ClassVar[int] = 3

    x_pos: float = 0.0
    y_pos: float = 0.0
    theta: float = 0.0

    def __post_init__(self) -> None:
        """Validate state values after initialization."""
        if not np.isfinite(self.x_pos):
            raise ValueError(f"x_pos must be finite, got {self.x_pos}")
        if not np.isfinite(self.y_pos):
            raise ValueError(f"y_pos must be finite, got {self.y_pos}")
        if not np.isfinite(self.theta):
            raise ValueError(f"theta must be finite, got {self.theta}")

    def to_array(self) -> np.ndarray:
        """Return the state as a float64 array [x_pos, y_pos, theta]."""
        return np.array([self.x_pos, self.y_pos, self.theta], dtype=np.float64)

    @classmethod
    def from_array(cls, arr) -> "State":
        """
        Create a State from a 3-element buffer [x_pos, y_pos, theta].

        Raises:
            ValueError: If the buffer does not hold exactly 3 elements.
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (cls.DIM,):
            raise ValueError(f"State buffer must have shape (3,), got {arr.shape}")
        return cls(x_pos=float(arr[cls.X]), y_pos=float(arr[cls.Y]),
                   theta=float(arr[cls.THETA]))

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        arr = self.to_array()
        return arr if dtype is None else arr.astype(dtype)

    def __len__(self) -> int:
        return self.DIM


@dataclass
class PositionMeasurement:
    """
    Position reading of a sensor, in the world frame.

    A fixed-size pair with named access. Fields are writable either by
    name or by index (`X`, `Y`); writes are visible to subsequent reads.

    Attributes:
        x_pos: Sensor position along world x (meters).
        y_pos: Sensor position along world y (meters).

    Examples:
        >>> z = PositionMeasurement()
        >>> z.x_pos = 0.99
        >>> z[PositionMeasurement.Y] = 2.03
        >>> z.to_array()
        array([0.99, 2.03])
    """

    X: ClassVar[int] = 0
    Y: ClassVar[int] = 1
    DIM: ClassVar[int] = 2

    x_pos: float = 0.0
    y_pos: float = 0.0

    def to_array(self) -> np.ndarray:
        """Return the measurement as a float64 array [x_pos, y_pos]."""
        return np.array([self.x_pos, self.y_pos], dtype=np.float64)

    @classmethod
    def from_array(cls, arr) -> "PositionMeasurement":
        """
        Create a measurement from a raw 2-element buffer.

        Raises:
            ValueError: If the buffer does not hold exactly 2 elements.
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (cls.DIM,):
            raise ValueError(
                f"Measurement buffer must have shape (2,), got {arr.shape}"
            )
        return cls(x_pos=float(arr[cls.X]), y_pos=float(arr[cls.Y]))

    def __getitem__(self, index: int) -> float:
        if index == self.X:
            return self.x_pos
        if index == self.Y:
            return self.y_pos
        raise IndexError(f"PositionMeasurement index out of range: {index}")

    def __setitem__(self, index: int, value: float) -> None:
        if index == self.X:
            self.x_pos = float(value)
        elif index == self.Y:
            self.y_pos = float(value)
        else:
            raise IndexError(f"PositionMeasurement index out of range: {index}")

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        arr = self.to_array()
        return arr if dtype is None else arr.astype(dtype)

    def __len__(self) -> int:
        return self.DIM


def as_state(x: Union[State, np.ndarray]) -> State:
    """
    Coerce a State or a 3-element array-like into a State.

    Args:
        x: State instance or buffer [x_pos, y_pos, theta].

    Returns:
        State instance (the same object if `x` already is one).

    Raises:
        ValueError: If the buffer does not hold exactly 3 elements.
    """
    if isinstance(x, State):
        return x
    return State.from_array(x)
