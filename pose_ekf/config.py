"""Configuration of the position measurement model.

The measurement model takes its sensor offset as constructor arguments;
this module supplies them from JSON, either a standalone file:

    {
        "sensor_offset": {"x": -0.01, "y": 0.03},
        "jacobian": "exact",
        "covariance": "standard",
        "noise_std": [0.02, 0.02]
    }

or a dataset `config.json` holding the same dict under "measurement_model".
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import numpy as np

from pose_ekf.models.covariance import COVARIANCE_BASES
from pose_ekf.models.position_measurement import JacobianPolicy, PositionMeasurementModel

logger = logging.getLogger(__name__)

# Antenna lever arm of the reference robot: x = forward, y = left (meters).
DEFAULT_SENSOR_OFFSET = (-0.01, 0.03)
DEFAULT_NOISE_STD = (0.02, 0.02)

_KNOWN_KEYS = {"sensor_offset", "jacobian", "covariance", "noise_std"}


@dataclass(frozen=True)
class ModelConfig:
    """Settings for building a PositionMeasurementModel.

    Attributes:
        offset_x: Sensor offset towards the front of the robot (meters).
        offset_y: Sensor offset towards the left of the robot (meters).
        jacobian: Jacobian policy name, "exact" or "identity".
        covariance: Noise covariance representation, "standard" or "square_root".
        noise_std: Per-axis measurement noise standard deviation (meters).

    Example:
        >>> cfg = ModelConfig.from_dict({"sensor_offset": {"x": 0.3, "y": 0.0}})
        >>> cfg.offset, cfg.jacobian
        ((0.3, 0.0), 'exact')
    """

    offset_x: float = DEFAULT_SENSOR_OFFSET[0]
    offset_y: float = DEFAULT_SENSOR_OFFSET[1]
    jacobian: str = JacobianPolicy.EXACT.value
    covariance: str = "standard"
    noise_std: Tuple[float, float] = DEFAULT_NOISE_STD

    def __post_init__(self) -> None:
        """Validate the configuration."""
        if not np.isfinite(self.offset_x) or not np.isfinite(self.offset_y):
            raise ValueError(
                f"Sensor offset must be finite, got ({self.offset_x}, {self.offset_y})"
            )

        valid_policies = [p.value for p in JacobianPolicy]
        if self.jacobian not in valid_policies:
            raise ValueError(
                f"jacobian must be one of {valid_policies}, got {self.jacobian!r}"
            )

        if self.covariance not in COVARIANCE_BASES:
            raise ValueError(
                f"covariance must be one of {sorted(COVARIANCE_BASES)}, "
                f"got {self.covariance!r}"
            )

        if len(self.noise_std) != 2:
            raise ValueError(
                f"noise_std must have 2 entries, got {len(self.noise_std)}"
            )
        if any(s < 0 for s in self.noise_std):
            raise ValueError(f"noise_std must be non-negative, got {self.noise_std}")

    @property
    def offset(self) -> Tuple[float, float]:
        return self.offset_x, self.offset_y

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        """Build a config from its JSON dict; missing keys take defaults.

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown measurement model config keys: {sorted(unknown)}")

        offset = data.get("sensor_offset", {})
        noise_std = data.get("noise_std", DEFAULT_NOISE_STD)
        return cls(
            offset_x=float(offset.get("x", DEFAULT_SENSOR_OFFSET[0])),
            offset_y=float(offset.get("y", DEFAULT_SENSOR_OFFSET[1])),
            jacobian=data.get("jacobian", JacobianPolicy.EXACT.value),
            covariance=data.get("covariance", "standard"),
            noise_std=tuple(float(s) for s in noise_std),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sensor_offset": {"x": self.offset_x, "y": self.offset_y},
            "jacobian": self.jacobian,
            "covariance": self.covariance,
            "noise_std": list(self.noise_std),
        }

    def noise_covariance(self) -> np.ndarray:
        """Uncorrelated measurement noise R = diag(σ²)."""
        return np.diag(np.asarray(self.noise_std, dtype=float) ** 2)

    def build_measurement_model(self) -> PositionMeasurementModel:
        """Construct the configured PositionMeasurementModel."""
        model = PositionMeasurementModel(
            self.offset_x,
            self.offset_y,
            jacobian=self.jacobian,
            covariance_base=COVARIANCE_BASES[self.covariance],
        )
        model.set_covariance(self.noise_covariance())
        return model


def load_model_config(path: Union[str, Path]) -> ModelConfig:
    """Load a ModelConfig from a JSON file.

    Accepts either the bare model dict or a dataset config holding it under
    "measurement_model".

    Args:
        path: Path to the JSON file.

    Returns:
        ModelConfig instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content is not a valid model configuration.
    """
    path = Path(path)
    with open(path) as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must contain a JSON object")
    if "measurement_model" in data:
        data = data["measurement_model"]

    config = ModelConfig.from_dict(data)
    logger.info(
        "Loaded measurement model config from %s: offset=%s, jacobian=%s",
        path, config.offset, config.jacobian,
    )
    return config
