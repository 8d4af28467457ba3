"""Unit tests for pose_ekf.config (ModelConfig and JSON loading)."""

import json
import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pose_ekf.config import DEFAULT_SENSOR_OFFSET, ModelConfig, load_model_config
from pose_ekf.models import JacobianPolicy, PositionMeasurementModel, SquareRootBase
from pose_ekf.types import State


class TestModelConfig:
    """Test config validation and conversion."""

    def test_defaults_match_reference_robot(self):
        cfg = ModelConfig()
        assert cfg.offset == DEFAULT_SENSOR_OFFSET == (-0.01, 0.03)
        assert cfg.jacobian == "exact"
        assert cfg.covariance == "standard"

    def test_from_dict_partial(self):
        cfg = ModelConfig.from_dict({"sensor_offset": {"x": 0.3}})
        assert cfg.offset == (0.3, DEFAULT_SENSOR_OFFSET[1])

    def test_dict_round_trip(self):
        cfg = ModelConfig(offset_x=0.6, offset_y=0.2, covariance="square_root",
                          noise_std=(0.05, 0.1))
        assert ModelConfig.from_dict(cfg.to_dict()) == cfg

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown"):
            ModelConfig.from_dict({"sensor_offset": {"x": 0.0, "y": 0.0}, "gain": 2})

    @pytest.mark.parametrize("kwargs", [
        {"offset_x": float("nan")},
        {"jacobian": "secant"},
        {"covariance": "information"},
        {"noise_std": (0.1,)},
        {"noise_std": (0.1, -0.1)},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ModelConfig(**kwargs)

    def test_noise_covariance(self):
        cfg = ModelConfig(noise_std=(0.1, 0.2))
        assert_allclose(cfg.noise_covariance(), np.diag([0.01, 0.04]))


class TestBuildMeasurementModel:
    """Test model construction from config."""

    def test_builds_configured_model(self):
        cfg = ModelConfig(offset_x=0.6, offset_y=0.2, covariance="square_root",
                          noise_std=(0.1, 0.2))
        model = cfg.build_measurement_model()

        assert isinstance(model, PositionMeasurementModel)
        assert model.offset == (0.6, 0.2)
        assert model.jacobian_policy is JacobianPolicy.EXACT
        assert isinstance(model.noise, SquareRootBase)
        assert_allclose(model.get_covariance(), np.diag([0.01, 0.04]), atol=1e-15)

    def test_identity_policy_warns(self):
        cfg = ModelConfig(jacobian="identity")
        with pytest.warns(UserWarning):
            model = cfg.build_measurement_model()
        assert model.jacobian_policy is JacobianPolicy.IDENTITY

    def test_reference_scenario_from_defaults(self):
        model = ModelConfig().build_measurement_model()
        z = model.h(State(1.0, 2.0, 0.0))
        assert_allclose(z.to_array(), [0.99, 2.03], atol=1e-12)


class TestLoadModelConfig:
    """Test JSON loading."""

    def test_load_bare_dict(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(json.dumps({
            "sensor_offset": {"x": 0.3, "y": 0.0},
            "jacobian": "exact",
            "noise_std": [0.05, 0.05],
        }))
        cfg = load_model_config(path)
        assert cfg.offset == (0.3, 0.0)
        assert cfg.noise_std == (0.05, 0.05)

    def test_load_dataset_section(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "dataset": "lever_arm_position",
            "dt": 0.1,
            "measurement_model": ModelConfig(offset_x=0.6, offset_y=0.2).to_dict(),
        }))
        cfg = load_model_config(str(path))
        assert cfg.offset == (0.6, 0.2)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_model_config(tmp_path / "missing.json")

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            load_model_config(path)

    def test_no_warning_for_exact_policy(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(json.dumps(ModelConfig(offset_x=0.6).to_dict()))
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            load_model_config(path).build_measurement_model()
