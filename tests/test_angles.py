"""Unit tests for pose_ekf.utils.angles."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pose_ekf.utils import angle_diff, wrap_angle


class TestWrapAngle:
    """Test angle wrapping."""

    @pytest.mark.parametrize("angle, expected", [
        (0.0, 0.0),
        (np.pi / 2, np.pi / 2),
        (3.5 * np.pi, -np.pi / 2),
        (-3.5 * np.pi, np.pi / 2),
        (2 * np.pi, 0.0),
    ])
    def test_scalar(self, angle, expected):
        assert wrap_angle(angle) == pytest.approx(expected, abs=1e-12)

    def test_array_in_range(self):
        angles = np.linspace(-20.0, 20.0, 101)
        wrapped = wrap_angle(angles)
        assert np.all(wrapped <= np.pi)
        assert np.all(wrapped >= -np.pi)
        assert_allclose(np.cos(wrapped), np.cos(angles), atol=1e-12)
        assert_allclose(np.sin(wrapped), np.sin(angles), atol=1e-12)


class TestAngleDiff:
    """Test shortest signed angle difference."""

    def test_across_branch_cut(self):
        assert angle_diff(np.pi - 0.1, -np.pi + 0.1) == pytest.approx(-0.2)

    def test_array(self):
        d = angle_diff(np.array([0.1, 6.2]), np.array([0.0, 0.0]))
        assert_allclose(d, [0.1, 6.2 - 2 * np.pi], atol=1e-12)
