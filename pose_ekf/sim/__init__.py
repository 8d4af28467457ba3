"""
Simulation utilities for generating synthetic lever-arm sensor data.

Modules:
    lever_arm_run: Unicycle ground truth plus offset position readings
"""

from pose_ekf.sim.lever_arm_run import LeverArmRun, simulate_lever_arm_run

__all__ = [
    "LeverArmRun",
    "simulate_lever_arm_run",
]
