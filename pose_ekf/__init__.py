"""Position-sensor measurement model for 2D robot pose EKFs.

This package contains the pieces needed to fuse a lever-arm mounted
position sensor (GPS antenna, visual beacon) into a planar pose filter:
- types: State and PositionMeasurement value types
- models: measurement/system models and covariance representations
- estimators: standard and square-root Extended Kalman Filters
- config: JSON configuration of the sensor offset and noise
- utils: angle helpers and Jacobian checks
"""

__version__ = "0.1.0"
