"""Examples: fusing a lever-arm mounted position sensor into a pose EKF."""
