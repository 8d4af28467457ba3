"""
Covariance representations for noise models.

A model's noise covariance can be held either as the full matrix or as a
lower-triangular square-root factor. The representation is a capability
object composed into the model, so the same measurement model serves both
the standard and the square-root Extended Kalman Filter:

- StandardBase: stores P directly
- SquareRootBase: stores S with P = S S^T

Both classes expose the same accessors; `is_square_root` tells a filter
which form is native.
"""

from typing import Type, Union

import numpy as np
import scipy.linalg


def validate_covariance(P: np.ndarray, dim: int, name: str = "covariance") -> np.ndarray:
    """
    Validate a covariance matrix.

    Args:
        P: Candidate covariance matrix.
        dim: Expected dimension.
        name: Name used in error messages.

    Returns:
        P as a float64 array.

    Raises:
        ValueError: If P is not (dim, dim), not symmetric, or not PSD.
    """
    P = np.asarray(P, dtype=np.float64)
    if P.shape != (dim, dim):
        raise ValueError(f"{name} must have shape ({dim}, {dim}), got {P.shape}")
    if not np.allclose(P, P.T):
        raise ValueError(f"{name} must be symmetric")
    eigvals = np.linalg.eigvalsh(P)
    if np.any(eigvals < -1e-10):
        raise ValueError(
            f"{name} must be positive semi-definite, got eigenvalues {eigvals}"
        )
    return P


def _cholesky_lower(P: np.ndarray) -> np.ndarray:
    # PSD matrices with zero variance axes are not Cholesky-factorable;
    # fall back to a symmetric eigen-decomposition followed by QR.
    try:
        return scipy.linalg.cholesky(P, lower=True)
    except np.linalg.LinAlgError:
        eigvals, eigvecs = np.linalg.eigh(P)
        half = eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))
        _, r = np.linalg.qr(half.T)
        L = r.T
        signs = np.where(np.diag(L) < 0, -1.0, 1.0)
        return L * signs


class StandardBase:
    """
    Full-matrix covariance representation.

    Attributes:
        dim: Dimension of the covariance.
        P: Covariance matrix (dim x dim), identity on construction.

    Example:
        >>> cov = StandardBase(2)
        >>> cov.set_covariance(np.diag([0.04, 0.09]))
        >>> cov.get_covariance_square_root()
        array([[0.2, 0. ],
               [0. , 0.3]])
    """

    is_square_root = False

    def __init__(self, dim: int):
        if dim <= 0:
            raise ValueError(f"dim must be positive, got {dim}")
        self.dim = dim
        self.P = np.eye(dim)

    def get_covariance(self) -> np.ndarray:
        return self.P.copy()

    def set_covariance(self, P: np.ndarray) -> None:
        self.P = validate_covariance(P, self.dim).copy()

    def get_covariance_square_root(self) -> np.ndarray:
        """Lower-triangular factor S with S S^T = P."""
        return _cholesky_lower(self.P)


class SquareRootBase:
    """
    Square-root covariance representation.

    Holds the lower-triangular factor S of the covariance P = S S^T. This
    keeps the represented covariance symmetric and PSD by construction.

    Attributes:
        dim: Dimension of the covariance.
        S: Lower-triangular factor (dim x dim), identity on construction.
    """

    is_square_root = True

    def __init__(self, dim: int):
        if dim <= 0:
            raise ValueError(f"dim must be positive, got {dim}")
        self.dim = dim
        self.S = np.eye(dim)

    def get_covariance(self) -> np.ndarray:
        return self.S @ self.S.T

    def set_covariance(self, P: np.ndarray) -> None:
        P = validate_covariance(P, self.dim)
        self.S = _cholesky_lower(P)

    def get_covariance_square_root(self) -> np.ndarray:
        return self.S.copy()

    def set_covariance_square_root(self, S: np.ndarray) -> None:
        """
        Set the lower-triangular factor directly.

        Raises:
            ValueError: If S has the wrong shape or is not lower triangular.
        """
        S = np.asarray(S, dtype=np.float64)
        if S.shape != (self.dim, self.dim):
            raise ValueError(
                f"Square root must have shape ({self.dim}, {self.dim}), got {S.shape}"
            )
        if not np.allclose(S, np.tril(S)):
            raise ValueError("Square root factor must be lower triangular")
        self.S = S.copy()


CovarianceBase = Union[StandardBase, SquareRootBase]
CovarianceBaseType = Type[Union[StandardBase, SquareRootBase]]

COVARIANCE_BASES = {
    "standard": StandardBase,
    "square_root": SquareRootBase,
}
