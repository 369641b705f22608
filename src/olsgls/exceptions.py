from __future__ import annotations

from typing import Optional


class OLSGLSError(Exception):
    """Base exception for olsgls."""


class DimensionMismatchError(OLSGLSError, ValueError):
    """Matrix shapes are not conformant for the requested operation."""


class NonFiniteInputError(OLSGLSError, ValueError):
    """Inputs contain NaN or inf."""


class InvalidPrecisionError(OLSGLSError, ValueError):
    """Precision matrix is not symmetric positive definite."""


class NumericalError(OLSGLSError, RuntimeError):
    """Base class for numerical failures during a solve."""


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or numerically non-invertible.

    Attributes
    ----------
    matrix_name : name of the offending matrix, e.g. "X'X"
    rcond : smallest reciprocal condition number across replications, if computed
    """

    def __init__(
        self,
        message: str,
        *,
        matrix_name: Optional[str] = None,
        rcond: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rcond = rcond


class NumericalInstabilityError(NumericalError):
    """Solve produced non-finite values or the backend factorization failed."""


class NotSupportedError(OLSGLSError, NotImplementedError):
    """Feature is not supported."""
