from importlib.metadata import PackageNotFoundError, version

from olsgls.bindings import rcpp_gls, rcpp_ols
from olsgls.exceptions import (
    DimensionMismatchError,
    InvalidPrecisionError,
    NonFiniteInputError,
    NotSupportedError,
    NumericalError,
    NumericalInstabilityError,
    OLSGLSError,
    SingularMatrixError,
)
from olsgls.linalg import get_solve_method, list_solve_methods, register_solve_method
from olsgls.models.gls import fit_gls, solve_gls
from olsgls.models.ols import fit_ols, solve_ols
from olsgls.results import LeastSquaresResult

__all__ = [
    "solve_ols",
    "solve_gls",
    "fit_ols",
    "fit_gls",
    "LeastSquaresResult",
    "rcpp_ols",
    "rcpp_gls",
    "register_solve_method",
    "get_solve_method",
    "list_solve_methods",
    "OLSGLSError",
    "DimensionMismatchError",
    "NonFiniteInputError",
    "InvalidPrecisionError",
    "NumericalError",
    "SingularMatrixError",
    "NumericalInstabilityError",
    "NotSupportedError",
    "__version__",
]

try:
    __version__ = version("olsgls")
except PackageNotFoundError:  # editable/local
    __version__ = "0.0.0"
