"""
Host-facing adapter.

Exposes the two matrix entry points of the original binding layer,
rcpp_ols and rcpp_gls, with dense double-precision matrices in and out.
All marshaling to and from NumPy happens here; the solvers themselves only
see torch tensors.
"""
from __future__ import annotations

from typing import Any

import numpy as np
import torch

from olsgls.exceptions import DimensionMismatchError
from olsgls.models.gls import solve_gls
from olsgls.models.ols import solve_ols
from olsgls.typing import ArrayLike

__all__ = ["rcpp_ols", "rcpp_gls"]


def _as_matrix(x: Any, name: str) -> torch.Tensor:
    if hasattr(x, "to_numpy"):
        x = x.to_numpy()
    a = np.asarray(x, dtype=np.float64)
    if a.ndim != 2:
        raise DimensionMismatchError(f"{name} must be a 2-D matrix. Got shape {a.shape}")
    return torch.from_numpy(np.ascontiguousarray(a))


def _to_numpy(B: torch.Tensor) -> np.ndarray:
    return B.detach().cpu().numpy()


def rcpp_ols(X: ArrayLike, Y: ArrayLike) -> np.ndarray:
    """OLS coefficients (p,k) via an LDL' solve of the normal equations."""
    return _to_numpy(solve_ols(_as_matrix(X, "X"), _as_matrix(Y, "Y"), solve_method="ldl"))


def rcpp_gls(X: ArrayLike, Y: ArrayLike, Sigma_inv: ArrayLike) -> np.ndarray:
    """GLS coefficients (p,k) for a full precision matrix Sigma_inv (n,n)."""
    return _to_numpy(
        solve_gls(
            _as_matrix(X, "X"),
            _as_matrix(Y, "Y"),
            _as_matrix(Sigma_inv, "Sigma_inv"),
            precision_is_diagonal=False,
            solve_method="cholesky",
        )
    )
