from __future__ import annotations

from typing import Optional, Union

import torch

from olsgls.linalg.registry import canonical_name
from olsgls.linalg.solve import SolveMethod, solve_ls
from olsgls.results import LeastSquaresResult
from olsgls.typing import as_design_response

__all__ = ["solve_ols", "fit_ols"]


def solve_ols(
    X,
    Y,
    *,
    solve_method: SolveMethod = "cholesky",
    rcond: Optional[float] = None,
    check_finite: bool = True,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> torch.Tensor:
    """Ordinary least squares coefficients B = (X'X)^{-1} X'Y.

    Inputs
    - X: (n,p) or (R,n,p), or pandas.DataFrame (single sample)
    - Y: (n,k) / (n,) or (R,n,k) / (R,n), or pandas.Series / DataFrame

    Returns B: (p,k), (p,) for a vector Y, batched (R,p,k) / (R,p).

    solve_method
    - cholesky : Cholesky of X'X (default)
    - ldl      : pivoted LDL' of X'X
    - solve    : LU of X'X
    - inverse  : explicit (X'X)^{-1}
    - qr       : QR of X
    or any name added with register_solve_method.

    Raises DimensionMismatchError for non-conformant shapes and
    SingularMatrixError when rcond(X'X) = (s_min/s_max)^2 of X is <= rcond
    (default: the matrix_rank tolerance of X, squared), e.g. p > n or
    collinear columns.
    """
    Xt, Yt, vector_response, _, _ = as_design_response(
        X, Y, check_finite_inputs=check_finite, dtype=dtype, device=device
    )
    B, _ = solve_ls(Xt, Yt, solve_method=solve_method, rcond=rcond, name="X'X")
    return B.squeeze(-1) if vector_response else B


def fit_ols(
    X,
    Y,
    *,
    solve_method: SolveMethod = "cholesky",
    rcond: Optional[float] = None,
    check_finite: bool = True,
    store_fitted: bool = False,
    store_resid: bool = False,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> LeastSquaresResult:
    """OLS with memory-light defaults: coefficients, ssr and rcond always;
    fitted values and residuals only on request."""
    Xt, Yt, vector_response, param_names, response_names = as_design_response(
        X, Y, check_finite_inputs=check_finite, dtype=dtype, device=device
    )
    B, rc = solve_ls(Xt, Yt, solve_method=solve_method, rcond=rcond, name="X'X")

    fitted = Xt @ B               # (...,n,k)
    resid = Yt - fitted           # (...,n,k)
    ssr = (resid * resid).sum(dim=-2)  # (...,k)

    def _out(t: torch.Tensor) -> torch.Tensor:
        return t.squeeze(-1) if vector_response else t

    return LeastSquaresResult(
        params=_out(B),
        ssr=_out(ssr),
        rcond=rc,
        nobs=int(Xt.shape[-2]),
        solve_method=canonical_name(solve_method),
        model_name="OLS",
        fitted=_out(fitted) if store_fitted else None,
        resid=_out(resid) if store_resid else None,
        param_names=param_names,
        response_names=response_names,
        vector_response=vector_response,
    )
