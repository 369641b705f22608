from __future__ import annotations

from typing import Any, Optional, Tuple, Union

import torch

from olsgls.linalg.registry import canonical_name
from olsgls.linalg.solve import SolveMethod, solve_ls
from olsgls.precision import PrecisionFactor, as_precision_factor
from olsgls.results import LeastSquaresResult
from olsgls.typing import as_design_response

__all__ = ["solve_gls", "fit_gls"]


def _whitened(
    X,
    Y,
    Sigma_inv,
    *,
    chol_Sigma_inv,
    chol_upper: bool,
    precision_is_diagonal: Optional[bool],
    check_spd: bool,
    jitter: float,
    jitter_max_tries: int,
    check_finite: bool,
    dtype: Optional[torch.dtype],
    device: Optional[Union[str, torch.device]],
) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor, PrecisionFactor, bool, Any, Any]:
    Xt, Yt, vector_response, param_names, response_names = as_design_response(
        X, Y, check_finite_inputs=check_finite, dtype=dtype, device=device
    )
    R = int(Xt.shape[0]) if Xt.ndim == 3 else None
    n = int(Xt.shape[-2])

    pf = as_precision_factor(
        Sigma_inv,
        chol_Sigma_inv=chol_Sigma_inv,
        chol_upper=chol_upper,
        n=n,
        R=R,
        precision_is_diagonal=precision_is_diagonal,
        check_spd=check_spd,
        check_finite=check_finite,
        jitter=jitter,
        max_tries=jitter_max_tries,
        dtype=Xt.dtype,
        device=Xt.device,
    )

    # X* = L'X, Y* = L'Y  =>  X*'X* = X'SX, X*'Y* = X'SY
    X_star = pf.whiten(Xt)
    Y_star = pf.whiten(Yt)
    return Xt, Yt, X_star, Y_star, pf, vector_response, param_names, response_names


def solve_gls(
    X,
    Y,
    Sigma_inv=None,
    *,
    chol_Sigma_inv=None,
    chol_upper: bool = False,
    precision_is_diagonal: Optional[bool] = None,
    solve_method: SolveMethod = "cholesky",
    check_spd: bool = True,
    jitter: float = 0.0,
    jitter_max_tries: int = 1,
    rcond: Optional[float] = None,
    check_finite: bool = True,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> torch.Tensor:
    """
    Generalized least squares coefficients B = (X'SX)^{-1} X'SY for a known
    precision matrix S = Sigma^{-1}.

    Precision representations
    -------------------------
    (1) Full SPD: Sigma_inv (n,n) or (R,n,n), or its lower Cholesky factor
        chol_Sigma_inv with S = L L'. Pass chol_upper=True to give the upper
        factor U (S = U'U) instead. Whitening: X* = L'X, Y* = L'Y.

    (2) Diagonal: Sigma_inv (n,) or (R,n) with strictly positive s_i.
        Whitening: X* = sqrt(s) * X, Y* = sqrt(s) * Y (no n x n matrix).
        Equivalent to weighted least squares with weights s_i.

    The whitened problem is then solved as OLS with `solve_method`; no
    explicit inverse is formed unless solve_method="inverse".

    Raises DimensionMismatchError when S does not match X's row count,
    InvalidPrecisionError when S is not SPD, SingularMatrixError when X'SX is
    not invertible.
    """
    _, _, X_star, Y_star, _, vector_response, _, _ = _whitened(
        X,
        Y,
        Sigma_inv,
        chol_Sigma_inv=chol_Sigma_inv,
        chol_upper=chol_upper,
        precision_is_diagonal=precision_is_diagonal,
        check_spd=check_spd,
        jitter=jitter,
        jitter_max_tries=jitter_max_tries,
        check_finite=check_finite,
        dtype=dtype,
        device=device,
    )
    B, _ = solve_ls(X_star, Y_star, solve_method=solve_method, rcond=rcond, name="X'SX")
    return B.squeeze(-1) if vector_response else B


def fit_gls(
    X,
    Y,
    Sigma_inv=None,
    *,
    chol_Sigma_inv=None,
    chol_upper: bool = False,
    precision_is_diagonal: Optional[bool] = None,
    solve_method: SolveMethod = "cholesky",
    check_spd: bool = True,
    jitter: float = 0.0,
    jitter_max_tries: int = 1,
    rcond: Optional[float] = None,
    check_finite: bool = True,
    store_fitted: bool = False,
    store_resid: bool = False,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> LeastSquaresResult:
    """GLS returning a LeastSquaresResult.

    `ssr` is the generalized criterion e'Se; stored fitted values and
    residuals are in the original space.
    """
    Xt, Yt, X_star, Y_star, pf, vector_response, param_names, response_names = _whitened(
        X,
        Y,
        Sigma_inv,
        chol_Sigma_inv=chol_Sigma_inv,
        chol_upper=chol_upper,
        precision_is_diagonal=precision_is_diagonal,
        check_spd=check_spd,
        jitter=jitter,
        jitter_max_tries=jitter_max_tries,
        check_finite=check_finite,
        dtype=dtype,
        device=device,
    )
    B, rc = solve_ls(X_star, Y_star, solve_method=solve_method, rcond=rcond, name="X'SX")

    fitted = Xt @ B
    resid = Yt - fitted
    resid_white = pf.whiten(resid)
    ssr = (resid_white * resid_white).sum(dim=-2)

    def _out(t: torch.Tensor) -> torch.Tensor:
        return t.squeeze(-1) if vector_response else t

    return LeastSquaresResult(
        params=_out(B),
        ssr=_out(ssr),
        rcond=rc,
        nobs=int(Xt.shape[-2]),
        solve_method=canonical_name(solve_method),
        model_name="GLS",
        fitted=_out(fitted) if store_fitted else None,
        resid=_out(resid) if store_resid else None,
        param_names=param_names,
        response_names=response_names,
        vector_response=vector_response,
    )
