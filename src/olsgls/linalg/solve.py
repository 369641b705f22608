from __future__ import annotations

from typing import Literal, Optional, Tuple
import warnings

import torch

from olsgls.exceptions import NumericalInstabilityError, SingularMatrixError
from olsgls.linalg.chol import chol_solve, safe_cholesky
from olsgls.linalg.registry import get_solve_method, register_solve_method

SolveMethod = Literal["cholesky", "ldl", "solve", "inverse", "qr"]

# Below this reciprocal condition number (of X'X) a RuntimeWarning is emitted.
WARN_RCOND = 1e-10


def default_rcond(dtype: torch.dtype, n: int, p: int) -> float:
    """
    Singularity threshold on rcond(X'X) = (s_min/s_max)^2.

    Same rank tolerance as torch.linalg.matrix_rank on X: a singular value
    below max(n,p) * eps * s_max counts as zero.
    """
    return (max(n, p) * torch.finfo(dtype).eps) ** 2


def gram(X: torch.Tensor) -> torch.Tensor:
    """X'X, symmetrized. X: (...,n,p) -> (...,p,p)"""
    G = X.transpose(-1, -2) @ X
    return 0.5 * (G + G.transpose(-1, -2))


def design_rcond(X: torch.Tensor) -> torch.Tensor:
    """
    Reciprocal condition number of X'X, computed from the singular values
    of X so that it is never squared in working precision. p > n and zero
    designs give 0.
    """
    n, p = X.shape[-2], X.shape[-1]
    if p > n:
        return torch.zeros(X.shape[:-2], dtype=X.dtype, device=X.device)
    try:
        s = torch.linalg.svdvals(X)
    except torch.linalg.LinAlgError as e:
        raise NumericalInstabilityError(f"Singular value computation failed: {e}") from e
    s_max = s[..., 0]
    s_min = s[..., -1]
    safe_max = torch.where(s_max > 0, s_max, torch.ones_like(s_max))
    ratio = torch.where(s_max > 0, s_min / safe_max, torch.zeros_like(s_max))
    return ratio * ratio


def check_design(
    X: torch.Tensor,
    *,
    rcond: Optional[float] = None,
    name: str = "X'X",
) -> float:
    """
    Raise SingularMatrixError if any replication has rcond(X'X) <= rcond.
    Returns the smallest rcond across the batch.
    """
    n, p = X.shape[-2], X.shape[-1]
    tol = default_rcond(X.dtype, n, p) if rcond is None else float(rcond)
    rc = design_rcond(X)
    worst = float(rc.min().detach().cpu().item())

    if worst <= tol:
        bad = int((rc <= tol).sum().item())
        where = f" in {bad} of {rc.numel()} replications" if rc.ndim > 0 else ""
        raise SingularMatrixError(
            f"{name} is singular or rank deficient{where} "
            f"(rcond={worst:.3e} <= {tol:.3e}).",
            matrix_name=name,
            rcond=worst,
        )

    if worst < WARN_RCOND:
        warnings.warn(
            f"{name} is ill-conditioned (rcond={worst:.2e}). Coefficients may be inaccurate.",
            RuntimeWarning,
            stacklevel=2,
        )
    return worst


# =============================================================================
# Built-in solve methods
# =============================================================================

@register_solve_method("cholesky")
def _solve_cholesky(X: torch.Tensor, Y: torch.Tensor, G: torch.Tensor) -> torch.Tensor:
    L = safe_cholesky(G, name="X'X")
    return chol_solve(X.transpose(-1, -2) @ Y, L)


@register_solve_method("ldl")
def _solve_ldl(X: torch.Tensor, Y: torch.Tensor, G: torch.Tensor) -> torch.Tensor:
    LD, pivots, info = torch.linalg.ldl_factor_ex(G)
    if torch.any(info != 0):
        raise SingularMatrixError("X'X is singular; LDL' factorization has a zero pivot.", matrix_name="X'X")
    return torch.linalg.ldl_solve(LD, pivots, X.transpose(-1, -2) @ Y)


@register_solve_method("solve")
def _solve_lu(X: torch.Tensor, Y: torch.Tensor, G: torch.Tensor) -> torch.Tensor:
    B, info = torch.linalg.solve_ex(G, X.transpose(-1, -2) @ Y)
    if torch.any(info != 0):
        raise SingularMatrixError("X'X is singular; LU factorization failed.", matrix_name="X'X")
    return B


@register_solve_method("inverse")
def _solve_inverse(X: torch.Tensor, Y: torch.Tensor, G: torch.Tensor) -> torch.Tensor:
    # (X'X)^{-1} X'Y with an explicit inverse
    G_inv, info = torch.linalg.inv_ex(G)
    if torch.any(info != 0):
        raise SingularMatrixError("X'X is singular; explicit inverse failed.", matrix_name="X'X")
    return G_inv @ (X.transpose(-1, -2) @ Y)


@register_solve_method("qr")
def _solve_qr(X: torch.Tensor, Y: torch.Tensor, G: torch.Tensor) -> torch.Tensor:
    # X = Q R, B = R^{-1} Q'Y
    Q, Rm = torch.linalg.qr(X, mode="reduced")
    return torch.linalg.solve_triangular(Rm, Q.transpose(-1, -2) @ Y, upper=True, left=True)


def solve_ls(
    X: torch.Tensor,
    Y: torch.Tensor,
    *,
    solve_method: str = "cholesky",
    rcond: Optional[float] = None,
    name: str = "X'X",
) -> Tuple[torch.Tensor, float]:
    """
    Least squares for each replication: B = argmin ||Y - X B||_F.

    X : (...,n,p)
    Y : (...,n,k)
    returns (B:(...,p,k), smallest rcond of X'X across the batch)

    solve_method names a registered method; unknown names raise NotSupportedError.
    """
    fn = get_solve_method(solve_method)

    rc = check_design(X, rcond=rcond, name=name)
    G = gram(X)

    try:
        B = fn(X, Y, G)
    except torch.linalg.LinAlgError as e:
        raise NumericalInstabilityError(f"solve_method {solve_method!r} failed: {e}") from e

    if not torch.isfinite(B).all():
        raise NumericalInstabilityError(
            f"solve_method {solve_method!r} produced non-finite coefficients (rcond={rc:.3e})."
        )
    return B, rc
