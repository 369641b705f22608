from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, Union
import warnings

import torch

from olsgls.exceptions import DimensionMismatchError, InvalidPrecisionError, SingularMatrixError
from olsgls.linalg.chol import safe_cholesky
from olsgls.typing import as_torch, check_finite as _check_finite

PrecisionKind = Literal["diag", "full"]

# Relative tolerance for the symmetry check of a full precision matrix.
SYMMETRY_RTOL = 1e-8


@dataclass(frozen=True)
class PrecisionFactor:
    """Whitening factor of a precision matrix S.

    - kind='diag': `factor` holds sqrt(s_i), shape (n,) or (R,n)
    - kind='full': `factor` holds lower L with S = L L', shape (n,n) or (R,n,n)

    Whitening maps M -> L'M, so that (L'X)'(L'Y) = X'SY.
    """

    kind: PrecisionKind
    factor: torch.Tensor

    def whiten(self, M: torch.Tensor) -> torch.Tensor:
        """M: (...,n,m) -> (...,n,m)"""
        if self.kind == "diag":
            return M * self.factor.unsqueeze(-1)
        return self.factor.transpose(-1, -2) @ M


def _check_full_shape(S: torch.Tensor, *, n: int, R: Optional[int], name: str) -> None:
    if S.ndim == 2 and tuple(S.shape) == (n, n):
        return
    if S.ndim == 3 and R is not None and tuple(S.shape) == (R, n, n):
        return
    expected = f"(n,n)={(n, n)}" if R is None else f"(n,n)={(n, n)} or (R,n,n)={(R, n, n)}"
    raise DimensionMismatchError(f"{name} must have shape {expected}. Got {tuple(S.shape)}")


def _check_diag_shape(s: torch.Tensor, *, n: int, R: Optional[int], name: str) -> None:
    if s.ndim == 1 and s.shape[0] == n:
        return
    if s.ndim == 2 and R is not None and tuple(s.shape) == (R, n):
        return
    expected = f"(n,)={(n,)}" if R is None else f"(n,)={(n,)} or (R,n)={(R, n)}"
    raise DimensionMismatchError(f"{name} diagonal must have shape {expected}. Got {tuple(s.shape)}")


def _is_diagonal_form(S: torch.Tensor, *, n: int, R: Optional[int]) -> bool:
    """(n,n) / (R,n,n) => full; (n,) / (R,n) => diagonal. Square wins ties."""
    if S.ndim == 1:
        return True
    if S.ndim == 2:
        return tuple(S.shape) != (n, n)
    return False


def _diag_factor(s: torch.Tensor, *, check_spd: bool) -> torch.Tensor:
    if check_spd:
        if (s <= 0).any():
            raise InvalidPrecisionError("Diagonal precision entries must be strictly positive")

        smin = float(s.min().detach().cpu().item())
        smax = float(s.max().detach().cpu().item())
        ratio = smax / smin
        if ratio > 1e8:
            warnings.warn(
                f"Very large precision ratio max/min = {ratio:.2e}. This can cause numerical issues.",
                RuntimeWarning,
                stacklevel=3,
            )
    return torch.sqrt(s)


def _full_factor(
    S: torch.Tensor,
    *,
    check_spd: bool,
    jitter: float,
    max_tries: int,
) -> torch.Tensor:
    if check_spd:
        asym = float((S - S.transpose(-1, -2)).abs().amax().detach().cpu().item())
        scale = float(S.abs().amax().detach().cpu().item())
        if asym > SYMMETRY_RTOL * max(scale, 1.0):
            raise InvalidPrecisionError(f"Precision matrix must be symmetric (max |S - S'| = {asym:.3e}).")
    try:
        return safe_cholesky(S, jitter=jitter, max_tries=max_tries, name="Sigma_inv")
    except SingularMatrixError as e:
        raise InvalidPrecisionError(
            "Precision matrix must be symmetric positive definite (SPD). Cholesky factorization failed."
        ) from e


def as_precision_factor(
    Sigma_inv: Any = None,
    *,
    chol_Sigma_inv: Any = None,
    chol_upper: bool = False,
    n: int,
    R: Optional[int] = None,
    precision_is_diagonal: Optional[bool] = None,
    check_spd: bool = True,
    check_finite: bool = True,
    jitter: float = 0.0,
    max_tries: int = 1,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> PrecisionFactor:
    """
    Coerce a precision matrix (or its Cholesky factor) to a PrecisionFactor.

    Accepted inputs (R=None for an unbatched design):
      - Sigma_inv full: (n,n) or (R,n,n), symmetric positive definite
      - Sigma_inv diagonal: (n,) or (R,n), strictly positive
      - chol_Sigma_inv: lower L with Sigma_inv = L L', (n,n) or (R,n,n);
        with chol_upper=True, upper U with Sigma_inv = U'U

    precision_is_diagonal overrides the shape-based detection.
    """
    if (Sigma_inv is None) == (chol_Sigma_inv is None):
        raise ValueError("Provide exactly one of Sigma_inv or chol_Sigma_inv.")

    if chol_Sigma_inv is not None:
        L = as_torch(chol_Sigma_inv, dtype=dtype, device=device)
        _check_full_shape(L, n=n, R=R, name="chol_Sigma_inv")
        if chol_upper:
            L = L.transpose(-1, -2)
        if check_finite:
            _check_finite(L, "chol_Sigma_inv")
        if check_spd:
            if torch.any(torch.triu(L, diagonal=1) != 0):
                side = "upper" if not chol_upper else "lower"
                raise InvalidPrecisionError(
                    f"chol_Sigma_inv has nonzero {side}-triangle entries. Pass a lower factor L "
                    "(Sigma_inv = L L'), or an upper factor U with chol_upper=True."
                )
            d = torch.diagonal(L, dim1=-2, dim2=-1)
            if torch.any(d <= 0):
                raise InvalidPrecisionError("chol_Sigma_inv must have strictly positive diagonal entries (SPD requirement).")
        return PrecisionFactor(kind="full", factor=L)

    S = as_torch(Sigma_inv, dtype=dtype, device=device)
    if check_finite:
        _check_finite(S, "Sigma_inv")

    if precision_is_diagonal is None:
        diag_branch = _is_diagonal_form(S, n=n, R=R)
    else:
        diag_branch = bool(precision_is_diagonal)

    if diag_branch:
        _check_diag_shape(S, n=n, R=R, name="Sigma_inv")
        return PrecisionFactor(kind="diag", factor=_diag_factor(S, check_spd=check_spd))

    _check_full_shape(S, n=n, R=R, name="Sigma_inv")
    return PrecisionFactor(
        kind="full",
        factor=_full_factor(S, check_spd=check_spd, jitter=jitter, max_tries=max_tries),
    )
