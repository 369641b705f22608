from __future__ import annotations

import torch

from olsgls.exceptions import DimensionMismatchError, SingularMatrixError


def safe_cholesky(
    A: torch.Tensor,
    *,
    jitter: float = 0.0,
    max_tries: int = 1,
    name: str = "A",
) -> torch.Tensor:
    """
    Batched lower Cholesky factor with optional diagonal jitter escalation.

    Try t adds jitter * 10**t * I. Raises SingularMatrixError when every
    attempt fails for at least one matrix in the batch.
    """
    if A.ndim < 2 or A.shape[-1] != A.shape[-2]:
        raise DimensionMismatchError(f"{name} must be (...,n,n). Got {tuple(A.shape)}")

    max_tries = max(1, int(max_tries))

    A0 = 0.5 * (A + A.transpose(-1, -2))
    eye = torch.eye(A0.shape[-1], device=A0.device, dtype=A0.dtype)

    for t in range(max_tries):
        Aj = A0 + (jitter * (10.0**t)) * eye if jitter > 0.0 else A0
        L, info = torch.linalg.cholesky_ex(Aj)
        if not torch.any(info != 0):
            return L

    raise SingularMatrixError(
        f"{name} is not positive definite; Cholesky factorization failed "
        f"after {max_tries} attempt(s) (jitter={jitter}).",
        matrix_name=name,
    )


def chol_solve(B: torch.Tensor, L: torch.Tensor) -> torch.Tensor:
    return torch.cholesky_solve(B, L)
