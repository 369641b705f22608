import torch
import pytest


@pytest.fixture(scope="session")
def torch_dtype():
    # Use float64 in tests for numerical stability.
    return torch.float64


def make_design(R: int, n: int, p: int, k: int = 1, *, seed: int = 123, dtype=torch.float64):
    """
    Deterministic-ish design generator with full column rank (almost surely).
    Returns:
      X : (R,n,p) with a constant in column 0
      B_true : (p,k)
      Y : (R,n,k)
    """
    g = torch.Generator().manual_seed(seed)
    X = torch.empty((R, n, p), dtype=dtype)
    X[:, :, 0] = 1.0
    if p > 1:
        X[:, :, 1:] = torch.randn((R, n, p - 1), generator=g, dtype=dtype)

    B_true = torch.arange(1, p * k + 1, dtype=dtype).view(p, k)
    B_true = B_true / B_true.abs().sum()

    eps = 0.1 * torch.randn((R, n, k), generator=g, dtype=dtype)
    Y = X @ B_true + eps
    return X, B_true, Y


def make_spd(n: int, *, seed: int = 0, dtype=torch.float64) -> torch.Tensor:
    g = torch.Generator().manual_seed(seed)
    A = torch.randn(n, n, generator=g, dtype=dtype)
    return A @ A.T + 0.5 * torch.eye(n, dtype=dtype)
