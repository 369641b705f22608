"""
Basic OLS example.

This script:
- Creates a batch of regression datasets (R replications)
- Solves OLS for all of them in one call
- Compares the default Cholesky solve with QR
"""

import torch

from olsgls import fit_ols, solve_ols


def main() -> None:
    torch.set_default_dtype(torch.float64)
    torch.manual_seed(0)

    R, n = 100, 200
    X = torch.randn(R, n, 3)
    X[:, :, 0] = 1.0  # constant

    B_true = torch.tensor([1.0, 0.8, -0.2])
    y = X @ B_true + 0.5 * torch.randn(R, n)  # (R,n)

    B = solve_ols(X, y)  # (R,3)
    print("mean estimate:", B.mean(dim=0))
    print("max |chol - qr|:", (B - solve_ols(X, y, solve_method="qr")).abs().max().item())

    res = fit_ols(X[0], y[0], store_resid=True)
    print(res)
    print("ssr (replication 0):", res.ssr.item())


if __name__ == "__main__":
    main()
