# GLS with AR(1) errors, diagonal heteroskedasticity, and the identity check (GLS == OLS)
import torch

from olsgls import solve_gls, solve_ols

torch.set_default_dtype(torch.float64)
torch.manual_seed(1)

R, n, k = 200, 150, 3
X = torch.randn(R, n, k)
B_true = torch.tensor([1.0, 0.5, -0.2])

# AR(1) covariance: Sigma_ij = rho^|i-j| / (1 - rho^2)
rho = 0.6
idx = torch.arange(n)
Sigma = rho ** (idx[:, None] - idx[None, :]).abs() / (1.0 - rho**2)
L = torch.linalg.cholesky(Sigma)
u = (L @ torch.randn(R, n, 1)).squeeze(-1)
y = X @ B_true + u

Sigma_inv = torch.cholesky_inverse(L)
B_gls = solve_gls(X, y, Sigma_inv)
B_ols = solve_ols(X, y)
print("sd GLS:", B_gls.std(dim=0))
print("sd OLS:", B_ols.std(dim=0))

# Diagonal precision: no n x n matrix needed
variances = (0.5 + torch.linspace(0.2, 2.0, n)) ** 2
y_het = X @ B_true + torch.randn(R, n) * variances.sqrt()
B_wls = solve_gls(X, y_het, 1.0 / variances)
print("mean diagonal-GLS estimate:", B_wls.mean(dim=0))

print("max |GLS(I) - OLS|:", (solve_gls(X, y, torch.eye(n)) - B_ols).abs().max().item())
