from olsgls.models.gls import fit_gls, solve_gls
from olsgls.models.ols import fit_ols, solve_ols

__all__ = ["solve_ols", "solve_gls", "fit_ols", "fit_gls"]
