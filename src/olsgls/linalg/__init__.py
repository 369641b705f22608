"""
olsgls.linalg

Low-level linear algebra for batched least squares.

Conventions
-----------
- Replication axis: R (optional)
- Observation axis: n
- Parameter axis: p
- Response axis: k

Shapes
------
- X: (R, n, p) or (n, p)
- Y: (R, n, k) or (n, k)
"""
from .chol import safe_cholesky, chol_solve
from .registry import canonical_name, get_solve_method, list_solve_methods, register_solve_method
from .solve import SolveMethod, check_design, default_rcond, design_rcond, gram, solve_ls

__all__ = [
    "SolveMethod",
    "solve_ls",
    "gram",
    "design_rcond",
    "check_design",
    "default_rcond",
    "safe_cholesky",
    "chol_solve",
    "canonical_name",
    "register_solve_method",
    "get_solve_method",
    "list_solve_methods",
]
