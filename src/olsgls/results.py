from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import torch

from olsgls.exceptions import DimensionMismatchError, NotSupportedError
from olsgls.typing import as_torch, require_pandas


@dataclass(frozen=True)
class LeastSquaresResult:
    """
    Coefficients of an OLS / GLS fit plus light diagnostics.

    Shapes follow the inputs:
      params : (p,k) / (p,) for a vector response, batched (R,p,k) / (R,p)
      ssr    : (k,) / () , batched (R,k) / (R,)
      fitted, resid : shaped like Y, None unless stored

    For GLS, `ssr` is the generalized criterion e'Se and `fitted` / `resid`
    are in the original (unwhitened) space.
    """

    params: torch.Tensor
    ssr: torch.Tensor
    rcond: float
    nobs: int
    solve_method: str
    model_name: str = "OLS"
    fitted: Optional[torch.Tensor] = None
    resid: Optional[torch.Tensor] = None
    param_names: Optional[list[str]] = None
    response_names: Optional[list[str]] = None
    vector_response: bool = False

    @property
    def batched(self) -> bool:
        return self.params.ndim == (2 if self.vector_response else 3)

    @property
    def R(self) -> int:
        return int(self.params.shape[0]) if self.batched else 1

    @property
    def k(self) -> int:
        """Number of coefficients per response."""
        return int(self.params.shape[-1] if self.vector_response else self.params.shape[-2])

    def predict(self, X_new: Any) -> torch.Tensor:
        """Fitted values X_new @ params. X_new: (m,p) or (R,m,p)."""
        X = as_torch(X_new, dtype=self.params.dtype, device=self.params.device)
        if X.shape[-1] != self.k:
            raise DimensionMismatchError(f"X_new must have p={self.k} columns. Got {tuple(X.shape)}")
        if self.vector_response:
            return (X @ self.params.unsqueeze(-1)).squeeze(-1)
        return X @ self.params

    def to_frame(self) -> Any:
        """Coefficients as a pandas.DataFrame (rows: parameters, columns: responses)."""
        if self.batched:
            raise NotSupportedError("to_frame() is only available for single-sample fits.")
        pd = require_pandas()

        values = self.params.detach().cpu().numpy()
        if self.vector_response:
            values = values.reshape(-1, 1)
        index = self.param_names or [f"x{i}" for i in range(values.shape[0])]
        columns = self.response_names or [f"y{j}" for j in range(values.shape[1])]
        return pd.DataFrame(values, index=index, columns=columns)

    def __repr__(self) -> str:
        return (
            f"LeastSquaresResult(model={self.model_name}, method={self.solve_method}, "
            f"R={self.R}, nobs={self.nobs}, k={self.k}, rcond={self.rcond:.3e})"
        )
