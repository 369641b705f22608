from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from olsgls.exceptions import DimensionMismatchError, NonFiniteInputError, NotSupportedError

ArrayLike = Union[torch.Tensor, np.ndarray, Sequence[Any]]

# No batched factorization kernels for these.
_HALF_DTYPES = (torch.float16, torch.bfloat16)


def _is_pandas_df(x: Any) -> bool:
    try:
        import pandas as pd  # type: ignore
        return isinstance(x, pd.DataFrame)
    except ImportError:
        return False


def _is_pandas_series(x: Any) -> bool:
    try:
        import pandas as pd  # type: ignore
        return isinstance(x, pd.Series)
    except ImportError:
        return False


def require_pandas() -> Any:
    try:
        import pandas as pd
    except ImportError as e:
        raise NotSupportedError(
            "pandas is required for DataFrame/Series support. "
            "Install with: pip install pandas"
        ) from e
    return pd


def as_torch(
    x: Any,
    *,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> torch.Tensor:
    """
    Convert common array-likes to a floating torch.Tensor.
    Supports torch, numpy, lists, and pandas (if installed).

    Integer and boolean inputs are promoted to float64 when no dtype is given.
    """
    if _is_pandas_df(x) or _is_pandas_series(x):
        x = x.to_numpy()  # type: ignore[attr-defined]

    t = x if isinstance(x, torch.Tensor) else torch.as_tensor(x)

    if dtype is None and not torch.is_floating_point(t):
        dtype = torch.float64
    if dtype is not None:
        t = t.to(dtype=dtype)
    if t.dtype in _HALF_DTYPES:
        raise NotSupportedError(
            f"dtype {t.dtype} is not supported by the least-squares solvers. "
            "Use float32 or float64."
        )
    if device is not None:
        t = t.to(device=device)
    return t


def check_finite(t: torch.Tensor, name: str) -> None:
    if not torch.isfinite(t).all():
        raise NonFiniteInputError(f"{name} contains NaN or inf")


def as_design_response(
    X: Any,
    Y: Any,
    *,
    check_finite_inputs: bool = True,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> Tuple[torch.Tensor, torch.Tensor, bool, Optional[list[str]], Optional[list[str]]]:
    """
    Standardize inputs to:
      X: (n,p) or (R,n,p)
      Y: (n,k) or (R,n,k)

    A vector response (n,) / (R,n) gets a trailing column axis; the returned
    flag tells the caller to drop it again from the coefficients.

    Also returns param_names / response_names when X / Y are single-sample
    pandas objects.
    """
    param_names: Optional[list[str]] = None
    response_names: Optional[list[str]] = None

    if _is_pandas_df(X):
        param_names = [str(c) for c in X.columns]  # type: ignore[attr-defined]
        X = X.to_numpy()  # type: ignore[attr-defined]

    if _is_pandas_df(Y):
        response_names = [str(c) for c in Y.columns]  # type: ignore[attr-defined]
        Y = Y.to_numpy()  # type: ignore[attr-defined]
    elif _is_pandas_series(Y):
        if Y.name is not None:  # type: ignore[attr-defined]
            response_names = [str(Y.name)]  # type: ignore[attr-defined]
        Y = Y.to_numpy()  # type: ignore[attr-defined]

    Xt = as_torch(X, dtype=dtype, device=device)
    Yt = as_torch(Y, dtype=dtype if dtype is not None else Xt.dtype, device=Xt.device)

    if Xt.ndim not in (2, 3):
        raise DimensionMismatchError(f"X must be (n,p) or (R,n,p). Got {tuple(Xt.shape)}")

    vector_response = Yt.ndim == Xt.ndim - 1
    if vector_response:
        Yt = Yt.unsqueeze(-1)
    if Yt.ndim != Xt.ndim:
        raise DimensionMismatchError(
            f"Y must have {Xt.ndim - 1} or {Xt.ndim} dims to match X {tuple(Xt.shape)}. Got {tuple(Yt.shape)}"
        )
    if Xt.shape[:-1] != Yt.shape[:-1]:
        raise DimensionMismatchError(f"Batch/obs dims mismatch: X {tuple(Xt.shape)}, Y {tuple(Yt.shape)}")

    n, p = Xt.shape[-2], Xt.shape[-1]
    if n == 0 or p == 0 or Yt.shape[-1] == 0:
        raise DimensionMismatchError(f"Empty design or response: X {tuple(Xt.shape)}, Y {tuple(Yt.shape)}")

    if check_finite_inputs:
        check_finite(Xt, "X")
        check_finite(Yt, "Y")

    if Xt.ndim == 3:
        param_names = None
        response_names = None
    if param_names is not None and len(param_names) != p:
        param_names = None

    return Xt, Yt, vector_response, param_names, response_names
