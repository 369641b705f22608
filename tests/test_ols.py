import pytest
import torch

from conftest import make_design
from olsgls import (
    DimensionMismatchError,
    NonFiniteInputError,
    NotSupportedError,
    SingularMatrixError,
    list_solve_methods,
    solve_ols,
)


def test_ols_small_example_intercept_and_slope(torch_dtype):
    X = torch.tensor([[1.0, 1.0], [1.0, 2.0], [1.0, 3.0]], dtype=torch_dtype)
    Y = torch.tensor([[1.0], [2.0], [3.0]], dtype=torch_dtype)

    B = solve_ols(X, Y)

    assert B.shape == (2, 1)
    expected = torch.tensor([[0.0], [1.0]], dtype=torch_dtype)
    assert torch.max(torch.abs(B - expected)).item() < 1e-6


def test_ols_matches_closed_form(torch_dtype):
    X, _, Y = make_design(1, 60, 4, k=2, seed=7, dtype=torch_dtype)
    X, Y = X[0], Y[0]

    B = solve_ols(X, Y)

    B_direct = torch.linalg.inv(X.T @ X) @ X.T @ Y
    assert torch.allclose(B, B_direct, rtol=1e-8, atol=1e-12)


@pytest.mark.parametrize("method", ["cholesky", "ldl", "solve", "inverse", "qr"])
def test_ols_solve_methods_agree(method, torch_dtype):
    X, _, Y = make_design(3, 50, 4, k=2, seed=11, dtype=torch_dtype)

    B_ref = solve_ols(X, Y, solve_method="cholesky")
    B = solve_ols(X, Y, solve_method=method)

    assert torch.allclose(B, B_ref, rtol=1e-9, atol=1e-10)


def test_ols_builtin_methods_registered():
    assert set(list_solve_methods()) >= {"cholesky", "ldl", "solve", "inverse", "qr"}


def test_ols_vector_response_returns_vector(torch_dtype):
    X, _, Y = make_design(1, 30, 3, dtype=torch_dtype)
    y = Y[0, :, 0]  # (n,)

    b = solve_ols(X[0], y)
    B = solve_ols(X[0], y.unsqueeze(-1))

    assert b.shape == (3,)
    assert torch.allclose(b, B[:, 0])


def test_ols_batched_equals_per_replication(torch_dtype):
    R, n, p, k = 4, 25, 3, 2
    X, _, Y = make_design(R, n, p, k=k, seed=3, dtype=torch_dtype)

    B = solve_ols(X, Y)
    assert B.shape == (R, p, k)

    for r in range(R):
        assert torch.allclose(B[r], solve_ols(X[r], Y[r]), rtol=1e-10, atol=1e-12)

    # (R,n) vector responses
    b = solve_ols(X, Y[..., 0])
    assert b.shape == (R, p)
    assert torch.allclose(b, B[..., 0], rtol=1e-10, atol=1e-12)


def test_ols_multiple_responses_are_solved_columnwise(torch_dtype):
    X, _, Y = make_design(1, 40, 3, k=3, seed=5, dtype=torch_dtype)
    X, Y = X[0], Y[0]

    B = solve_ols(X, Y)
    for j in range(3):
        assert torch.allclose(B[:, j], solve_ols(X, Y[:, j]), rtol=1e-10, atol=1e-12)


def test_ols_scale_invariance(torch_dtype):
    X, _, Y = make_design(2, 35, 3, k=2, seed=9, dtype=torch_dtype)
    c = -3.5

    assert torch.allclose(solve_ols(X, c * Y), c * solve_ols(X, Y), rtol=1e-9, atol=1e-12)


def test_ols_does_not_mutate_or_alias_inputs(torch_dtype):
    X, _, Y = make_design(1, 20, 3, k=3, seed=1, dtype=torch_dtype)
    X, Y = X[0], Y[0]
    X0, Y0 = X.clone(), Y.clone()

    B = solve_ols(X, Y)
    B += 1.0

    assert torch.equal(X, X0)
    assert torch.equal(Y, Y0)


def test_ols_accepts_lists_and_integer_inputs():
    X = [[1, 1], [1, 2], [1, 3], [1, 4]]
    y = [2, 4, 6, 8]

    b = solve_ols(X, y)

    assert b.dtype == torch.float64
    assert torch.allclose(b, torch.tensor([0.0, 2.0], dtype=torch.float64), atol=1e-10)


def test_ols_row_mismatch_raises(torch_dtype):
    X = torch.randn(10, 3, dtype=torch_dtype)
    Y = torch.randn(9, 2, dtype=torch_dtype)

    with pytest.raises(DimensionMismatchError):
        solve_ols(X, Y)

    # also a ValueError for callers that only know builtins
    with pytest.raises(ValueError):
        solve_ols(X, Y)


def test_ols_batch_mismatch_raises(torch_dtype):
    X = torch.randn(3, 10, 2, dtype=torch_dtype)
    Y = torch.randn(4, 10, dtype=torch_dtype)

    with pytest.raises(DimensionMismatchError):
        solve_ols(X, Y)


def test_ols_rejects_bad_ranks(torch_dtype):
    with pytest.raises(DimensionMismatchError):
        solve_ols(torch.randn(10, dtype=torch_dtype), torch.randn(10, dtype=torch_dtype))

    with pytest.raises(DimensionMismatchError):
        solve_ols(torch.randn(10, 2, dtype=torch_dtype), torch.randn(3, 10, 2, dtype=torch_dtype))


@pytest.mark.parametrize("method", ["cholesky", "ldl", "solve", "inverse", "qr"])
def test_ols_duplicated_column_raises_singular(method, torch_dtype):
    g = torch.Generator().manual_seed(0)
    x = torch.randn(30, generator=g, dtype=torch_dtype)
    X = torch.stack([torch.ones(30, dtype=torch_dtype), x, x], dim=1)
    Y = torch.randn(30, 1, generator=g, dtype=torch_dtype)

    with pytest.raises(SingularMatrixError) as exc:
        solve_ols(X, Y, solve_method=method)

    assert exc.value.matrix_name == "X'X"
    assert exc.value.rcond is not None


def test_ols_more_predictors_than_observations_raises(torch_dtype):
    X = torch.randn(3, 5, dtype=torch_dtype)
    Y = torch.randn(3, 1, dtype=torch_dtype)

    with pytest.raises(SingularMatrixError):
        solve_ols(X, Y)


def test_ols_singular_in_one_replication_raises(torch_dtype):
    X, _, Y = make_design(3, 20, 3, dtype=torch_dtype)
    X[1, :, 2] = X[1, :, 1]

    with pytest.raises(SingularMatrixError, match="1 of 3"):
        solve_ols(X, Y)


def _ill_conditioned_design(n: int, s_min: float, dtype) -> torch.Tensor:
    g = torch.Generator().manual_seed(42)
    Q, _ = torch.linalg.qr(torch.randn(n, 2, generator=g, dtype=dtype))
    return Q @ torch.diag(torch.tensor([1.0, s_min], dtype=dtype))


def test_ols_ill_conditioned_warns(torch_dtype):
    X = _ill_conditioned_design(40, 10 ** -5.5, torch_dtype)  # rcond(X'X) ~ 1e-11
    Y = torch.randn(40, 1, dtype=torch_dtype)

    with pytest.warns(RuntimeWarning, match="ill-conditioned"):
        B = solve_ols(X, Y)
    assert torch.isfinite(B).all()


def test_ols_custom_rcond_threshold(torch_dtype):
    X = _ill_conditioned_design(40, 1e-3, torch_dtype)  # rcond(X'X) ~ 1e-6
    Y = torch.randn(40, 1, dtype=torch_dtype)

    solve_ols(X, Y)
    with pytest.raises(SingularMatrixError):
        solve_ols(X, Y, rcond=1e-4)


def test_ols_non_finite_inputs_raise(torch_dtype):
    X = torch.randn(10, 2, dtype=torch_dtype)
    Y = torch.randn(10, 1, dtype=torch_dtype)
    X[3, 1] = float("nan")

    with pytest.raises(NonFiniteInputError):
        solve_ols(X, Y)

    Y2 = torch.randn(10, 1, dtype=torch_dtype)
    Y2[0, 0] = float("inf")
    with pytest.raises(NonFiniteInputError):
        solve_ols(torch.randn(10, 2, dtype=torch_dtype), Y2)


def test_ols_float32_keeps_dtype():
    X, _, Y = make_design(1, 50, 3, dtype=torch.float32)

    B = solve_ols(X[0], Y[0])

    assert B.dtype == torch.float32
    B64 = solve_ols(X[0].double(), Y[0].double())
    assert torch.allclose(B.double(), B64, rtol=1e-4, atol=1e-5)


def _float32_line(n: int = 101) -> tuple[torch.Tensor, torch.Tensor]:
    x = torch.linspace(0.0, 100.0, n, dtype=torch.float32)
    X = torch.stack([torch.ones(n, dtype=torch.float32), x], dim=1)
    return X, 2.0 + 0.5 * x


@pytest.mark.parametrize("method", ["cholesky", "ldl", "solve", "inverse", "qr"])
def test_ols_float32_moderately_scaled_predictor(method):
    X, y = _float32_line()

    B = solve_ols(X, y, solve_method=method)

    assert B.dtype == torch.float32
    assert torch.allclose(B, torch.tensor([2.0, 0.5]), atol=1e-2)


def test_ols_float32_qr_is_accurate_on_scaled_predictor():
    X, y = _float32_line()

    B = solve_ols(X, y, solve_method="qr")

    assert torch.allclose(B, torch.tensor([2.0, 0.5]), atol=1e-4)


def test_ols_float32_duplicated_column_still_raises():
    X, y = _float32_line()
    X = torch.cat([X, X[:, 1:]], dim=1)

    with pytest.raises(SingularMatrixError):
        solve_ols(X, y)
    with pytest.raises(SingularMatrixError):
        solve_ols(X, y, solve_method="qr")


@pytest.mark.parametrize("dtype", [torch.float16, torch.bfloat16])
def test_ols_half_precision_raises_not_supported(dtype):
    X, y = _float32_line(20)

    with pytest.raises(NotSupportedError, match="float32 or float64"):
        solve_ols(X.to(dtype), y.to(dtype))

    with pytest.raises(NotSupportedError):
        solve_ols(X, y, dtype=dtype)
