from __future__ import annotations

from typing import Callable

import torch

from olsgls.exceptions import NotSupportedError

# fn(X, Y, gram) -> B  with X:(...,n,p), Y:(...,n,k), gram:(...,p,p), B:(...,p,k)
SolveFn = Callable[[torch.Tensor, torch.Tensor, torch.Tensor], torch.Tensor]

_REGISTRY: dict[str, SolveFn] = {}


def canonical_name(name: str) -> str:
    """Registry key for `name`: stripped and lower-cased."""
    return str(name).strip().lower()


def register_solve_method(name: str, fn: SolveFn | None = None):
    """
    Register a least-squares solve method under `name`.

    Works as a plain call, register_solve_method("name", fn), or as a
    decorator, @register_solve_method("name"). Re-registering a name
    replaces the previous method.
    """
    key = canonical_name(name)
    if not key:
        raise ValueError("Solve method name must be non-empty")

    def _register(f: SolveFn) -> SolveFn:
        _REGISTRY[key] = f
        return f

    if fn is None:
        return _register
    return _register(fn)


def list_solve_methods() -> list[str]:
    return sorted(_REGISTRY.keys())


def get_solve_method(name: str) -> SolveFn:
    key = canonical_name(name)
    if key not in _REGISTRY:
        raise NotSupportedError(
            f"Unknown solve_method {name!r}. Available: {', '.join(list_solve_methods())}"
        )
    return _REGISTRY[key]
