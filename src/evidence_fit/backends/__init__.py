"""Local minimizer backends + registry."""

from __future__ import annotations

from typing import Any, Dict

from ..errors import ConfigurationError
from .common import Backend, BackendResult
from .scipy_minimize import ScipyMinimizeBackend

_BACKENDS: Dict[str, Backend] = {
    "scipy.minimize": ScipyMinimizeBackend(),
}


def get_backend(name: Any) -> Backend:
    """Return a backend by name, or pass through an object with ``minimize``."""
    if not isinstance(name, str):
        if callable(getattr(name, "minimize", None)):
            return name
        raise ConfigurationError(
            f"backend must be a name or an object with a minimize() method, got {name!r}."
        )
    try:
        return _BACKENDS[name]
    except KeyError as e:
        raise ConfigurationError(
            f"Unknown backend {name!r}. Available: {tuple(_BACKENDS.keys())}"
        ) from e


def backend_name(backend: Any) -> str:
    return backend if isinstance(backend, str) else str(getattr(backend, "name", type(backend).__name__))


AVAILABLE_BACKENDS = tuple(_BACKENDS.keys())

__all__ = ["Backend", "BackendResult", "get_backend", "backend_name", "AVAILABLE_BACKENDS"]
