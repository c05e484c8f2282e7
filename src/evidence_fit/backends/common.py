from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Protocol

import numpy as np

Objective = Callable[[np.ndarray], float]


@dataclass(frozen=True)
class BackendResult:
    """Normalized result returned by any local minimizer backend."""

    theta: np.ndarray  # free parameters, shape (P,)
    value: float  # objective at theta
    success: bool = True
    message: str = ""
    stats: Dict[str, Any] = field(default_factory=dict)


class Backend(Protocol):
    """Backend protocol: one local search from one starting point.

    Backends must treat large sentinel objective values as ordinary values.
    """

    name: str

    def minimize(
        self,
        *,
        objective: Objective,
        p0: np.ndarray,
        options: dict[str, Any],
    ) -> BackendResult: ...
