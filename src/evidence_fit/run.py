from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from .errors import ConfigurationError


@dataclass(frozen=True)
class Trial:
    """One local search of a multi-start run."""

    start: Mapping[str, float]
    params: Mapping[str, float]
    deviance: float
    converged: bool = True
    message: str = ""


@dataclass(frozen=True)
class FitResult:
    """Best result of a multi-start fit.

    ``deviance`` is the minimum over every restart evaluated, so it never
    increases as restarts accumulate (see :meth:`deviance_trace`).
    """

    params: Mapping[str, float]
    deviance: float
    restarts_evaluated: int
    model: Any = None  # Model
    dataset: Any = field(default=None, repr=False)  # Dataset
    n_obs: int = 0
    n_params: int = 0
    converged: bool = True
    backend: str = ""
    trials: Tuple[Trial, ...] = field(default=(), repr=False)
    best_index: int = 0
    # model.loglike(params) is Feasible, whatever the size of the deviance
    feasible: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def model_name(self) -> str:
        return str(getattr(self.model, "name", self.model))

    @property
    def free_names(self) -> Tuple[str, ...]:
        return tuple(self.params.keys())

    @property
    def log_likelihood(self) -> float:
        return -0.5 * float(self.deviance)

    @property
    def bic(self) -> float:
        """deviance + ln(n) * k"""
        return float(self.deviance + np.log(self.n_obs) * self.n_params)

    @property
    def aic(self) -> float:
        return float(self.deviance + 2.0 * self.n_params)

    def deviance_trace(self) -> np.ndarray:
        """Best deviance after each restart (running minimum)."""
        devs = np.asarray([t.deviance for t in self.trials], dtype=float)
        if devs.size == 0:
            return devs
        return np.minimum.accumulate(devs)

    def predict(self, dataset: Optional[Any] = None) -> np.ndarray:
        """Fitted per-row mean on ``dataset`` (default: the fitted dataset)."""
        if self.model is None:
            raise ConfigurationError("FitResult has no model attached.")
        ds = self.dataset if dataset is None else dataset
        return self.model.predict(self.params, ds)

    def merge(self, other: "FitResult") -> "FitResult":
        """Combine the restarts of two fits of the same model and dataset.

        The best trial keeps first-encountered precedence: ``self`` before ``other``.
        """
        if self.model_name != other.model_name:
            raise ConfigurationError(
                f"Cannot merge fits of different models: {self.model_name!r} vs {other.model_name!r}."
            )
        if self.n_obs != other.n_obs:
            raise ConfigurationError("Cannot merge fits on datasets of different length.")
        take_other = other.deviance < self.deviance
        best = other if take_other else self
        return FitResult(
            params=best.params,
            deviance=best.deviance,
            restarts_evaluated=self.restarts_evaluated + other.restarts_evaluated,
            model=self.model,
            dataset=self.dataset,
            n_obs=self.n_obs,
            n_params=self.n_params,
            converged=best.converged,
            backend=best.backend,
            trials=self.trials + other.trials,
            best_index=(len(self.trials) + other.best_index) if take_other else self.best_index,
            feasible=best.feasible,
        )

    def summary(self, digits: int = 4) -> str:
        """Return a human-readable summary string for the fit."""
        lines = [
            f"FitResult(model={self.model_name!r}, backend={self.backend!r}, "
            f"restarts={self.restarts_evaluated})"
        ]
        for name, v in self.params.items():
            lines.append(f"  {name:>12s}: {float(v):.{digits}g}")
        tag = "" if self.feasible else " (infeasible)"
        lines.append(f"  {'deviance':>12s}: {self.deviance:.{digits}g}{tag}")
        lines.append(f"  {'BIC':>12s}: {self.bic:.{digits}g}")
        if not self.converged:
            lines.append("  best restart did not report convergence")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view for reporting collaborators."""
        return {
            "model": self.model_name,
            "params": dict(self.params),
            "deviance": float(self.deviance),
            "bic": self.bic,
            "aic": self.aic,
            "n_obs": int(self.n_obs),
            "n_params": int(self.n_params),
            "restarts_evaluated": int(self.restarts_evaluated),
            "converged": bool(self.converged),
            "feasible": bool(self.feasible),
        }
