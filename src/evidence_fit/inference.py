from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import numpy as np
from scipy.stats import norm

__all__ = [
    "SENTINEL_DEVIANCE",
    "MIN_VARIANCE",
    "Feasible",
    "Infeasible",
    "LogLikelihood",
    "combine",
    "gaussian_loglike",
    "to_deviance",
]

# Deviance reported to the minimizer wherever no likelihood is defined.
SENTINEL_DEVIANCE = 1e7

# Lower-bound guard on every variance term.
MIN_VARIANCE = 1e-8


@dataclass(frozen=True)
class Feasible:
    """A finite log-likelihood."""

    value: float


@dataclass(frozen=True)
class Infeasible:
    """No likelihood is defined at this parameter point."""

    reason: str


LogLikelihood = Union[Feasible, Infeasible]


def combine(*parts: LogLikelihood) -> LogLikelihood:
    """Sum feasible log-likelihoods; the first infeasible part wins."""
    total = 0.0
    for p in parts:
        if isinstance(p, Infeasible):
            return p
        total += float(p.value)
    return Feasible(total)


def to_deviance(ll: LogLikelihood) -> float:
    """Convert a tagged log-likelihood into the deviance the minimizer sees."""
    if isinstance(ll, Infeasible):
        return SENTINEL_DEVIANCE
    dev = -2.0 * float(ll.value)
    if not np.isfinite(dev):
        return SENTINEL_DEVIANCE
    return dev


def gaussian_loglike(y: Any, mean: Any, var: Any) -> LogLikelihood:
    """Sum of Normal(mean, var) log-densities of ``y``.

    ``mean`` and ``var`` broadcast against ``y``. Any variance at or below
    MIN_VARIANCE, non-finite mean, or non-finite density is infeasible.
    """
    y = np.asarray(y, dtype=float)
    with np.errstate(all="ignore"):
        mean = np.broadcast_to(np.asarray(mean, dtype=float), y.shape)
        var = np.broadcast_to(np.asarray(var, dtype=float), y.shape)
        if y.size == 0:
            return Feasible(0.0)
        if not np.all(np.isfinite(var)) or np.any(var <= MIN_VARIANCE):
            return Infeasible("non-positive variance")
        if not np.all(np.isfinite(mean)):
            return Infeasible("non-finite mean")
        logpdf = norm.logpdf(y, loc=mean, scale=np.sqrt(var))
        total = float(np.sum(logpdf))
    if not np.isfinite(total):
        return Infeasible("zero-density observation")
    return Feasible(total)
