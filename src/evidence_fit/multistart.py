"""Multi-start maximum-likelihood driver.

Many independent local searches from random starting points, reduced to the
single best one. Local searches on periodic and partitioned models often end
in poor local minima; restarts trade compute for a better chance of finding
the global one.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Union
from warnings import warn

import numpy as np

from .backends import backend_name, get_backend
from .backends.common import BackendResult
from .errors import ConfigurationError
from .inference import SENTINEL_DEVIANCE, Feasible
from .run import FitResult, Trial
from .util import resolve_workers

if TYPE_CHECKING:  # pragma: no cover
    from .data import Dataset
    from .model import Model

log = logging.getLogger(__name__)

DEFAULT_RESTARTS = 20


def _check_restarts(restarts: Any) -> int:
    if isinstance(restarts, bool) or not isinstance(restarts, (int, np.integer)):
        raise ConfigurationError(f"restarts must be an integer, got {restarts!r}.")
    if int(restarts) < 1:
        raise ConfigurationError(f"restarts must be >= 1, got {restarts!r}.")
    return int(restarts)


def _draw_starts(
    model: "Model",
    restarts: int,
    rng: np.random.Generator,
    starts: Optional[Sequence[Mapping[str, float]]],
) -> List[np.ndarray]:
    """Starting points in trial order: explicit ``starts`` first, then samples."""
    out: List[np.ndarray] = []
    for s in list(starts or [])[:restarts]:
        out.append(model.vector(s))
    while len(out) < restarts:
        out.append(model.vector(model.sample_initial_guess(rng)))
    return out


def _one_trial(
    backend: Any,
    objective: Any,
    p0: np.ndarray,
    options: Dict[str, Any],
) -> BackendResult:
    r = backend.minimize(objective=objective, p0=np.array(p0, dtype=float), options=options)
    value = float(r.value)
    if not np.isfinite(value):
        value = SENTINEL_DEVIANCE
    return BackendResult(
        theta=np.asarray(r.theta, dtype=float),
        value=value,
        success=bool(r.success),
        message=str(r.message),
        stats=dict(r.stats or {}),
    )


def run(
    restarts: int,
    model: "Model",
    dataset: "Dataset",
    *,
    backend: Any = "scipy.minimize",
    backend_options: Optional[Dict[str, Any]] = None,
    rng: Optional[np.random.Generator] = None,
    workers: Optional[Union[int, str]] = None,
    patience: Optional[int] = None,
    min_improvement: float = 0.0,
    starts: Optional[Sequence[Mapping[str, float]]] = None,
) -> FitResult:
    """Run ``restarts`` independent local searches and keep the best.

    Selection is by minimum deviance; ties go to the earliest trial. All
    starting points are drawn from ``rng`` before any search runs, so a seeded
    generator gives the same result sequentially or with ``workers`` threads.

    Options:
    - backend: registry name or an object with ``minimize(objective=, p0=, options=)``
    - backend_options: dict forwarded to the backend (e.g. method, options)
    - workers: thread count, or "auto" for one per CPU
    - patience: stop after this many consecutive trials improve the best
      deviance by no more than ``min_improvement`` (sequential only)
    - starts: explicit starting points used before random samples
    """
    n = _check_restarts(restarts)
    if len(dataset) == 0:
        raise ConfigurationError("Cannot fit a model to an empty dataset.")
    nworkers = resolve_workers(workers)
    if patience is not None:
        if int(patience) < 1:
            raise ConfigurationError(f"patience must be >= 1, got {patience!r}.")
        if nworkers > 1:
            raise ConfigurationError("Early stopping (patience) requires workers=1.")

    if rng is None:
        rng = np.random.default_rng()
    options = dict(backend_options or {})
    impl = get_backend(backend)
    objective = model.objective(dataset)
    p0s = _draw_starts(model, n, rng, starts)

    results: List[BackendResult] = []
    if nworkers > 1:
        with ThreadPoolExecutor(max_workers=nworkers) as pool:
            # map() yields in submission order, so the reduction below is unchanged
            results = list(pool.map(lambda p0: _one_trial(impl, objective, p0, options), p0s))
    else:
        best_value = np.inf
        stale = 0
        for p0 in p0s:
            r = _one_trial(impl, objective, p0, options)
            results.append(r)
            if patience is None:
                continue
            if r.value < best_value - float(min_improvement):
                stale = 0
            else:
                stale += 1
            best_value = min(best_value, r.value)
            if stale >= int(patience):
                log.debug(
                    "Early stop",
                    extra={"model": model.name, "restarts_evaluated": len(results)},
                )
                break

    trials = []
    best_index = 0
    for i, r in enumerate(results):
        trials.append(
            Trial(
                start=model.unpack(p0s[i]),
                params=model.unpack(r.theta),
                deviance=r.value,
                converged=r.success,
                message=r.message,
            )
        )
        log.debug(
            "Trial finished",
            extra={
                "model": model.name,
                "trial": i,
                "deviance": r.value,
                "converged": r.success,
            },
        )
        if r.value < results[best_index].value:
            best_index = i

    best = results[best_index]
    best_params = model.unpack(best.theta)
    feasible = isinstance(model.loglike(best_params, dataset), Feasible)
    if not feasible:
        log.warning(
            "No restart reached a feasible region",
            extra={"model": model.name, "restarts_evaluated": len(results)},
        )
        warn(
            f"{model.name}: no restart found a feasible parameter point; "
            "increase restarts or widen guess ranges.",
            UserWarning,
        )

    log.debug(
        "Multi-start fit finished",
        extra={
            "model": model.name,
            "restarts_evaluated": len(results),
            "deviance": best.value,
            "best_index": best_index,
        },
    )

    return FitResult(
        params=best_params,
        deviance=best.value,
        restarts_evaluated=len(results),
        model=model,
        dataset=dataset,
        n_obs=len(dataset),
        n_params=model.parameter_count,
        converged=best.success,
        backend=backend_name(backend),
        trials=tuple(trials),
        best_index=best_index,
        feasible=feasible,
    )
