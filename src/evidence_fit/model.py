from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import numpy as np

from .data import Dataset
from .errors import ConfigurationError
from .inference import (
    MIN_VARIANCE,
    Feasible,
    Infeasible,
    LogLikelihood,
    combine,
    gaussian_loglike,
    to_deviance,
)
from .multistart import DEFAULT_RESTARTS, run
from .params import ParameterSpec
from .run import FitResult
from .util import infer_param_names, is_real_number

log = logging.getLogger(__name__)

# func(dataset, *params) -> (per-row mean, per-row variance)
MomentFunction = Callable[..., Tuple[Any, Any]]
# groups(dataset) -> row masks whose log-likelihoods are summed
GroupFunction = Callable[[Dataset], Sequence[np.ndarray]]


@dataclass
class Model:
    """A named theory: per-row Gaussian moments plus parameter metadata.

    The model function maps a Dataset and parameter values to the per-row mean
    and variance of the counts. Everything else (deviance, sampling of initial
    guesses, the objective handed to the minimizer) is derived from it.
    """

    name: str
    func: MomentFunction
    param_names: Tuple[str, ...]
    params: Tuple[ParameterSpec, ...]
    # groups(dataset) -> boolean row masks; None means one group of all rows
    groups: Optional[GroupFunction] = None

    # ---- constructor ----
    @staticmethod
    def from_function(func: MomentFunction, *, name: Optional[str] = None) -> "Model":
        """Construct a Model from a plain ``func(dataset, p1, p2, ...)``."""
        names = infer_param_names(func)
        return Model(
            name=name or getattr(func, "__name__", "model"),
            func=func,
            param_names=names,
            params=tuple(ParameterSpec(name=n) for n in names),
        )

    # ---- introspection ----
    @property
    def free_names(self) -> Tuple[str, ...]:
        """Names of the parameters the optimiser searches over, in order."""
        return tuple(p.name for p in self.params if not p.fixed)

    @property
    def parameter_count(self) -> int:
        return len(self.free_names)

    @property
    def fixed_values(self) -> Dict[str, float]:
        return {p.name: float(p.fixed_value) for p in self.params if p.fixed}

    # ---- builders (pure; return new model) ----
    def _updated(self, values: Mapping[str, Any], **change: Any) -> "Model":
        m = {p.name: p for p in self.params}
        for k in values:
            if k not in m:
                raise ConfigurationError(
                    f"Unknown parameter {k!r} for model {self.name!r}; "
                    f"known: {self.param_names}."
                )
        for k, v in values.items():
            m[k] = replace(m[k], **{f: fn(v) for f, fn in change.items()})
        return replace(self, params=tuple(m[n] for n in self.param_names))

    def fix(self, **fixed: float) -> "Model":
        """Return a new Model with parameters fixed to values."""
        return self._updated(
            fixed, fixed=lambda v: True, fixed_value=lambda v: float(v)
        )

    def guess_range(self, **ranges: Tuple[float, float]) -> "Model":
        """Return a new Model with uniform initial-guess ranges applied."""
        for k, r in ranges.items():
            lo, hi = r
            if not float(hi) >= float(lo):
                raise ConfigurationError(f"guess_range for {k!r} needs lo <= hi, got {r!r}.")
        return self._updated(
            ranges, guess_range=lambda r: (float(r[0]), float(r[1]))
        )

    def positive(self, *names: str) -> "Model":
        """Mark variance terms; values <= MIN_VARIANCE make the deviance infeasible."""
        return self._updated({n: True for n in names}, positive=lambda v: True)

    def partition(self, groups: GroupFunction) -> "Model":
        """Return a new Model whose log-likelihood is summed over row groups.

        Each group is evaluated separately; an empty group contributes 0.
        """
        return replace(self, groups=groups)

    # ---- evaluation ----
    def eval(
        self,
        dataset: Dataset,
        *,
        params: Optional[Mapping[str, float]] = None,
        **kwargs: float,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Evaluate per-row (mean, variance) arrays for the given parameters."""
        values: Dict[str, float] = dict(params or {})
        values.update(kwargs)
        values.update(self.fixed_values)

        missing = [n for n in self.param_names if n not in values]
        if missing:
            raise TypeError(f"Missing parameter values for: {missing}")

        n = len(dataset)
        mean, var = self.func(dataset, *[values[k] for k in self.param_names])
        return (
            np.broadcast_to(np.asarray(mean, dtype=float), (n,)),
            np.broadcast_to(np.asarray(var, dtype=float), (n,)),
        )

    def predict(self, params: Mapping[str, float], dataset: Dataset) -> np.ndarray:
        """Per-row fitted mean, e.g. for plotting a fitted curve."""
        with np.errstate(all="ignore"):
            mean, _ = self.eval(dataset, params=params)
        return np.array(mean, dtype=float)

    def _resolve(
        self, params: Union[Mapping[str, Any], Sequence[float], np.ndarray]
    ) -> Union[Dict[str, float], Infeasible]:
        """Turn a parameter vector into a full name->value map, or Infeasible."""
        free = self.free_names
        values: Dict[str, float] = {}

        if isinstance(params, Mapping):
            unknown = [k for k in params if k not in self.param_names]
            if unknown:
                return Infeasible(f"unknown parameters {unknown}")
            for k in free:
                if k not in params:
                    return Infeasible(f"missing parameter {k!r}")
                v = params[k]
                if not is_real_number(v):
                    return Infeasible(f"invalid value for {k!r}: {v!r}")
                values[k] = float(v)
        else:
            try:
                theta = np.asarray(params, dtype=float)
            except (TypeError, ValueError):
                return Infeasible("parameter vector is not numeric")
            if theta.ndim != 1 or theta.shape[0] != len(free):
                return Infeasible(
                    f"expected {len(free)} parameters, got shape {theta.shape}"
                )
            if not np.all(np.isfinite(theta)):
                return Infeasible("non-finite parameter value")
            values = {k: float(theta[j]) for j, k in enumerate(free)}

        values.update(self.fixed_values)
        return values

    def loglike(
        self, params: Union[Mapping[str, Any], Sequence[float], np.ndarray], dataset: Dataset
    ) -> LogLikelihood:
        """Tagged log-likelihood of the dataset under ``params``."""
        values = self._resolve(params)
        if isinstance(values, Infeasible):
            return values

        for spec in self.params:
            if spec.positive and not values[spec.name] > MIN_VARIANCE:
                return Infeasible(f"non-positive variance {spec.name!r}")

        with np.errstate(all="ignore"):
            mean, var = self.func(dataset, *[values[k] for k in self.param_names])
        if self.groups is None:
            return gaussian_loglike(dataset.counts, mean, var)

        n = len(dataset)
        mean = np.broadcast_to(np.asarray(mean, dtype=float), (n,))
        var = np.broadcast_to(np.asarray(var, dtype=float), (n,))
        return combine(
            *(
                gaussian_loglike(dataset.counts[m], mean[m], var[m])
                for m in self.groups(dataset)
            )
        )

    def deviance(
        self,
        params: Union[Mapping[str, Any], Sequence[float], np.ndarray],
        dataset: Dataset,
        *,
        trace: bool = False,
    ) -> float:
        """-2 * log-likelihood, or SENTINEL_DEVIANCE where none is defined."""
        ll = self.loglike(params, dataset)
        if trace and not isinstance(ll, Feasible):
            log.debug(
                "Infeasible evaluation",
                extra={"model": self.name, "reason": ll.reason},
            )
        return to_deviance(ll)

    def objective(self, dataset: Dataset) -> Callable[[np.ndarray], float]:
        """Deviance as a function of the free-parameter array (minimizer input)."""

        def objective(theta: np.ndarray) -> float:
            return self.deviance(theta, dataset)

        return objective

    # ---- parameter vectors ----
    def vector(self, params: Mapping[str, float]) -> np.ndarray:
        """Free parameters of ``params`` as an array in ``free_names`` order."""
        missing = [n for n in self.free_names if n not in params]
        if missing:
            raise ConfigurationError(f"Missing parameter values for: {missing}")
        return np.asarray([float(params[n]) for n in self.free_names], dtype=float)

    def unpack(self, theta: Sequence[float]) -> Dict[str, float]:
        """Inverse of :meth:`vector`."""
        theta = np.asarray(theta, dtype=float).reshape(-1)
        if theta.shape[0] != len(self.free_names):
            raise ConfigurationError(
                f"Expected {len(self.free_names)} parameters, got {theta.shape[0]}."
            )
        return {n: float(theta[j]) for j, n in enumerate(self.free_names)}

    def sample_initial_guess(
        self, rng: Optional[np.random.Generator] = None
    ) -> Dict[str, float]:
        """Draw one starting point, each free parameter from its guess range."""
        if rng is None:
            rng = np.random.default_rng()
        return {p.name: p.sample(rng) for p in self.params if not p.fixed}

    # ---- fitting ----
    def fit(
        self,
        dataset: Dataset,
        *,
        restarts: int = DEFAULT_RESTARTS,
        backend: Any = "scipy.minimize",
        backend_options: Optional[Dict[str, Any]] = None,
        rng: Optional[np.random.Generator] = None,
        workers: Optional[Union[int, Literal["auto"]]] = None,
        patience: Optional[int] = None,
        min_improvement: float = 0.0,
        starts: Optional[Sequence[Mapping[str, float]]] = None,
    ) -> FitResult:
        """Multi-start maximum-likelihood fit; see :func:`evidence_fit.multistart.run`."""
        return run(
            restarts,
            self,
            dataset,
            backend=backend,
            backend_options=backend_options,
            rng=rng,
            workers=workers,
            patience=patience,
            min_improvement=min_improvement,
            starts=starts,
        )
