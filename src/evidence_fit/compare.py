"""Turn fit quality into comparable evidence.

Two modes:

- non-nested pairs: BIC and the Bayes factor approximated from it
- nested pairs: the likelihood-ratio (chi-square) test on the deviance drop
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from warnings import warn

import numpy as np
from scipy.stats import chi2

from .errors import ConfigurationError, NestingError
from .multistart import DEFAULT_RESTARTS
from .nesting import Nesting, find_nesting
from .run import FitResult

log = logging.getLogger(__name__)

__all__ = [
    "BICComparison",
    "LRTResult",
    "aic",
    "bayes_factor",
    "bic",
    "compare_bic",
    "fit_nested",
    "likelihood_ratio_test",
    "rank_by_bic",
]


@dataclass(frozen=True)
class BICComparison:
    """Non-nested comparison of model A against model B."""

    model_a: str
    model_b: str
    bic_a: float
    bic_b: float
    statistic: float  # BIC_a - BIC_b
    parameter_count_delta: int  # k_a - k_b
    bayes_factor: float
    decision: str  # "favor_a" | "favor_b"


@dataclass(frozen=True)
class LRTResult:
    """Likelihood-ratio test of a restricted model against its full model."""

    full: str
    restricted: str
    statistic: float  # restricted.deviance - full.deviance, clamped at 0
    df: int
    p_value: float
    critical_value: float
    level: float
    decision: str  # "significant" | "not_significant"
    raw_statistic: float

    @property
    def significant(self) -> bool:
        return self.decision == "significant"


def bic(fit: FitResult) -> float:
    """deviance + ln(n) * k"""
    return fit.bic


def aic(fit: FitResult) -> float:
    """deviance + 2 * k"""
    return fit.aic


def _same_data(a: FitResult, b: FitResult) -> None:
    if a.n_obs != b.n_obs:
        raise ConfigurationError(
            f"Fits use datasets of different length ({a.n_obs} vs {b.n_obs})."
        )
    if a.dataset is not None and b.dataset is not None and a.dataset is not b.dataset:
        if not (
            np.array_equal(a.dataset.counts, b.dataset.counts)
            and np.array_equal(a.dataset.day_of_week, b.dataset.day_of_week)
        ):
            raise ConfigurationError("Fits were made on different datasets.")


def bayes_factor(a: FitResult, b: FitResult) -> float:
    """BIC approximation of the Bayes factor of B over A.

    ``exp((BIC_a - BIC_b) / 2)``: values above 1 favour B.
    """
    with np.errstate(over="ignore"):
        return float(np.exp(0.5 * (bic(a) - bic(b))))


def compare_bic(a: FitResult, b: FitResult) -> BICComparison:
    """Compare two (typically non-nested) fits on the same data by BIC."""
    _same_data(a, b)
    bic_a = bic(a)
    bic_b = bic(b)
    bf = bayes_factor(a, b)
    return BICComparison(
        model_a=a.model_name,
        model_b=b.model_name,
        bic_a=bic_a,
        bic_b=bic_b,
        statistic=bic_a - bic_b,
        parameter_count_delta=int(a.n_params - b.n_params),
        bayes_factor=bf,
        decision="favor_b" if bf > 1.0 else "favor_a",
    )


def rank_by_bic(fits: Iterable[FitResult]) -> List[Tuple[str, float]]:
    """(model name, BIC) pairs, best (lowest BIC) first."""
    fits = list(fits)
    for other in fits[1:]:
        _same_data(fits[0], other)
    return sorted(((f.model_name, bic(f)) for f in fits), key=lambda t: t[1])


def _check_embedding(
    nesting: Nesting, full: FitResult, restricted: FitResult
) -> None:
    """Full model at the embedded restricted optimum must reproduce its deviance."""
    if full.model is None or restricted.dataset is None:
        return
    embedded = nesting.embed(restricted.params)
    dev = float(full.model.deviance(embedded, restricted.dataset))
    if not math.isclose(dev, restricted.deviance, rel_tol=1e-9, abs_tol=1e-6):
        raise NestingError(
            f"{restricted.model_name!r} is not embeddable in {full.model_name!r}: "
            f"deviance {restricted.deviance:.6g} at the restricted optimum becomes "
            f"{dev:.6g} in the full model."
        )


def likelihood_ratio_test(
    full: FitResult,
    restricted: FitResult,
    *,
    nesting: Optional[Nesting] = None,
    level: float = 0.95,
) -> LRTResult:
    """Chi-square test of ``restricted`` against the ``full`` model it is nested in.

    ``Δ = restricted.deviance - full.deviance`` is compared with the chi-square
    quantile at ``level`` with ``df = k_full - k_restricted``. Raises
    NestingError when the pair has no valid nesting relation.
    """
    if not 0.0 < float(level) < 1.0:
        raise ConfigurationError(f"level must be in (0, 1), got {level!r}.")
    _same_data(full, restricted)

    if nesting is None:
        nesting = find_nesting(
            full.model if full.model is not None else full.model_name,
            restricted.model if restricted.model is not None else restricted.model_name,
        )
    df = nesting.validate(full.free_names, restricted.free_names)
    if df != full.n_params - restricted.n_params:
        raise NestingError(
            f"Parameter counts ({full.n_params} vs {restricted.n_params}) "
            f"disagree with the nesting relation (df={df})."
        )
    _check_embedding(nesting, full, restricted)

    raw = float(restricted.deviance - full.deviance)
    stat = raw
    if raw < 0.0:
        warn(
            f"{full.model_name} fits worse than its restriction "
            f"{restricted.model_name} (Δdeviance={raw:.6g}); the full model was "
            "probably under-searched. Increase restarts or use fit_nested().",
            UserWarning,
        )
        stat = 0.0

    critical = float(chi2.ppf(level, df))
    p = float(chi2.sf(stat, df))
    result = LRTResult(
        full=full.model_name,
        restricted=restricted.model_name,
        statistic=stat,
        df=int(df),
        p_value=p,
        critical_value=critical,
        level=float(level),
        decision="significant" if stat >= critical else "not_significant",
        raw_statistic=raw,
    )
    log.debug(
        "Likelihood-ratio test",
        extra={
            "full": result.full,
            "restricted": result.restricted,
            "statistic": stat,
            "df": result.df,
            "p_value": p,
        },
    )
    return result


def fit_nested(
    full_model: Any,
    restricted_model: Any,
    dataset: Any,
    *,
    restarts: int = DEFAULT_RESTARTS,
    nesting: Optional[Nesting] = None,
    rng: Optional[np.random.Generator] = None,
    **fit_kwargs: Any,
) -> Tuple[FitResult, FitResult]:
    """Fit a nested pair so the full fit is never worse than its restriction.

    When the full model's multi-start search ends above the restricted optimum,
    one more local search of the full model is run from the embedded
    restricted optimum and merged into its result.
    """
    if rng is None:
        rng = np.random.default_rng()
    if nesting is None:
        nesting = find_nesting(full_model, restricted_model)
    nesting.validate(full_model.free_names, restricted_model.free_names)

    restricted = restricted_model.fit(dataset, restarts=restarts, rng=rng, **fit_kwargs)
    full = full_model.fit(dataset, restarts=restarts, rng=rng, **fit_kwargs)

    if full.deviance > restricted.deviance:
        start: Mapping[str, float] = nesting.embed(restricted.params)
        polish_kwargs: Dict[str, Any] = {
            k: v for k, v in fit_kwargs.items() if k not in ("starts", "patience")
        }
        polish = full_model.fit(
            dataset, restarts=1, rng=rng, starts=[start], **polish_kwargs
        )
        log.debug(
            "Polished full model from restricted optimum",
            extra={
                "full": full_model.name,
                "restricted": restricted_model.name,
                "before": full.deviance,
                "after": polish.deviance,
            },
        )
        full = full.merge(polish)
    return full, restricted
