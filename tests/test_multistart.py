import warnings

import numpy as np
import pytest

from evidence_fit import (
    MIN_VARIANCE,
    SENTINEL_DEVIANCE,
    ConfigurationError,
    Dataset,
    Model,
    models,
    multistart,
)
from evidence_fit.backends import AVAILABLE_BACKENDS, get_backend
from evidence_fit.backends.common import BackendResult
from evidence_fit.backends.scipy_minimize import ScipyMinimizeBackend


class ConstantBackend:
    """Returns the start point with a fixed objective value."""

    name = "constant"

    def __init__(self, value=5.0):
        self.value = value

    def minimize(self, *, objective, p0, options):
        return BackendResult(
            theta=np.asarray(p0, dtype=float), value=self.value, message="constant"
        )


class IdentityBackend:
    """Returns the start point and the objective there."""

    name = "identity"

    def minimize(self, *, objective, p0, options):
        p0 = np.asarray(p0, dtype=float)
        return BackendResult(theta=p0, value=objective(p0))


class ScriptedBackend:
    """Returns scripted (value, success) pairs in call order."""

    name = "scripted"

    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    def minimize(self, *, objective, p0, options):
        value, success = self.script[self.calls]
        self.calls += 1
        return BackendResult(
            theta=np.asarray(p0, dtype=float),
            value=value,
            success=success,
            message="ok" if success else "maxiter",
        )


def _weekly(weekday, weekend, n=31) -> Dataset:
    # from_counts starts on a Sunday: positions 0 and 6 of each week are weekend
    return Dataset.from_counts([weekend if i % 7 in (0, 6) else weekday for i in range(n)])


def test_constant_data_recovers_mean():
    ds = Dataset.from_counts([8] * 31)
    fit = models.single_gaussian().fit(ds, restarts=20, rng=np.random.default_rng(0))

    assert fit.restarts_evaluated == 20
    assert abs(fit.params["mu"] - 8.0) < 5e-2
    assert fit.params["sigma_sq"] > MIN_VARIANCE
    # shrinking variance drives the deviance toward its floor at MIN_VARIANCE
    floor = 31 * np.log(2.0 * np.pi * MIN_VARIANCE)
    assert floor < fit.deviance < 0.0
    assert fit.feasible


def test_recovers_synthetic_gaussian():
    rng = np.random.default_rng(42)
    counts = np.clip(np.round(rng.normal(12.0, 3.0, size=2000)), 0, None).astype(int)
    ds = Dataset.from_counts(counts)

    fit = models.single_gaussian().fit(ds, restarts=10, rng=np.random.default_rng(1))

    # maximum-likelihood estimates are the sample mean and population variance
    assert fit.params["mu"] == pytest.approx(counts.mean(), abs=1e-2)
    assert fit.params["sigma_sq"] == pytest.approx(counts.var(), abs=5e-2)
    assert abs(fit.params["mu"] - 12.0) < 0.3
    assert abs(fit.params["sigma_sq"] - 9.0) < 1.0


def test_single_restart_equals_direct_minimizer_call():
    ds = _weekly(10, 3, n=40)
    model = models.periodic()

    start = model.sample_initial_guess(np.random.default_rng(3))
    direct = ScipyMinimizeBackend().minimize(
        objective=model.objective(ds), p0=model.vector(start), options={}
    )

    fit = multistart.run(1, model, ds, rng=np.random.default_rng(3))

    assert fit.restarts_evaluated == 1
    assert fit.trials[0].start == start
    assert fit.deviance == direct.value
    assert np.array_equal(model.vector(fit.params), direct.theta)
    assert fit.converged == direct.success


def test_best_deviance_never_increases_with_restarts():
    ds = _weekly(10, 3, n=35)
    fit = models.periodic().fit(ds, restarts=15, rng=np.random.default_rng(5))

    trace = fit.deviance_trace()
    assert trace.shape == (15,)
    assert np.all(np.diff(trace) <= 0.0)
    assert trace[-1] == fit.deviance
    assert fit.deviance == min(t.deviance for t in fit.trials)
    assert fit.trials[fit.best_index].deviance == fit.deviance


def test_ties_resolve_to_first_trial():
    ds = _weekly(10, 3)
    fit = models.single_gaussian().fit(
        ds, restarts=6, backend=ConstantBackend(), rng=np.random.default_rng(0)
    )

    assert fit.best_index == 0
    assert dict(fit.params) == dict(fit.trials[0].start)
    assert fit.backend == "constant"


def test_non_converged_trial_still_competes():
    ds = _weekly(10, 3)
    backend = ScriptedBackend([(2.0, True), (1.0, False), (3.0, True)])
    fit = models.single_gaussian().fit(
        ds, restarts=3, backend=backend, rng=np.random.default_rng(0)
    )

    assert fit.best_index == 1
    assert fit.deviance == 1.0
    assert not fit.converged
    assert [t.converged for t in fit.trials] == [True, False, True]


def test_parallel_matches_sequential():
    ds = _weekly(11, 4, n=42)
    model = models.two_group()

    seq = model.fit(ds, restarts=8, rng=np.random.default_rng(7))
    par = model.fit(ds, restarts=8, rng=np.random.default_rng(7), workers=4)

    assert par.deviance == seq.deviance
    assert par.best_index == seq.best_index
    assert dict(par.params) == dict(seq.params)
    assert [t.deviance for t in par.trials] == [t.deviance for t in seq.trials]


def test_early_stop_after_patience():
    ds = _weekly(10, 3)
    fit = models.single_gaussian().fit(
        ds,
        restarts=50,
        backend=ConstantBackend(),
        rng=np.random.default_rng(0),
        patience=3,
    )
    assert fit.restarts_evaluated == 4

    with pytest.raises(ConfigurationError, match="workers=1"):
        models.single_gaussian().fit(ds, restarts=5, patience=2, workers=2)


def test_explicit_starts_run_first():
    ds = _weekly(10, 3)
    start = {"mu": 8.0, "sigma_sq": 10.0}
    fit = models.single_gaussian().fit(
        ds, restarts=3, starts=[start], rng=np.random.default_rng(0)
    )
    assert dict(fit.trials[0].start) == start
    assert fit.restarts_evaluated == 3


def test_non_finite_backend_value_becomes_sentinel():
    ds = _weekly(10, 3)
    start = {"mu": 8.0, "sigma_sq": -1.0}
    with pytest.warns(UserWarning, match="no restart found a feasible"):
        fit = models.single_gaussian().fit(
            ds, restarts=2, backend=ConstantBackend(float("nan")), starts=[start, start]
        )
    assert fit.deviance == SENTINEL_DEVIANCE
    assert not fit.feasible
    assert "(infeasible)" in fit.summary()


def test_large_feasible_deviance_is_not_infeasible():
    ds = Dataset.from_counts([8] * 31)
    start = {"mu": -1000.0, "sigma_sq": 1.0}

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        fit = multistart.run(
            1, models.single_gaussian(), ds, backend=IdentityBackend(), starts=[start]
        )

    assert fit.deviance > SENTINEL_DEVIANCE
    assert fit.deviance == models.single_gaussian().deviance(start, ds)
    assert fit.feasible
    assert fit.to_dict()["feasible"] is True
    assert "(infeasible)" not in fit.summary()


@pytest.mark.parametrize("restarts", [0, -3, 1.5, True, "10"])
def test_invalid_restart_counts(restarts):
    ds = _weekly(10, 3)
    with pytest.raises(ConfigurationError, match="restarts"):
        multistart.run(restarts, models.single_gaussian(), ds)


def test_configuration_errors():
    ds = _weekly(10, 3)
    assert "scipy.minimize" in AVAILABLE_BACKENDS
    with pytest.raises(ConfigurationError, match="Unknown backend"):
        get_backend("no.such.backend")
    with pytest.raises(ConfigurationError, match="no guess_range"):
        Model.from_function(lambda data, a, s: (a, s)).sample_initial_guess()
    with pytest.raises(ConfigurationError, match="empty"):
        models.single_gaussian().fit(Dataset(()), restarts=1)
    with pytest.raises(ConfigurationError, match="workers"):
        models.single_gaussian().fit(ds, restarts=1, workers=0)
    with pytest.raises(ConfigurationError, match="guess_range"):
        models.single_gaussian().guess_range(mu=(1.0, 0.0))
    with pytest.raises(ConfigurationError, match="Unknown parameter"):
        models.single_gaussian().fix(nope=1.0)


def test_scipy_backend_soft_fails_on_bad_method():
    backend = ScipyMinimizeBackend()

    def objective(v):
        return float(np.sum(np.asarray(v) ** 2))

    ok = backend.minimize(objective=objective, p0=np.array([1.0, 2.0]), options={})
    assert ok.success
    assert np.allclose(ok.theta, 0.0, atol=1e-3)

    bad = backend.minimize(
        objective=objective, p0=np.array([1.0, 2.0]), options={"method": "no-such-method"}
    )
    assert not bad.success
    assert np.array_equal(bad.theta, [1.0, 2.0])
    assert bad.value == 5.0


def test_fit_result_summary_and_merge():
    ds = _weekly(10, 3)
    model = models.single_gaussian()
    a = model.fit(ds, restarts=2, rng=np.random.default_rng(0))
    b = model.fit(ds, restarts=3, rng=np.random.default_rng(1))

    merged = a.merge(b)
    assert merged.restarts_evaluated == 5
    assert merged.deviance == min(a.deviance, b.deviance)
    assert merged.trials[merged.best_index].deviance == merged.deviance

    text = a.summary()
    assert "single_gaussian" in text
    assert "deviance" in text
    assert a.to_dict()["n_params"] == 2
    assert a.predict().shape == (len(ds),)

    with pytest.raises(ConfigurationError, match="different models"):
        a.merge(models.two_group().fit(ds, restarts=1, rng=np.random.default_rng(0)))
