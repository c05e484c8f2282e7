import numpy as np

from evidence_fit import (
    Dataset,
    Model,
    Nesting,
    fit_nested,
    likelihood_ratio_test,
    register_nesting,
)


# Linear trend over the record, on the same time axis as the periodic models.
def trend(data, intercept, slope, sigma_sq):
    return intercept + slope * data.time_index(), sigma_sq


def flat(data, level, sigma_sq):
    return level, sigma_sq


trend_model = (
    Model.from_function(trend)
    .positive("sigma_sq")
    .guess_range(intercept=(0, 30), slope=(-5, 5), sigma_sq=(0.1, 50))
)
flat_model = (
    Model.from_function(flat)
    .positive("sigma_sq")
    .guess_range(level=(0, 30), sigma_sq=(0.1, 50))
)

# flat is trend with slope 0.
register_nesting(
    Nesting(
        full="trend",
        restricted="flat",
        equate={"level": ("intercept",), "sigma_sq": ("sigma_sq",)},
        fix={"slope": 0.0},
    )
)

rng = np.random.default_rng(5)
n = 45
counts = rng.poisson(6.0 + 0.8 * 2.0 * np.pi * np.arange(n) / (n - 1))
data = Dataset.from_counts(counts)

full, restricted = fit_nested(
    trend_model, flat_model, data, restarts=10, rng=np.random.default_rng(6), workers=2
)
print(full.summary())
print(restricted.summary())
print(likelihood_ratio_test(full, restricted))
