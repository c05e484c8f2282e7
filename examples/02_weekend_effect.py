import numpy as np

from evidence_fit import Dataset, fit_nested, likelihood_ratio_test, models

# One month of daily counts, quieter at weekends. from_counts starts on a Sunday.
rng = np.random.default_rng(0)
weekend = np.array([i % 7 in (0, 6) for i in range(31)])
counts = rng.poisson(np.where(weekend, 3.0, 10.0))
data = Dataset.from_counts(counts)

print(data.describe())

# Equal group means: two_group_shared vs single_gaussian.
full, restricted = fit_nested(
    models.two_group_shared(),
    models.single_gaussian(),
    data,
    restarts=20,
    rng=np.random.default_rng(1),
)
res = likelihood_ratio_test(full, restricted)
print(f"means:     Δ={res.statistic:.3f} df={res.df} p={res.p_value:.3g} -> {res.decision}")

# Equal group variances: two_group vs two_group_shared.
full, restricted = fit_nested(
    models.two_group(),
    models.two_group_shared(),
    data,
    restarts=20,
    rng=np.random.default_rng(2),
)
res = likelihood_ratio_test(full, restricted)
print(f"variances: Δ={res.statistic:.3f} df={res.df} p={res.p_value:.3g} -> {res.decision}")
