import numpy as np

from evidence_fit import Dataset, models

rng = np.random.default_rng(0)
counts = np.clip(np.round(rng.normal(12.0, 3.0, size=120)), 0, None).astype(int)
data = Dataset.from_counts(counts)

model = models.single_gaussian()
fit = model.fit(data, restarts=20, rng=np.random.default_rng(1))

print(fit.summary(digits=4))
print("sample mean/var:", counts.mean(), counts.var())

# Best deviance after each restart never goes up.
print("deviance trace:", np.round(fit.deviance_trace(), 3))
