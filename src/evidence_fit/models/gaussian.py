from __future__ import annotations

import numpy as np

from ..model import Model
from ..nesting import Nesting

MEAN_RANGE = (-20.0, 20.0)
# Includes negative variances; the deviance rejects them.
VARIANCE_RANGE = (-10.0, 100.0)


# --- one population ----------------------------------------------------------


def single_gaussian_func(dataset, mu, sigma_sq):
    """Every row ~ Normal(mu, sigma_sq)."""
    return mu, sigma_sq


def single_gaussian(*, name: str = "single_gaussian") -> Model:
    """Return the one-population Gaussian Model (mu, sigma_sq)."""
    return (
        Model.from_function(single_gaussian_func, name=name)
        .positive("sigma_sq")
        .guess_range(mu=MEAN_RANGE, sigma_sq=VARIANCE_RANGE)
    )


# --- weekday vs weekend ------------------------------------------------------


def weekday_weekend(dataset):
    """Row masks of the two groups, weekday first."""
    return dataset.weekday, dataset.weekend


def two_group_func(dataset, mu1, sigma1_sq, mu2, sigma2_sq):
    """Weekday rows ~ Normal(mu1, sigma1_sq); weekend rows ~ Normal(mu2, sigma2_sq)."""
    wd = dataset.weekday
    return np.where(wd, mu1, mu2), np.where(wd, sigma1_sq, sigma2_sq)


def two_group(*, name: str = "two_group") -> Model:
    """Return the weekday/weekend Gaussian Model with separate variances."""
    return (
        Model.from_function(two_group_func, name=name)
        .partition(weekday_weekend)
        .positive("sigma1_sq", "sigma2_sq")
        .guess_range(
            mu1=MEAN_RANGE,
            sigma1_sq=VARIANCE_RANGE,
            mu2=MEAN_RANGE,
            sigma2_sq=VARIANCE_RANGE,
        )
    )


def two_group_shared_func(dataset, mu1, mu2, sigma_sq):
    """Weekday/weekend means, one shared variance."""
    return np.where(dataset.weekday, mu1, mu2), sigma_sq


def two_group_shared(*, name: str = "two_group_shared") -> Model:
    """Return the weekday/weekend Gaussian Model with a shared variance."""
    return (
        Model.from_function(two_group_shared_func, name=name)
        .partition(weekday_weekend)
        .positive("sigma_sq")
        .guess_range(mu1=MEAN_RANGE, mu2=MEAN_RANGE, sigma_sq=VARIANCE_RANGE)
    )


# --- nesting relations between the default-named models ----------------------

GAUSSIAN_NESTINGS = (
    # equal group means
    Nesting(
        full="two_group_shared",
        restricted="single_gaussian",
        equate={"mu": ("mu1", "mu2"), "sigma_sq": ("sigma_sq",)},
    ),
    # equal group variances
    Nesting(
        full="two_group",
        restricted="two_group_shared",
        equate={
            "mu1": ("mu1",),
            "mu2": ("mu2",),
            "sigma_sq": ("sigma1_sq", "sigma2_sq"),
        },
    ),
    # equal means and variances
    Nesting(
        full="two_group",
        restricted="single_gaussian",
        equate={"mu": ("mu1", "mu2"), "sigma_sq": ("sigma1_sq", "sigma2_sq")},
    ),
)
