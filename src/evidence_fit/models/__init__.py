"""Candidate model family."""

from .gaussian import (
    GAUSSIAN_NESTINGS,
    single_gaussian,
    single_gaussian_func,
    two_group,
    two_group_func,
    two_group_shared,
    two_group_shared_func,
    weekday_weekend,
)
from .periodic import PERIODIC_FREQUENCY, periodic, periodic_fixed, periodic_func

BUILTIN_NESTINGS = GAUSSIAN_NESTINGS


def all_models():
    """Default instances of every built-in model, keyed by name."""
    ms = (single_gaussian(), periodic_fixed(), periodic(), two_group(), two_group_shared())
    return {m.name: m for m in ms}


__all__ = [
    "BUILTIN_NESTINGS",
    "PERIODIC_FREQUENCY",
    "all_models",
    "periodic",
    "periodic_fixed",
    "periodic_func",
    "single_gaussian",
    "single_gaussian_func",
    "two_group",
    "two_group_func",
    "two_group_shared",
    "two_group_shared_func",
    "weekday_weekend",
]
