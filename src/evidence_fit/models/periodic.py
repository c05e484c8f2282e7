from __future__ import annotations

from dataclasses import replace

import numpy as np

from ..model import Model
from .gaussian import MEAN_RANGE, VARIANCE_RANGE

PERIODIC_FREQUENCY = 4.0


def periodic_func(dataset, intercept, amplitude, phase, frequency, sigma_sq):
    """intercept + amplitude * sin(phase + frequency * t), t from row position.

    ``t = 2π · i / (n - 1)`` ignores the calendar fields, so gaps in the
    daily records silently shift the phase of later rows.
    """
    t = dataset.time_index()
    return intercept + amplitude * np.sin(phase + frequency * t), sigma_sq


def periodic(*, name: str = "periodic") -> Model:
    """Return the free-frequency periodic Model."""
    return (
        Model.from_function(periodic_func, name=name)
        .positive("sigma_sq")
        .guess_range(
            intercept=MEAN_RANGE,
            amplitude=MEAN_RANGE,
            phase=(0.0, 2.0 * np.pi),
            frequency=(0.0, 10.0),
            sigma_sq=VARIANCE_RANGE,
        )
    )


def periodic_fixed(
    *, frequency: float = PERIODIC_FREQUENCY, name: str = "periodic_fixed"
) -> Model:
    """Return the periodic Model with its frequency fixed (default 4)."""
    return replace(periodic().fix(frequency=frequency), name=name)
