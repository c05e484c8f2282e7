from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import numpy as np

from .errors import ConfigurationError

__all__ = ["ParameterSpec", "ParameterVector"]

# name -> value; size fixed per model (its free parameters)
ParameterVector = Mapping[str, float]


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    fixed: bool = False
    fixed_value: Optional[float] = None
    # Uniform range for the initial-guess sampler; may include infeasible values.
    guess_range: Optional[Tuple[float, float]] = None
    # Variance-like terms: values <= MIN_VARIANCE are infeasible.
    positive: bool = False

    def sample(self, rng: np.random.Generator) -> float:
        """Draw one value from Uniform(guess_range)."""
        if self.guess_range is None:
            raise ConfigurationError(
                f"Parameter {self.name!r} has no guess_range; set one via "
                f"model.guess_range({self.name}=(lo, hi))."
            )
        lo, hi = self.guess_range
        return float(rng.uniform(float(lo), float(hi)))

