from __future__ import annotations

import inspect
import math
import os
from typing import Any, Callable, Optional, Tuple, Union

import numpy as np

from .errors import ConfigurationError


def infer_param_names(func: Callable[..., Any]) -> Tuple[str, ...]:
    """Infer parameter names from a model function signature.

    Conventions:
    - first arg is the Dataset
    - remaining positional/keyword parameters are model parameters
    - no *args/**kwargs
    """
    sig = inspect.signature(func)
    params = list(sig.parameters.values())

    if len(params) < 2:
        raise TypeError("Model function must have at least (dataset, p1, ...).")

    bad_kinds = {inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD}
    for p in params:
        if p.kind in bad_kinds:
            raise TypeError("*args/**kwargs are not supported in model functions.")

    names = [p.name for p in params[1:]]
    if len(set(names)) != len(names):
        raise TypeError("Duplicate parameter names in function signature.")
    return tuple(names)


def is_real_number(x: Any) -> bool:
    """True for finite int/float/numpy scalars (bools excluded)."""
    if isinstance(x, (bool, np.bool_)):
        return False
    if not isinstance(x, (int, float, np.integer, np.floating)):
        return False
    return math.isfinite(float(x))


def resolve_workers(workers: Optional[Union[int, str]]) -> int:
    """Normalise a ``workers`` option to a positive thread count."""
    if workers is None:
        return 1
    if isinstance(workers, str):
        if workers != "auto":
            raise ConfigurationError(f"workers must be an int or 'auto', got {workers!r}.")
        return max(1, int(os.cpu_count() or 1))
    if isinstance(workers, bool) or int(workers) != workers or int(workers) < 1:
        raise ConfigurationError(f"workers must be a positive integer, got {workers!r}.")
    return int(workers)
