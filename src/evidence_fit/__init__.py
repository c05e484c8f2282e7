"""evidence_fit public API."""
import logging

from .compare import (
    BICComparison,
    LRTResult,
    bayes_factor,
    bic,
    compare_bic,
    fit_nested,
    likelihood_ratio_test,
    rank_by_bic,
)
from .data import Dataset, Observation
from .errors import ConfigurationError, DataError, EvidenceFitError, NestingError
from .inference import MIN_VARIANCE, SENTINEL_DEVIANCE
from .model import Model
from .nesting import Nesting, register_nesting
from .run import FitResult, Trial
from . import models, multistart

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BICComparison",
    "ConfigurationError",
    "DataError",
    "Dataset",
    "EvidenceFitError",
    "FitResult",
    "LRTResult",
    "MIN_VARIANCE",
    "Model",
    "Nesting",
    "NestingError",
    "Observation",
    "SENTINEL_DEVIANCE",
    "Trial",
    "bayes_factor",
    "bic",
    "compare_bic",
    "fit_nested",
    "likelihood_ratio_test",
    "models",
    "multistart",
    "rank_by_bic",
    "register_nesting",
]
