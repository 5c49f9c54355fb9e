"""hybridlil: hybrid tree-partition approximation of the log integrated likelihood."""

from .approximator import HybridApproximator, HybridResult, approx_lil
from .config import HybridConfig
from .data import SampleSet, preprocess
from .numerics import log_det, log_sum_exp
from .objective import Objective

__all__ = [
    "HybridApproximator",
    "HybridConfig",
    "HybridResult",
    "Objective",
    "SampleSet",
    "approx_lil",
    "log_det",
    "log_sum_exp",
    "preprocess",
]
