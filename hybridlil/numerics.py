"""Log-space numerical helpers."""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

_LOG2 = math.log(2.0)


def log_sum_exp(xs: Iterable[float] | np.ndarray) -> float:
    """Return ``log(sum(exp(xs)))`` scaled by ``max(xs)`` to prevent overflow.

    A non-finite result (every term ``-inf``, or an infinite maximum) is
    replaced with the offset itself.
    """
    arr = np.asarray(xs, dtype=np.float64).ravel()
    if arr.size == 0:
        raise ValueError("log_sum_exp requires at least one value")
    offset = float(arr.max())
    with np.errstate(invalid="ignore", over="ignore", divide="ignore"):
        s = offset + float(np.log(np.sum(np.exp(arr - offset))))
    if not math.isfinite(s):
        return offset
    return s


def log_det(matrix: np.ndarray) -> float:
    """Return ``log(|det(matrix)|)``; singular input gives ``-inf``."""
    arr = np.asarray(matrix, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(f"log_det expects a square matrix, got shape {arr.shape}")
    _, logabsdet = np.linalg.slogdet(arr)
    return float(logabsdet)


def log1mexp(x: float | np.ndarray) -> float | np.ndarray:
    """Compute ``log(1 - exp(-x))`` for ``x >= 0`` without cancellation.

    Uses ``log(-expm1(-x))`` when ``x <= log(2)`` and ``log1p(-exp(-x))``
    otherwise. ``log1mexp(0)`` is ``-inf``.
    """
    arr = np.asarray(x, dtype=np.float64)
    if np.any(arr < 0):
        raise ValueError("log1mexp is only defined for non-negative inputs")
    with np.errstate(divide="ignore"):
        out = np.where(
            arr <= _LOG2,
            np.log(-np.expm1(-arr)),
            np.log1p(-np.exp(-arr)),
        )
    if out.ndim == 0:
        return float(out)
    return out


def log_interval_integral(slope: float, lower: float, upper: float) -> float:
    """Return ``log`` of the integral of ``exp(-slope * t)`` over ``[lower, upper]``.

    The closed form is anchored at ``lower`` for positive slopes and at
    ``upper`` for negative ones so the exponent never grows; a zero slope
    reduces to the log interval length.
    """
    slope = float(slope)
    lower = float(lower)
    upper = float(upper)
    width = upper - lower
    if width < 0:
        raise ValueError(f"upper ({upper}) must not be below lower ({lower})")
    if width == 0:
        return -math.inf
    if abs(slope) * width == 0.0:
        # exponent underflows: the integrand is constant to double precision
        return math.log(width)
    if slope > 0:
        return -slope * lower - math.log(slope) + log1mexp(slope * width)
    if slope < 0:
        return -slope * upper - math.log(-slope) + log1mexp(-slope * width)
    return math.log(width)


__all__ = ["log1mexp", "log_det", "log_interval_integral", "log_sum_exp"]
