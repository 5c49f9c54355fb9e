"""Closed-form integrals of ``exp(-psi)`` over a single partition, in log space."""

from __future__ import annotations

import numpy as np

from .model import Partition
from .numerics import log_interval_integral


def _require_anchor(part: Partition) -> tuple[np.ndarray, np.ndarray]:
    if part.star is None or part.gradient is None:
        raise RuntimeError(f"partition {part.leaf_id} has no representative point yet")
    return part.star, part.gradient


def constant_approx(part: Partition) -> float:
    """``-psi(u*) + log(vol(A_k))``: the integrand held at its value at ``u*``."""
    _require_anchor(part)
    return -part.psi_star + part.log_volume()


def taylor_approx(part: Partition) -> float:
    """Integrate ``exp`` of the first-order expansion of ``-psi`` about ``u*``.

    ``exp(-psi(u*) + lambda'u* - lambda'u)`` is separable, so the D-dimensional
    integral is a product of one-dimensional closed forms.
    """
    star, grad = _require_anchor(part)
    log_terms = sum(
        log_interval_integral(grad[d], part.lower[d], part.upper[d]) for d in range(part.dim)
    )
    return -part.psi_star + float(np.dot(grad, star)) + log_terms


def integrate_partition(part: Partition) -> tuple[float, float]:
    """Return ``(constant, taylor)`` log-approximations for ``part``."""
    return constant_approx(part), taylor_approx(part)


__all__ = ["constant_approx", "integrate_partition", "taylor_approx"]
