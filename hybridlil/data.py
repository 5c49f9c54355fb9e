"""Sample containers and preprocessing utilities for hybridlil."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import torch

from .objective import Objective

logger = logging.getLogger(__name__)


def ensure_numpy(array: np.ndarray | torch.Tensor | Sequence[float]) -> np.ndarray:
    """Convert ``array`` (numpy, torch, pandas or nested sequences) to ``float64``."""

    if isinstance(array, torch.Tensor):
        return array.detach().cpu().numpy().astype(np.float64, copy=False)
    return np.asarray(array, dtype=np.float64)


@dataclass(frozen=True, slots=True)
class SampleSet:
    """Posterior samples ``u`` (one D-vector per row) with their ``psi(u)`` values.

    Both arrays are copied and flagged read-only on construction.
    """

    points: np.ndarray
    psi: np.ndarray

    def __post_init__(self) -> None:
        points = np.array(ensure_numpy(self.points), dtype=np.float64)
        psi = np.array(ensure_numpy(self.psi), dtype=np.float64).reshape(-1)
        if points.ndim == 1:
            points = points.reshape(-1, 1)
        if points.ndim != 2:
            raise ValueError(f"points must be 2D (J, D), got {points.ndim} dimensions")
        if points.shape[0] != psi.shape[0]:
            raise ValueError(
                f"points has {points.shape[0]} rows but psi has {psi.shape[0]} values"
            )
        if points.shape[1] == 0:
            raise ValueError("points must have at least one column")
        if not np.all(np.isfinite(points)):
            raise ValueError("points must be finite")
        if not np.all(np.isfinite(psi)):
            raise ValueError("psi values must be finite")
        points.setflags(write=False)
        psi.setflags(write=False)
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "psi", psi)

    @property
    def dim(self) -> int:
        return int(self.points.shape[1])

    def __len__(self) -> int:
        return int(self.points.shape[0])

    def subset(self, start: int, stop: int) -> "SampleSet":
        """Return rows ``[start, stop)`` as a new sample set."""
        return SampleSet(points=self.points[start:stop], psi=self.psi[start:stop])

    def take(self, indices: np.ndarray) -> "SampleSet":
        return SampleSet(points=self.points[indices], psi=self.psi[indices])


def preprocess(
    points: np.ndarray | torch.Tensor | Sequence[Sequence[float]],
    objective: Objective,
    dim: int | None = None,
) -> SampleSet:
    """Evaluate ``psi`` on every posterior sample and pack the result.

    Parameters
    ----------
    points:
        Posterior samples stored row-wise, shape ``(J, D)``. pandas
        DataFrames are accepted.
    objective:
        Supplies ``psi`` and the prior it is evaluated under.
    dim:
        Declared parameter dimension ``D``. When given, the column count of
        ``points`` must match it.
    """

    pts = ensure_numpy(points)
    if pts.ndim == 1:
        pts = pts.reshape(-1, 1)
    if pts.ndim != 2:
        raise ValueError("points must be a 2D array of shape (J, D)")
    if dim is not None and pts.shape[1] != dim:
        raise ValueError(f"points have {pts.shape[1]} columns but D={dim} was declared")
    psi_u = objective.values(pts)
    return SampleSet(points=pts, psi=psi_u)


def extract_support(samples: SampleSet) -> np.ndarray:
    """Return the data-defined support as a ``(D, 2)`` array of ``[min, max]`` rows."""

    if len(samples) == 0:
        raise ValueError("cannot extract the support of an empty sample set")
    return np.column_stack([samples.points.min(axis=0), samples.points.max(axis=0)])


def split_batches(samples: SampleSet, n_approx: int, batch_size: int | None = None) -> list[SampleSet]:
    """Slice ``samples`` into ``n_approx`` contiguous batches of ``batch_size`` rows."""

    if n_approx < 1:
        raise ValueError("n_approx must be at least 1")
    total = len(samples)
    if batch_size is None:
        batch_size = total // n_approx
    if batch_size < 1:
        raise ValueError(f"cannot form {n_approx} batches from {total} samples")
    needed = n_approx * batch_size
    if total < needed:
        raise ValueError(
            f"need n_approx * J = {n_approx} * {batch_size} = {needed} samples, got {total}"
        )
    if total > needed:
        logger.warning("ignoring %d trailing samples beyond n_approx * J = %d", total - needed, needed)
    return [samples.subset(t * batch_size, (t + 1) * batch_size) for t in range(n_approx)]


__all__ = ["SampleSet", "ensure_numpy", "extract_support", "preprocess", "split_batches"]
