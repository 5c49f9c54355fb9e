"""Configuration objects for hybridlil."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class HybridConfig:
    """Settings steering the hybrid LIL approximation.

    Parameters
    ----------
    n_approx:
        Number of independent approximations (batches) to form.
    batch_size:
        Number of posterior samples ``J`` used per approximation. ``None``
        splits the whole pool evenly into ``n_approx`` batches.
    min_samples_split:
        Minimum number of samples a node needs before a split is attempted
        (rpart's ``minsplit``).
    min_samples_leaf:
        Minimum number of samples in each leaf (rpart's ``minbucket``).
    max_depth:
        Maximum depth of the partitioning tree.
    cp:
        Complexity parameter. A split must reduce the overall sum of squares
        by at least ``cp`` times the root sum of squares; it is passed to the
        tree as ``min_impurity_decrease = cp * var(psi)``.
    representative:
        Rule picking each partition's representative point:
        - ``"median"``: per-dimension median of the member samples,
        - ``"min_psi"``: the member sample with the smallest ``psi``.
    random_state:
        Optional seed forwarded to the tree fitter.
    n_jobs:
        Number of batches evaluated concurrently through joblib. ``1`` runs
        sequentially, ``-1`` uses every core.
    """

    n_approx: int = 1
    batch_size: int | None = None

    # --- partitioning tree (rpart defaults) ---
    min_samples_split: int = 20
    min_samples_leaf: int = 7
    max_depth: int = 30
    cp: float = 0.01
    # ------------------------------------------

    representative: Literal["median", "min_psi"] = "median"
    random_state: int | None = None
    n_jobs: int = 1
