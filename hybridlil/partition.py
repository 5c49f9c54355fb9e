"""Tree fitting, partition extraction and representative-point selection."""

from __future__ import annotations

import logging
from typing import Dict, List, Protocol

import numpy as np
from sklearn.tree import DecisionTreeRegressor

from .config import HybridConfig
from .data import SampleSet
from .model import Partition, PartitionTree
from .objective import Objective

logger = logging.getLogger(__name__)


class TreeFitter(Protocol):
    """Anything that fits an axis-aligned partitioning tree to ``psi`` values."""

    def fit(self, samples: SampleSet) -> PartitionTree: ...


class RegressionTreeFitter:
    """CART regression tree of ``psi(u)`` on ``u`` with rpart-style stopping rules."""

    def __init__(self, config: HybridConfig) -> None:
        self.config = config

    def build_estimator(self, samples: SampleSet) -> DecisionTreeRegressor:
        cfg = self.config
        # rpart's cp is relative to the root deviance; sklearn's threshold is
        # the absolute weighted impurity decrease, so scale by var(psi).
        root_var = float(np.var(samples.psi))
        return DecisionTreeRegressor(
            criterion="squared_error",
            max_depth=cfg.max_depth,
            min_samples_split=cfg.min_samples_split,
            min_samples_leaf=cfg.min_samples_leaf,
            min_impurity_decrease=cfg.cp * root_var,
            random_state=cfg.random_state,
        )

    def fit(self, samples: SampleSet) -> PartitionTree:
        if len(samples) == 0:
            raise ValueError("cannot fit a partition to an empty batch")
        estimator = self.build_estimator(samples)
        estimator.fit(samples.points, samples.psi)
        return PartitionTree.from_sklearn(estimator)


def extract_partition(tree: PartitionTree, support: np.ndarray) -> List[Partition]:
    """Intersect ``support`` with the split conditions leading to every leaf.

    ``support`` is a ``(D, 2)`` array of ``[min, max]`` rows. The returned
    boxes tile the support exactly; thresholds falling outside of it are
    clipped to its faces.
    """

    support_arr = np.asarray(support, dtype=np.float64)
    if support_arr.ndim != 2 or support_arr.shape[1] != 2:
        raise ValueError("support must have shape (D, 2)")
    if np.any(support_arr[:, 1] < support_arr[:, 0]):
        raise ValueError("support lower bounds must not exceed upper bounds")
    if not tree.nodes:
        raise ValueError("cannot extract a partition from an empty tree")

    partitions: List[Partition] = []
    stack = [(0, support_arr[:, 0].copy(), support_arr[:, 1].copy())]
    while stack:
        node_id, lower, upper = stack.pop()
        node = tree.nodes[node_id]
        if node.is_leaf:
            partitions.append(Partition(leaf_id=node_id, lower=lower, upper=upper))
            continue
        f = node.feature
        cut = min(max(node.threshold, lower[f]), upper[f])
        right_lower = lower.copy()
        right_lower[f] = cut
        left_upper = upper.copy()
        left_upper[f] = cut
        # right first so the left subtree is emitted first
        stack.append((node.right, right_lower, upper))
        stack.append((node.left, lower, left_upper))
    return partitions


def group_by_leaf(leaf_ids: np.ndarray) -> Dict[int, np.ndarray]:
    """Map each leaf id to the (sorted) row indices routed to it."""

    leaf_arr = np.asarray(leaf_ids, dtype=np.int64)
    if leaf_arr.size == 0:
        return {}
    order = np.argsort(leaf_arr, kind="stable")
    sorted_ids = leaf_arr[order]
    uniq, starts = np.unique(sorted_ids, return_index=True)
    stops = np.append(starts[1:], sorted_ids.size)
    return {int(leaf): order[a:b] for leaf, a, b in zip(uniq, starts, stops)}


def representative_points(
    partitions: List[Partition],
    samples: SampleSet,
    leaf_ids: np.ndarray,
    objective: Objective,
    rule: str = "median",
) -> List[Partition]:
    """Fill ``star``, ``psi_star``, ``gradient``, ``n_obs`` and ``psi_hat`` in place."""

    if rule not in {"median", "min_psi"}:
        raise ValueError(f"Unsupported representative rule: {rule}")
    members = group_by_leaf(leaf_ids)
    empty = np.empty(0, dtype=np.int64)
    for part in partitions:
        rows = members.get(part.leaf_id, empty)
        part.n_obs = int(rows.size)
        if rows.size == 0:
            logger.warning("leaf %d holds no samples; anchoring at the box centre", part.leaf_id)
            star = 0.5 * (part.lower + part.upper)
        else:
            part.psi_hat = float(np.mean(samples.psi[rows]))
            if rule == "median":
                star = np.median(samples.points[rows], axis=0)
            else:
                star = samples.points[rows[np.argmin(samples.psi[rows])]].copy()
        part.star = star
        part.psi_star, part.gradient = objective.value_and_gradient(star)
    return partitions


__all__ = [
    "RegressionTreeFitter",
    "TreeFitter",
    "extract_partition",
    "group_by_leaf",
    "representative_points",
]
