"""Partition tree structures and per-partition records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np


@dataclass
class TreeNode:
    """Represents a single node in a fitted partitioning tree.

    Rows with ``x[feature] <= threshold`` are routed to ``left``.
    """

    is_leaf: bool
    prediction: float
    feature: Optional[int] = None
    threshold: Optional[float] = None
    left: Optional[int] = None
    right: Optional[int] = None
    depth: int = 0
    n_samples: int = 0


@dataclass
class PartitionTree:
    """Axis-aligned binary tree; leaves are identified by their node index."""

    nodes: List[TreeNode] = field(default_factory=list)

    def add_node(self, node: TreeNode) -> int:
        """Append ``node`` and return its index."""
        self.nodes.append(node)
        return len(self.nodes) - 1

    @classmethod
    def single_leaf(cls, prediction: float = 0.0, n_samples: int = 0) -> "PartitionTree":
        tree = cls()
        tree.add_node(TreeNode(is_leaf=True, prediction=prediction, n_samples=n_samples))
        return tree

    @classmethod
    def from_sklearn(cls, estimator) -> "PartitionTree":
        """Convert a fitted ``sklearn.tree.DecisionTreeRegressor`` (or its ``tree_``)."""
        sk = getattr(estimator, "tree_", estimator)
        children_left = sk.children_left
        children_right = sk.children_right
        tree = cls()
        depths = np.zeros(sk.node_count, dtype=np.int64)
        for node_id in range(sk.node_count):
            left = int(children_left[node_id])
            right = int(children_right[node_id])
            is_leaf = left == right
            if not is_leaf:
                depths[left] = depths[node_id] + 1
                depths[right] = depths[node_id] + 1
            tree.add_node(
                TreeNode(
                    is_leaf=is_leaf,
                    prediction=float(sk.value[node_id].ravel()[0]),
                    feature=None if is_leaf else int(sk.feature[node_id]),
                    threshold=None if is_leaf else float(sk.threshold[node_id]),
                    left=None if is_leaf else left,
                    right=None if is_leaf else right,
                    depth=int(depths[node_id]),
                    n_samples=int(sk.n_node_samples[node_id]),
                )
            )
        return tree

    @property
    def n_leaves(self) -> int:
        return sum(1 for node in self.nodes if node.is_leaf)

    def apply(self, X: np.ndarray) -> np.ndarray:
        """Return the leaf id reached by every row of ``X``."""
        X_arr = np.asarray(X, dtype=np.float64)
        if X_arr.ndim != 2:
            raise ValueError("X must be 2D")
        if not self.nodes:
            raise RuntimeError("tree has no nodes")
        n_samples = X_arr.shape[0]
        leaf_ids = np.full(n_samples, -1, dtype=np.int64)
        stack: List[tuple[int, np.ndarray]] = [(0, np.arange(n_samples, dtype=np.int64))]
        while stack:
            node_id, indices = stack.pop()
            node = self.nodes[node_id]
            if node.is_leaf:
                leaf_ids[indices] = node_id
                continue
            left_mask = X_arr[indices, node.feature] <= node.threshold
            if np.any(left_mask):
                stack.append((node.left, indices[left_mask]))
            if not np.all(left_mask):
                stack.append((node.right, indices[~left_mask]))
        return leaf_ids

    def to_dict(self) -> Dict[str, object]:
        """Serialise the tree to a dictionary."""
        return {
            "nodes": [
                {
                    "is_leaf": node.is_leaf,
                    "prediction": node.prediction,
                    "feature": node.feature,
                    "threshold": node.threshold,
                    "left": node.left,
                    "right": node.right,
                    "depth": node.depth,
                    "n_samples": node.n_samples,
                }
                for node in self.nodes
            ]
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, object]) -> "PartitionTree":
        """Create a tree from ``payload`` produced by :meth:`to_dict`."""
        tree = cls()
        for node_data in payload["nodes"]:  # type: ignore[union-attr]
            threshold = node_data["threshold"]
            tree.add_node(
                TreeNode(
                    is_leaf=bool(node_data["is_leaf"]),
                    prediction=float(node_data["prediction"]),
                    feature=node_data["feature"],
                    threshold=None if threshold is None else float(threshold),
                    left=node_data["left"],
                    right=node_data["right"],
                    depth=int(node_data["depth"]),
                    n_samples=int(node_data.get("n_samples", 0)),
                )
            )
        return tree


@dataclass
class Partition:
    """Axis-aligned hyperrectangle matching one leaf of the fitted tree."""

    leaf_id: int
    lower: np.ndarray
    upper: np.ndarray
    n_obs: int = 0
    psi_hat: float = math.nan
    star: Optional[np.ndarray] = None
    psi_star: float = math.nan
    gradient: Optional[np.ndarray] = None

    @property
    def dim(self) -> int:
        return int(self.lower.shape[0])

    def widths(self) -> np.ndarray:
        return self.upper - self.lower

    def log_volume(self) -> float:
        """Log of the hyper-volume; ``-inf`` when any side is degenerate."""
        with np.errstate(divide="ignore"):
            return float(np.sum(np.log(self.widths())))

    def contains(self, u: np.ndarray) -> bool:
        u_arr = np.asarray(u, dtype=np.float64)
        return bool(np.all(u_arr >= self.lower) and np.all(u_arr <= self.upper))


__all__ = ["Partition", "PartitionTree", "TreeNode"]
