"""Residual-based choice between the constant and Taylor approximations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Sequence

import numpy as np

from .data import SampleSet
from .model import Partition
from .partition import group_by_leaf

Method = Literal["const", "taylor"]


@dataclass(slots=True)
class ApproximationRecord:
    """Both log-approximations of one partition and their fit to the samples."""

    leaf_id: int
    const_approx: float
    taylor_approx: float
    const_sse: float
    taylor_sse: float
    method: Method
    perc_mem: float

    @property
    def contribution(self) -> float:
        return self.taylor_approx if self.method == "taylor" else self.const_approx


@dataclass(slots=True)
class SampleAnnotations:
    """Per-sample leaf membership, approximations of ``psi`` and residuals."""

    leaf_id: np.ndarray
    const_pred: np.ndarray
    taylor_pred: np.ndarray
    const_resid: np.ndarray
    taylor_resid: np.ndarray


def choose_method(const_sse: float, taylor_sse: float) -> Method:
    """Taylor wins only on a strictly smaller SSE; ties go to the constant."""
    return "taylor" if taylor_sse < const_sse else "const"


def select_approximations(
    partitions: Sequence[Partition],
    integrals: Sequence[tuple[float, float]],
    samples: SampleSet,
    leaf_ids: np.ndarray,
) -> tuple[List[ApproximationRecord], SampleAnnotations]:
    """Score each partition's approximations of ``psi`` on its member samples.

    The constant method predicts ``psi(u*)`` for every member; the Taylor
    method predicts ``psi(u*) + lambda(u*)'(u - u*)``.
    """

    if len(partitions) != len(integrals):
        raise ValueError("partitions and integrals must have the same length")
    n = len(samples)
    const_pred = np.zeros(n, dtype=np.float64)
    taylor_pred = np.zeros(n, dtype=np.float64)
    members = group_by_leaf(leaf_ids)
    empty = np.empty(0, dtype=np.int64)

    records: List[ApproximationRecord] = []
    for part, (const_val, taylor_val) in zip(partitions, integrals):
        rows = members.get(part.leaf_id, empty)
        diff = samples.points[rows] - part.star
        const_pred[rows] = part.psi_star
        taylor_pred[rows] = part.psi_star + diff @ part.gradient
        const_sse = float(np.sum((samples.psi[rows] - const_pred[rows]) ** 2))
        taylor_sse = float(np.sum((samples.psi[rows] - taylor_pred[rows]) ** 2))
        records.append(
            ApproximationRecord(
                leaf_id=part.leaf_id,
                const_approx=const_val,
                taylor_approx=taylor_val,
                const_sse=const_sse,
                taylor_sse=taylor_sse,
                method=choose_method(const_sse, taylor_sse),
                perc_mem=rows.size / n if n else 0.0,
            )
        )

    annotations = SampleAnnotations(
        leaf_id=np.asarray(leaf_ids, dtype=np.int64),
        const_pred=const_pred,
        taylor_pred=taylor_pred,
        const_resid=samples.psi - const_pred,
        taylor_resid=samples.psi - taylor_pred,
    )
    return records, annotations


__all__ = ["ApproximationRecord", "SampleAnnotations", "choose_method", "select_approximations"]
