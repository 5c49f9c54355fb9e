"""Hybrid approximation of the log integrated likelihood over tree partitions."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field, replace
from time import perf_counter
from typing import List, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .config import HybridConfig
from .data import SampleSet, extract_support, preprocess, split_batches
from .integrator import integrate_partition
from .model import Partition, PartitionTree
from .numerics import log_sum_exp
from .objective import Objective
from .partition import RegressionTreeFitter, TreeFitter, extract_partition, representative_points
from .selector import ApproximationRecord, SampleAnnotations, select_approximations


@dataclass(slots=True)
class BatchResult:
    """Everything computed for one batch of posterior samples."""

    index: int
    const_approx: float
    taylor_approx: float
    hybrid_approx: float
    partitions: List[Partition]
    records: List[ApproximationRecord]
    annotations: SampleAnnotations
    tree: PartitionTree
    elapsed_ms: float = 0.0

    @property
    def n_const(self) -> int:
        return sum(1 for rec in self.records if rec.method == "const")

    @property
    def n_taylor(self) -> int:
        return sum(1 for rec in self.records if rec.method == "taylor")

    def diagnostics(self) -> pd.DataFrame:
        """One row per partition, sorted by descending membership fraction."""
        rows = []
        for part, rec in zip(self.partitions, self.records):
            row: dict[str, float | int | str] = {
                "leaf_id": part.leaf_id,
                "n_obs": part.n_obs,
                "perc_mem": rec.perc_mem,
                "psi_hat": part.psi_hat,
                "psi_star": part.psi_star,
            }
            for d in range(part.dim):
                row[f"u{d + 1}_star"] = float(part.star[d])
            for d in range(part.dim):
                row[f"u{d + 1}_lb"] = float(part.lower[d])
                row[f"u{d + 1}_ub"] = float(part.upper[d])
            row["const"] = rec.const_approx
            row["taylor"] = rec.taylor_approx
            for d in range(part.dim):
                row[f"lambda{d + 1}"] = float(part.gradient[d])
            row["const_sse"] = rec.const_sse
            row["taylor_sse"] = rec.taylor_sse
            row["method"] = rec.method
            rows.append(row)
        frame = pd.DataFrame(rows)
        return frame.sort_values("perc_mem", ascending=False, kind="stable").reset_index(drop=True)


@dataclass(slots=True)
class HybridResult:
    """Per-batch estimates in batch order plus the batches themselves."""

    const_vec: np.ndarray
    taylor_vec: np.ndarray
    hybrid_vec: np.ndarray
    batches: List[BatchResult] = field(default_factory=list)

    @property
    def last(self) -> BatchResult:
        if not self.batches:
            raise RuntimeError("result holds no batches")
        return self.batches[-1]

    def diagnostics(self) -> pd.DataFrame:
        """Partition diagnostics of the final batch."""
        return self.last.diagnostics()


def combine_contributions(records: Sequence[ApproximationRecord]) -> tuple[float, float, float]:
    """Reduce per-partition log-approximations to ``(const, taylor, hybrid)``.

    The hybrid estimate uses each partition's selected method; a method that
    no partition selected is left out rather than reduced as an empty set.
    """
    if not records:
        raise ValueError("cannot combine an empty set of partitions")
    const_total = log_sum_exp([rec.const_approx for rec in records])
    taylor_total = log_sum_exp([rec.taylor_approx for rec in records])

    const_contribution = [rec.const_approx for rec in records if rec.method == "const"]
    taylor_contribution = [rec.taylor_approx for rec in records if rec.method == "taylor"]
    if not taylor_contribution:
        hybrid_total = log_sum_exp(const_contribution)
    elif not const_contribution:
        hybrid_total = log_sum_exp(taylor_contribution)
    else:
        hybrid_total = log_sum_exp(const_contribution + taylor_contribution)
    return const_total, taylor_total, hybrid_total


class HybridApproximator:
    """Estimate the LIL by mixing constant and Taylor integrals over tree partitions."""

    def __init__(
        self,
        objective: Objective,
        config: HybridConfig | None = None,
        fitter: TreeFitter | None = None,
    ) -> None:
        config = config or HybridConfig()
        env_jobs = os.getenv("HYBRIDLIL_N_JOBS")
        if env_jobs:
            config = replace(config, n_jobs=int(env_jobs))
        self._validate_config(config)
        self.config = config
        self.objective = objective
        self.fitter: TreeFitter = fitter or RegressionTreeFitter(config)
        self._logger = logging.getLogger(__name__)
        self._result: HybridResult | None = None

    @staticmethod
    def _validate_config(config: HybridConfig) -> None:
        if config.n_approx < 1:
            raise ValueError("n_approx must be at least 1")
        if config.batch_size is not None and config.batch_size < 1:
            raise ValueError("batch_size must be positive")
        if config.min_samples_split < 2:
            raise ValueError("min_samples_split must be at least 2")
        if config.min_samples_leaf < 1:
            raise ValueError("min_samples_leaf must be at least 1")
        if config.max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        if config.cp < 0:
            raise ValueError("cp must be non-negative")
        if config.representative not in {"median", "min_psi"}:
            raise ValueError(f"Unsupported representative rule: {config.representative}")
        if config.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")

    @property
    def result(self) -> HybridResult:
        if self._result is None:
            raise RuntimeError("approximate() must be called before accessing the result")
        return self._result

    def approximate_batch(self, samples: SampleSet, index: int = 0) -> BatchResult:
        """Run the full partition / integrate / select / combine pipeline on one batch."""
        start = perf_counter()
        tree = self.fitter.fit(samples)
        leaf_ids = tree.apply(samples.points)
        partitions = extract_partition(tree, extract_support(samples))
        representative_points(
            partitions, samples, leaf_ids, self.objective, rule=self.config.representative
        )
        integrals = [integrate_partition(part) for part in partitions]
        records, annotations = select_approximations(partitions, integrals, samples, leaf_ids)
        const_total, taylor_total, hybrid_total = combine_contributions(records)
        elapsed_ms = (perf_counter() - start) * 1000.0

        batch = BatchResult(
            index=index,
            const_approx=const_total,
            taylor_approx=taylor_total,
            hybrid_approx=hybrid_total,
            partitions=partitions,
            records=records,
            annotations=annotations,
            tree=tree,
            elapsed_ms=elapsed_ms,
        )
        return batch

    def _log_batch(self, batch: BatchResult) -> None:
        estimates = (batch.const_approx, batch.taylor_approx, batch.hybrid_approx)
        if not all(math.isfinite(v) for v in estimates):
            self._logger.warning(
                "batch %d produced non-finite estimates (const=%s, taylor=%s, hybrid=%s)",
                batch.index,
                *estimates,
            )
        if self._logger.isEnabledFor(logging.INFO):
            self._logger.info(
                json.dumps(
                    {
                        "batch": batch.index,
                        "n_samples": int(batch.annotations.leaf_id.size),
                        "partitions": len(batch.partitions),
                        "n_const": batch.n_const,
                        "n_taylor": batch.n_taylor,
                        "const": batch.const_approx,
                        "taylor": batch.taylor_approx,
                        "hybrid": batch.hybrid_approx,
                        "elapsed_ms": batch.elapsed_ms,
                    }
                )
            )

    def _check_objective(self, samples: SampleSet) -> None:
        """Evaluate the objective once so dimension mismatches surface before any fit."""
        if len(samples) == 0:
            raise ValueError("cannot approximate from an empty sample set")
        self.objective.value_and_gradient(samples.points[0])

    def approximate(
        self,
        samples: SampleSet,
        n_approx: int | None = None,
        batch_size: int | None = None,
    ) -> HybridResult:
        """Form ``n_approx`` independent approximations from contiguous batches.

        Parameters
        ----------
        samples:
            Pool of at least ``n_approx * batch_size`` posterior samples.
        n_approx:
            Number of batches; defaults to ``config.n_approx``.
        batch_size:
            Rows per batch ``J``; defaults to ``config.batch_size`` or an even
            split of the pool.
        """
        n_approx = self.config.n_approx if n_approx is None else n_approx
        batch_size = self.config.batch_size if batch_size is None else batch_size
        self._check_objective(samples)
        batches = split_batches(samples, n_approx, batch_size)

        if self.config.n_jobs == 1 or len(batches) == 1:
            results = [self.approximate_batch(batch, t) for t, batch in enumerate(batches)]
        else:
            results = Parallel(n_jobs=self.config.n_jobs)(
                delayed(self.approximate_batch)(batch, t) for t, batch in enumerate(batches)
            )
        results = sorted(results, key=lambda r: r.index)
        for batch in results:
            self._log_batch(batch)

        self._result = HybridResult(
            const_vec=np.array([r.const_approx for r in results], dtype=np.float64),
            taylor_vec=np.array([r.taylor_approx for r in results], dtype=np.float64),
            hybrid_vec=np.array([r.hybrid_approx for r in results], dtype=np.float64),
            batches=list(results),
        )
        return self._result


def approx_lil(
    points,
    objective: Objective,
    config: HybridConfig | None = None,
    *,
    dim: int | None = None,
    fitter: TreeFitter | None = None,
) -> HybridResult:
    """Evaluate ``psi`` on ``points`` and run :meth:`HybridApproximator.approximate`."""
    samples = preprocess(points, objective, dim=dim)
    return HybridApproximator(objective, config, fitter=fitter).approximate(samples)


__all__ = [
    "BatchResult",
    "HybridApproximator",
    "HybridResult",
    "approx_lil",
    "combine_contributions",
]
