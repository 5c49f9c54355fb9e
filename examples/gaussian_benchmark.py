"""Benchmark the hybrid LIL approximation on Gaussian targets with a known answer."""

from __future__ import annotations

import logging
import math
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hybridlil.approximator import HybridApproximator
from hybridlil.config import HybridConfig
from hybridlil.data import preprocess
from hybridlil.numerics import log_det
from hybridlil.objective import Objective


DIMS = (1, 2, 4, 6)
N_APPROX = 20
J = 1000
SEED = 123


@dataclass
class BenchmarkResult:
    dim: int
    truth: float
    const_mean: float
    taylor_mean: float
    hybrid_mean: float
    hybrid_sd: float
    seconds: float


def make_covariance(dim: int, rng: np.random.Generator) -> np.ndarray:
    """Random well-conditioned covariance matrix."""
    A = rng.normal(size=(dim, dim))
    return A @ A.T / dim + 0.5 * np.eye(dim)


def run(dim: int, rng: np.random.Generator) -> BenchmarkResult:
    sigma = make_covariance(dim, rng)
    precision = np.linalg.inv(sigma)
    objective = Objective(
        psi=lambda u, p: 0.5 * float(u @ p @ u),
        grad=lambda u, p: p @ u,
        prior=precision,
    )
    # log of the normalising constant of exp(-psi) over R^D
    truth = 0.5 * dim * math.log(2.0 * math.pi) + 0.5 * log_det(sigma)

    points = rng.multivariate_normal(np.zeros(dim), sigma, size=N_APPROX * J)
    samples = preprocess(points, objective, dim=dim)
    config = HybridConfig(n_approx=N_APPROX, batch_size=J, random_state=SEED, n_jobs=-1)

    t0 = time.perf_counter()
    result = HybridApproximator(objective, config).approximate(samples)
    seconds = time.perf_counter() - t0

    return BenchmarkResult(
        dim=dim,
        truth=truth,
        const_mean=float(np.mean(result.const_vec)),
        taylor_mean=float(np.mean(result.taylor_vec)),
        hybrid_mean=float(np.mean(result.hybrid_vec)),
        hybrid_sd=float(np.std(result.hybrid_vec)),
        seconds=seconds,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    rng = np.random.default_rng(SEED)
    results: List[BenchmarkResult] = [run(dim, rng) for dim in DIMS]

    print("D      truth     const    taylor    hybrid   (sd)     time (s)")
    print("-" * 64)
    for res in results:
        print(
            f"{res.dim:<4} {res.truth:>8.4f} {res.const_mean:>9.4f} {res.taylor_mean:>9.4f} "
            f"{res.hybrid_mean:>9.4f} ({res.hybrid_sd:.4f}) {res.seconds:>8.2f}"
        )
