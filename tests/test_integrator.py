import math
import warnings

import numpy as np
import pytest

from hybridlil.integrator import constant_approx, integrate_partition, taylor_approx
from hybridlil.model import Partition
from hybridlil.numerics import log_interval_integral


def make_partition(lower, upper, star, psi_star, gradient) -> Partition:
    return Partition(
        leaf_id=0,
        lower=np.asarray(lower, dtype=np.float64),
        upper=np.asarray(upper, dtype=np.float64),
        star=np.asarray(star, dtype=np.float64),
        psi_star=float(psi_star),
        gradient=np.asarray(gradient, dtype=np.float64),
    )


def test_constant_approx_is_value_times_volume() -> None:
    part = make_partition([0.0, 0.0], [1.0, 2.0], [0.5, 1.0], 1.0, [0.3, -0.2])
    assert constant_approx(part) == pytest.approx(-1.0 + math.log(2.0))


def test_zero_gradient_taylor_equals_constant() -> None:
    part = make_partition([0.0, 0.0], [1.0, 2.0], [0.5, 1.0], 1.0, [0.0, 0.0])
    const, taylor = integrate_partition(part)
    assert taylor == pytest.approx(const)


def test_taylor_closed_form() -> None:
    part = make_partition([0.0, 0.0], [1.0, 2.0], [0.5, 1.0], 1.0, [1.0, -2.0])
    expected = (
        -1.0
        + (1.0 * 0.5 - 2.0 * 1.0)
        + math.log(1.0 - math.exp(-1.0))
        + math.log((math.exp(4.0) - 1.0) / 2.0)
    )
    assert taylor_approx(part) == pytest.approx(expected, rel=1e-12)


def test_taylor_is_exact_for_affine_psi() -> None:
    # psi(u) = c + g'u, integrated exactly over the box
    c = 0.7
    g = np.array([1.5, -0.4, 0.0])
    lower = np.array([-1.0, 0.0, 2.0])
    upper = np.array([0.5, 3.0, 2.5])
    star = np.array([0.1, 1.0, 2.2])
    part = make_partition(lower, upper, star, c + g @ star, g)
    exact = -c + sum(log_interval_integral(g[d], lower[d], upper[d]) for d in range(3))
    assert taylor_approx(part) == pytest.approx(exact, rel=1e-12)


def test_degenerate_bound_gives_negative_infinity_without_warnings() -> None:
    part = make_partition([0.0, 1.0], [1.0, 1.0], [0.5, 1.0], 0.0, [2.0, 3.0])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        const, taylor = integrate_partition(part)
    assert const == -np.inf
    assert taylor == -np.inf


def test_missing_representative_point_raises() -> None:
    part = Partition(leaf_id=3, lower=np.zeros(1), upper=np.ones(1))
    with pytest.raises(RuntimeError):
        constant_approx(part)
