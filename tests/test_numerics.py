import math

import numpy as np
import pytest
import torch

from hybridlil.numerics import log1mexp, log_det, log_interval_integral, log_sum_exp


def test_log_sum_exp_bounds_and_small_range() -> None:
    rng = np.random.default_rng(0)
    for _ in range(20):
        xs = rng.normal(scale=2.0, size=rng.integers(1, 30))
        value = log_sum_exp(xs)
        assert value >= xs.max()
        assert value == pytest.approx(math.log(np.sum(np.exp(xs))), rel=1e-12)


def test_log_sum_exp_single_element() -> None:
    assert log_sum_exp([3.25]) == 3.25
    assert log_sum_exp(np.array([-700.0])) == -700.0


def test_log_sum_exp_no_overflow() -> None:
    assert log_sum_exp([1000.0, 1000.0]) == pytest.approx(1000.0 + math.log(2.0))
    assert log_sum_exp([-1000.0, -1e6]) == pytest.approx(-1000.0)


def test_log_sum_exp_guard_replaces_non_finite() -> None:
    assert log_sum_exp([-np.inf, -np.inf]) == -np.inf
    assert log_sum_exp([np.inf, 1.0]) == np.inf
    assert log_sum_exp([-np.inf, 2.0]) == pytest.approx(2.0)


def test_log_sum_exp_empty_raises() -> None:
    with pytest.raises(ValueError):
        log_sum_exp([])


def test_log_det() -> None:
    assert log_det(np.diag([2.0, 3.0])) == pytest.approx(math.log(6.0))
    assert log_det(np.array([[0.0, -2.0], [1.0, 0.0]])) == pytest.approx(math.log(2.0))
    sigma = np.array([[2.0, 0.5], [0.5, 1.0]])
    assert log_det(sigma) == pytest.approx(math.log(np.linalg.det(sigma)))


def test_log_det_singular_is_negative_infinity() -> None:
    assert log_det(np.array([[1.0, 2.0], [2.0, 4.0]])) == -np.inf


def test_log_det_requires_square() -> None:
    with pytest.raises(ValueError):
        log_det(np.ones((2, 3)))


def test_log1mexp_accuracy() -> None:
    assert log1mexp(1e-10) == pytest.approx(math.log(1e-10), rel=1e-9)
    assert log1mexp(50.0) == pytest.approx(-math.exp(-50.0), rel=1e-9)
    assert log1mexp(math.log(2.0)) == pytest.approx(math.log(0.5))
    assert log1mexp(0.0) == -np.inf


def test_log1mexp_array_and_domain() -> None:
    xs = np.array([0.1, 1.0, 5.0])
    np.testing.assert_allclose(log1mexp(xs), np.log1p(-np.exp(-xs)), rtol=1e-12)
    with pytest.raises(ValueError):
        log1mexp(-1.0)


def _quadrature(slope: float, lower: float, upper: float) -> float:
    t = torch.linspace(lower, upper, 200_001, dtype=torch.float64)
    return math.log(float(torch.trapezoid(torch.exp(-slope * t), t)))


@pytest.mark.parametrize("slope", [-5.0, -0.01, 0.0, 0.01, 5.0])
def test_log_interval_integral_matches_quadrature(slope: float) -> None:
    lower, upper = 0.2, 1.3
    expected = _quadrature(slope, lower, upper)
    assert log_interval_integral(slope, lower, upper) == pytest.approx(expected, rel=1e-6)


def test_log_interval_integral_zero_slope() -> None:
    assert log_interval_integral(0.0, -1.0, 2.0) == pytest.approx(math.log(3.0))


def test_log_interval_integral_underflowing_slope() -> None:
    assert log_interval_integral(5e-324, 0.0, 0.1) == pytest.approx(math.log(0.1))
    assert log_interval_integral(-5e-324, 0.0, 0.1) == pytest.approx(math.log(0.1))


def test_log_interval_integral_large_slopes_stay_finite() -> None:
    value = log_interval_integral(800.0, 1.0, 2.0)
    assert value == pytest.approx(-800.0 - math.log(800.0))
    value = log_interval_integral(-800.0, 1.0, 2.0)
    assert value == pytest.approx(1600.0 - math.log(800.0))


def test_log_interval_integral_degenerate_and_reversed() -> None:
    assert log_interval_integral(2.0, 0.5, 0.5) == -np.inf
    assert log_interval_integral(0.0, 0.5, 0.5) == -np.inf
    with pytest.raises(ValueError):
        log_interval_integral(1.0, 1.0, 0.0)
