import logging

import numpy as np
import pandas as pd
import pytest
import torch

from hybridlil.data import SampleSet, extract_support, preprocess, split_batches
from hybridlil.objective import Objective


def _objective() -> Objective:
    return Objective(psi=lambda u, p: float(np.sum(u**2)), grad=lambda u, p: 2.0 * u)


def make_samples(n_rows: int = 12, dim: int = 2, seed: int = 0) -> SampleSet:
    rng = np.random.default_rng(seed)
    points = rng.uniform(-1.0, 1.0, size=(n_rows, dim))
    return SampleSet(points=points, psi=np.sum(points**2, axis=1))


def test_sample_set_is_read_only() -> None:
    samples = make_samples()
    assert samples.dim == 2
    assert len(samples) == 12
    with pytest.raises(ValueError):
        samples.points[0, 0] = 5.0
    with pytest.raises(ValueError):
        samples.psi[0] = 5.0


def test_sample_set_copies_input() -> None:
    points = np.zeros((3, 1))
    samples = SampleSet(points=points, psi=np.zeros(3))
    points[0, 0] = 9.0
    assert samples.points[0, 0] == 0.0


def test_sample_set_validates_shapes() -> None:
    with pytest.raises(ValueError):
        SampleSet(points=np.zeros((3, 2)), psi=np.zeros(4))
    with pytest.raises(ValueError):
        SampleSet(points=np.zeros((2, 2, 2)), psi=np.zeros(2))
    with pytest.raises(ValueError):
        SampleSet(points=np.array([[np.nan]]), psi=np.zeros(1))


def test_one_dimensional_points_become_a_column() -> None:
    samples = SampleSet(points=np.array([0.1, 0.2, 0.3]), psi=np.zeros(3))
    assert samples.points.shape == (3, 1)


def test_preprocess_evaluates_psi() -> None:
    points = np.array([[1.0, 2.0], [0.0, -1.0]])
    samples = preprocess(points, _objective())
    np.testing.assert_allclose(samples.psi, [5.0, 1.0])


def test_preprocess_accepts_dataframe_and_tensor() -> None:
    frame = pd.DataFrame({"u1": [1.0, 0.0], "u2": [2.0, -1.0]})
    np.testing.assert_allclose(preprocess(frame, _objective()).psi, [5.0, 1.0])
    tensor = torch.tensor([[1.0, 2.0], [0.0, -1.0]])
    np.testing.assert_allclose(preprocess(tensor, _objective()).psi, [5.0, 1.0])


def test_preprocess_rejects_dimension_mismatch() -> None:
    with pytest.raises(ValueError, match="D=3"):
        preprocess(np.zeros((4, 2)), _objective(), dim=3)


def test_extract_support() -> None:
    samples = SampleSet(points=np.array([[0.0, 5.0], [2.0, -1.0], [1.0, 3.0]]), psi=np.zeros(3))
    np.testing.assert_array_equal(extract_support(samples), [[0.0, 2.0], [-1.0, 5.0]])


def test_split_batches_contiguous() -> None:
    samples = make_samples(n_rows=12)
    batches = split_batches(samples, n_approx=3, batch_size=4)
    assert [len(b) for b in batches] == [4, 4, 4]
    np.testing.assert_array_equal(batches[1].points, samples.points[4:8])
    np.testing.assert_array_equal(batches[2].psi, samples.psi[8:12])


def test_split_batches_even_split_by_default() -> None:
    batches = split_batches(make_samples(n_rows=12), n_approx=4)
    assert [len(b) for b in batches] == [3, 3, 3, 3]


def test_split_batches_warns_on_surplus(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="hybridlil.data"):
        batches = split_batches(make_samples(n_rows=10), n_approx=2, batch_size=4)
    assert len(batches) == 2
    assert "ignoring 2 trailing samples" in caplog.text


def test_split_batches_requires_enough_rows() -> None:
    with pytest.raises(ValueError):
        split_batches(make_samples(n_rows=10), n_approx=3, batch_size=4)
    with pytest.raises(ValueError):
        split_batches(make_samples(n_rows=2), n_approx=3)
