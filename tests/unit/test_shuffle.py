import numpy as np
import pytest

from mlpnet.training.shuffle import Shuffler, shuffled


def _paired(n=12):
    X = np.arange(n * 2, dtype=np.float64).reshape(n, 2)
    Y = X[:, :1] * 10.0
    return X, Y


def test_shuffled_keeps_rows_paired_and_restores_order():
    X, Y = _paired()
    X0, Y0 = X.copy(), Y.copy()
    with shuffled(X, Y, np.random.default_rng(0)) as shuffler:
        assert not np.array_equal(X, X0)
        assert np.array_equal(Y[:, 0], X[:, 0] * 10.0)
        assert sorted(shuffler.permutation.tolist()) == list(range(12))
    assert np.array_equal(X, X0)
    assert np.array_equal(Y, Y0)


def test_shuffled_restores_order_on_error():
    X, Y = _paired()
    X0 = X.copy()
    with pytest.raises(RuntimeError):
        with shuffled(X, Y, np.random.default_rng(1)):
            raise RuntimeError("boom")
    assert np.array_equal(X, X0)


def test_shuffler_roundtrip_and_validation():
    X, Y = _paired(5)
    X0 = X.copy()
    shuffler = Shuffler(np.random.default_rng(2))
    shuffler.fit_transform(X, Y)
    shuffler.inverse_transform(X, Y)
    assert np.array_equal(X, X0)
    with pytest.raises(ValueError):
        Shuffler().fit(np.ones((3, 1)), np.ones((4, 1)))
    with pytest.raises(RuntimeError):
        Shuffler().transform(X, Y)
