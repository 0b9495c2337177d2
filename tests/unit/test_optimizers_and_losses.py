import numpy as np
import pytest

from mlpnet.core.errors import ConfigurationError
from mlpnet.core.optimizers import (
    SGD,
    Adadelta,
    Adagrad,
    Adam,
    Momentum,
    RMSProp,
    available_solvers,
    is_external,
    optimizer_factory,
)
from mlpnet.training.losses import REGISTRY as LOSS_REGISTRY
from mlpnet.training.metrics import predicted_labels, score

_GRAD = np.array([[0.5, -2.0], [0.0, 1.5]])


def _step(optimizer, grad=_GRAD):
    return optimizer.get_update(grad, np.empty_like(grad)).copy()


def test_sgd_step():
    assert np.allclose(_step(SGD(learning_rate=0.1)), -0.1 * _GRAD)


def test_momentum_accumulates_velocity():
    opt = Momentum(learning_rate=0.1, momentum=0.9)
    first = _step(opt)
    second = _step(opt)
    assert np.allclose(first, -0.1 * _GRAD)
    assert np.allclose(second, 0.9 * first - 0.1 * _GRAD)


def test_agd_is_nesterov_momentum():
    opt = optimizer_factory("agd", 0.1)()
    assert isinstance(opt, Momentum) and opt.nesterov
    assert np.allclose(_step(opt), -(1.0 + 0.9) * 0.1 * _GRAD)


def test_adaptive_first_steps():
    sign = np.sign(_GRAD)
    assert np.allclose(_step(Adam(learning_rate=0.01)), -0.01 * sign, atol=1e-6)
    assert np.allclose(_step(Adagrad(learning_rate=0.01)), -0.01 * sign, atol=1e-6)
    rms = _step(RMSProp(learning_rate=0.001, rho=0.9))
    assert np.allclose(rms, -0.001 * sign / np.sqrt(0.1), atol=1e-6)
    delta = _step(Adadelta(rho=0.95, epsilon=1e-6))
    expected = -_GRAD * np.sqrt(1e-6) / np.sqrt(0.05 * _GRAD**2 + 1e-6)
    assert np.allclose(delta, expected)


def test_factory_builds_independent_optimizers():
    factory = optimizer_factory("adam", learning_rate=0.5)
    first, second = factory(), factory()
    assert first is not second
    assert first.learning_rate == 0.5
    _step(first)
    assert first.t == 1 and second.t == 0


def test_solver_registry():
    assert set(available_solvers()) >= {
        "sgd", "momentum", "agd", "adagrad", "rmsprop", "adadelta", "adam", "lbfgs", "bfgs", "cg"
    }
    assert is_external("lbfgs") and not is_external("adam")
    with pytest.raises(ConfigurationError, match="Available solvers"):
        optimizer_factory("newton")


def test_square_loss_uses_full_sample_count():
    y_true = np.array([[1.0, 0.0], [0.0, 2.0]])
    y_pred = np.array([[0.5, 0.0], [1.0, 1.0]])
    grad = np.empty_like(y_pred)
    loss = LOSS_REGISTRY.get("square")(y_true, y_pred, grad, 10)
    assert loss == pytest.approx(0.5 * (0.25 + 1.0 + 1.0) / 10)
    assert np.allclose(grad, (y_pred - y_true) / 10)


def test_cross_entropy_clips_probabilities():
    loss = LOSS_REGISTRY.get("cross-entropy")
    value = loss(np.array([[1.0, 0.0]]), np.array([[0.0, 1.0]]), None, 1)
    assert np.isfinite(value)
    assert value == pytest.approx(-2.0 * np.log(1e-15), rel=1e-3)
    y_true = np.array([[1.0], [0.0]])
    y_pred = np.array([[0.8], [0.3]])
    expected = -(np.log(0.8) + np.log(0.7)) / 2
    assert loss(y_true, y_pred, None, 2) == pytest.approx(expected)


def test_log_loss_multi_output():
    y_true = np.array([[0.0, 1.0, 0.0]])
    y_pred = np.array([[0.2, 0.5, 0.3]])
    grad = np.empty_like(y_pred)
    value = LOSS_REGISTRY.get("log")(y_true, y_pred, grad, 4)
    assert value == pytest.approx(-np.log(0.5) / 4)
    assert np.allclose(grad, (y_pred - y_true) / 4)


def test_loss_output_activation_pairing():
    assert LOSS_REGISTRY.output_activation("square", n_outputs=3) is None
    assert LOSS_REGISTRY.output_activation("log", n_outputs=1) == "logistic"
    assert LOSS_REGISTRY.output_activation("log", n_outputs=3) == "softmax"
    assert LOSS_REGISTRY.output_activation("cross-entropy", n_outputs=3) == "logistic"
    assert LOSS_REGISTRY.resolve("log", n_outputs=1).name == "cross-entropy"


def test_unknown_loss_lists_names():
    with pytest.raises(ConfigurationError, match="cross-entropy"):
        LOSS_REGISTRY.get("hinge")


def test_score_thresholds_probabilities():
    targets = np.array([[1.0], [0.0], [1.0], [0.0]])
    proba = np.array([[0.97], [0.2], [0.51], [0.6]])
    assert score("cross-entropy", targets, proba) == pytest.approx(0.75)
    assert np.array_equal(predicted_labels(proba), [[1.0], [0.0], [1.0], [1.0]])


def test_score_uses_argmax_for_softmax_outputs():
    targets = np.eye(3)[[0, 2, 1]]
    proba = np.array([[0.5, 0.3, 0.2], [0.1, 0.4, 0.5], [0.2, 0.7, 0.1]])
    assert score("log", targets, proba, output_activation="softmax") == 1.0
    assert np.array_equal(predicted_labels(proba, one_hot=True), targets)
