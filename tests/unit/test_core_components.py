import numpy as np
import pytest

from mlpnet.core.activations import (
    ActivationFunctions,
    Identity,
    Softmax,
    available_activations,
    get_activation,
)
from mlpnet.core.arena import ParameterArena, ReusableBuffer
from mlpnet.core.errors import ConfigurationError
from mlpnet.core.layers import orthonormalize
from mlpnet.core.network import Network, layer_shapes

_Z = np.array([[-1.7, -0.3, 0.4, 1.9], [-0.9, 0.2, -2.5, 1.1]])


@pytest.mark.parametrize("name", ["identity", "logistic", "tanh", "relu", "paramrelu", "elu"])
def test_activation_grad_matches_finite_difference(name):
    act = get_activation(name)
    eps = 1e-6
    y = act.func(_Z, np.empty_like(_Z))
    grad = act.grad(_Z, y, np.empty_like(_Z))
    upper = act.func(_Z + eps, np.empty_like(_Z))
    lower = act.func(_Z - eps, np.empty_like(_Z))
    assert np.allclose(grad, (upper - lower) / (2 * eps), atol=1e-6)


def test_activation_reference_values():
    out = np.empty_like(_Z)
    assert np.allclose(get_activation("relu").func(_Z, out), np.maximum(_Z, 0.0))
    assert np.allclose(get_activation("logistic").func(_Z, out), 1.0 / (1.0 + np.exp(-_Z)))
    assert np.allclose(
        get_activation("paramrelu").func(_Z, out), np.where(_Z > 0, _Z, 0.01 * _Z)
    )


def test_activation_writes_into_strided_view():
    buffer = np.zeros((2, 5))
    view = buffer[:, 1:]
    get_activation("tanh").func(_Z, view)
    assert np.allclose(buffer[:, 1:], np.tanh(_Z))
    assert np.all(buffer[:, 0] == 0.0)


def test_softmax_rows_sum_to_one():
    probs = Softmax().func(_Z * 50.0, np.empty_like(_Z))
    assert np.all(np.isfinite(probs))
    assert np.allclose(probs.sum(axis=1), 1.0)


def test_unknown_activation_lists_available_names():
    with pytest.raises(ConfigurationError) as excinfo:
        get_activation("swish")
    for name in available_activations():
        assert name in str(excinfo.value)


def test_custom_activation_object_is_accepted():
    class Square:
        def func(self, z, out):
            np.multiply(z, z, out=out)
            return out

        def grad(self, z, y, out):
            np.multiply(z, 2.0, out=out)
            return out

    act = get_activation(Square())
    assert isinstance(act, ActivationFunctions)
    assert np.allclose(act.func(_Z, np.empty_like(_Z)), _Z**2)
    with pytest.raises(ConfigurationError):
        get_activation(object())


def test_arena_views_alias_flat_vector():
    arena = ParameterArena([(4, 5), (6, 2)])
    assert len(arena) == 4 * 5 + 6 * 2
    theta0, grad0, _ = arena.views(0)
    theta1, _, _ = arena.views(1)
    arena.theta[:] = np.arange(len(arena))
    assert theta0[0, 0] == 0.0
    assert theta1[0, 0] == 20.0
    theta1[5, 1] = -1.0
    assert arena.theta[-1] == -1.0
    grad0[...] = 3.0
    assert np.all(arena.grad[:20] == 3.0)
    assert np.all(arena.grad[20:] == 0.0)


def test_arena_load_copies_in_place():
    arena = ParameterArena([(2, 3)])
    theta, _, _ = arena.views(0)
    arena.load(np.ones(6))
    assert np.all(theta == 1.0)
    with pytest.raises(ValueError):
        arena.load(np.ones(5))


def test_reusable_buffer_reallocates_only_when_growing():
    buffer = ReusableBuffer()
    first = buffer.view(10, 3)
    assert first.shape == (10, 3)
    assert buffer.allocations == 1
    smaller = buffer.view(4, 3)
    assert smaller.shape == (4, 3)
    assert buffer.allocations == 1
    assert np.shares_memory(first, smaller)
    buffer.view(20, 3)
    assert buffer.allocations == 2
    assert buffer.capacity == 60


def test_orthonormalize_tall_and_wide():
    rng = np.random.default_rng(0)
    tall = orthonormalize(rng.uniform(-0.5, 0.5, size=(6, 3)))
    assert np.allclose(tall.T @ tall, np.eye(3))
    wide = orthonormalize(rng.uniform(-0.5, 0.5, size=(2, 5)))
    assert np.allclose(wide @ wide.T, np.eye(2))
    zeros = np.zeros((3, 3))
    assert np.all(orthonormalize(zeros) == 0.0)


def test_layer_shapes_chain_and_validate():
    assert layer_shapes(3, [5], 2) == [(4, 5), (6, 2)]
    assert layer_shapes(3, [], 1) == [(4, 1)]
    with pytest.raises(ConfigurationError):
        layer_shapes(3, [0], 2)


def test_network_forward_matches_dense_computation():
    net = Network(3, 2, [4], activation="tanh", output_activation="identity")
    net.initialize(np.random.default_rng(1))
    X = np.random.default_rng(2).normal(size=(7, 3))
    w0, w1 = net.layers[0].theta, net.layers[1].theta
    hidden = np.tanh(X @ w0[1:] + w0[0])
    expected = hidden @ w1[1:] + w1[0]
    assert np.allclose(net.forward(X), expected)
    out = np.empty((7, 2))
    net.forward(X, out=out)
    assert np.allclose(out, expected)


def test_network_layers_share_buffers_between_forward_calls():
    net = Network(3, 1, [4])
    net.initialize(np.random.default_rng(0))
    X = np.ones((10, 3))
    net.forward(X)
    layer = net.layers[1]
    assert layer.x1 is net.layers[0].next_x1
    allocations = layer._z.allocations
    net.forward(X[:4])
    assert layer.z.shape == (4, 1)
    assert layer._z.allocations == allocations


def test_network_rejects_feature_mismatch():
    net = Network(3, 1)
    with pytest.raises(ConfigurationError):
        net.forward(np.ones((2, 4)))


def test_network_output_activation_override():
    net = Network(2, 3, [4], activation="relu", output_activation="softmax")
    assert [layer.activation_name for layer in net.layers] == ["relu", "softmax"]
    assert isinstance(Network(2, 1, activation=Identity()).output_layer.activation, Identity)
    assert net.parameter_count() == 3 * 4 + 5 * 3
