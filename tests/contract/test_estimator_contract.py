import numpy as np
import pytest

from mlpnet.data import available_datasets, get_dataset, register_dataset
from mlpnet.data.registry import DataSpec, DatasetSpec
from mlpnet.models import MLPRegressor
from mlpnet.training import pipelines


def test_builtin_datasets_are_registered():
    assert {"random_problem", "sine", "blobs"} <= set(available_datasets())
    spec = get_dataset("random_problem", n_samples=30, n_outputs=3, loss="cross-entropy")
    assert spec.inputs.shape == (30, 3)
    assert np.all(spec.targets.sum(axis=1) == 1.0)
    assert spec.data_spec.task_type == "multiclass"
    with pytest.raises(KeyError, match="Available datasets"):
        get_dataset("mnist")


def test_registered_dataset_is_validated():
    @register_dataset("broken_rows")
    def _broken():
        return DatasetSpec(
            name="broken_rows",
            inputs=np.zeros((3, 1)),
            targets=np.zeros((2, 1)),
            data_spec=DataSpec(d_in=1, d_out=1, task_type="regression"),
            provenance={},
        )

    with pytest.raises(ValueError):
        get_dataset("broken_rows")


def test_presets_include_file_presets():
    names = set(pipelines.presets())
    assert {"random-problem-adam", "sine-tanh-momentum", "blobs-tanh-lbfgs"} <= names
    assert "sine-elu-rmsprop" in names
    config = pipelines.load_preset("sine-elu-rmsprop")
    assert config["train"]["solver"] == "rmsprop"
    with pytest.raises(KeyError, match="Available presets"):
        pipelines.load_preset("missing")


def test_build_estimator_from_sections():
    estimator = pipelines.build_estimator(
        {"hidden": [3, 2], "activation": "elu", "loss": "log", "classifier": True},
        {"solver": "cg", "alpha": 0.5, "seed": 9, "epochs": 10},
    )
    assert type(estimator).__name__ == "MLPClassifier"
    assert estimator.hidden_layer_sizes == (3, 2)
    assert (estimator.solver, estimator.alpha, estimator.random_state) == ("cg", 0.5, 9)


def test_transform_returns_predictions():
    dataset = get_dataset("sine", n_points=32)
    model = MLPRegressor(hidden_layer_sizes=(3,), activation="tanh", epochs=3, random_state=0)
    X, predictions = model.fit_transform(dataset.inputs, dataset.targets)
    assert X is dataset.inputs
    assert predictions.shape == dataset.targets.shape
    assert np.allclose(model.transform(X)[1], predictions)
    assert model.fit_result_.loss == model.loss_
