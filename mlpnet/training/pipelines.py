"""Preset driven training runs that write metric artifacts."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

import yaml

from ..core.types import RunResult
from ..data import registry
from ..models import MLPClassifier, MLPRegressor
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .metrics import compute_metrics, default_metrics

_PRESETS: Dict[str, Mapping[str, object]] = {
    "random-problem-adam": {
        "data": {
            "name": "random_problem",
            "options": {"n_samples": 2000, "n_features": 3, "n_outputs": 2, "seed": 0},
        },
        "model": {"hidden": [], "activation": "identity", "loss": "square"},
        "train": {
            "solver": "adam",
            "learning_rate": 0.01,
            "epochs": 40,
            "gradient_clipping": 5.0,
            "seed": 7,
            "run_dir": "runs/random-problem-adam",
            "enable_plots": False,
        },
    },
    "sine-tanh-momentum": {
        "data": {"name": "sine", "options": {"freq": 1, "n_points": 256, "seed": 0}},
        "model": {"hidden": [16], "activation": "tanh", "loss": "square"},
        "train": {
            "solver": "momentum",
            "learning_rate": 0.05,
            "epochs": 200,
            "batch_size": 32,
            "seed": 3,
            "run_dir": "runs/sine-tanh-momentum",
            "enable_plots": False,
        },
    },
    "blobs-tanh-lbfgs": {
        "data": {"name": "blobs", "options": {"samples_per_class": 60, "seed": 0}},
        "model": {"hidden": [8], "activation": "tanh", "loss": "log", "classifier": True},
        "train": {
            "solver": "lbfgs",
            "epochs": 100,
            "alpha": 0.1,
            "seed": 11,
            "run_dir": "runs/blobs-tanh-lbfgs",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None

_ESTIMATOR_KEYS = (
    "solver",
    "learning_rate",
    "alpha",
    "l1_ratio",
    "weight_decay",
    "gradient_clipping",
    "batch_size",
    "epochs",
    "shuffle",
    "early_stopping",
    "max_epochs_without_progress",
)


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Preset {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_preset_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_presets = _file_presets()
    if name in file_presets:
        return file_presets[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset: {name}. Available presets: {available}") from exc


def build_estimator(
    model_cfg: Mapping[str, object], train_cfg: Mapping[str, object]
) -> MLPRegressor:
    """Translate the ``model``/``train`` sections into an estimator."""

    kwargs = {key: train_cfg[key] for key in _ESTIMATOR_KEYS if key in train_cfg}
    kwargs["hidden_layer_sizes"] = tuple(int(h) for h in model_cfg.get("hidden", []))
    kwargs["activation"] = str(model_cfg.get("activation", "relu"))
    if "loss" in model_cfg:
        kwargs["loss"] = str(model_cfg["loss"])
    kwargs["random_state"] = int(train_cfg.get("seed", 0))
    estimator_cls = MLPClassifier if model_cfg.get("classifier") else MLPRegressor
    return estimator_cls(**kwargs)


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = registry.get_dataset(data_cfg["name"], **data_cfg.get("options", {}))
    data_spec = dataset.data_spec
    seed = int(train_cfg.get("seed", 0))

    estimator = build_estimator(model_cfg, train_cfg)
    dims = [data_spec.d_in, *estimator.hidden_layer_sizes, data_spec.d_out]

    run_dir = _resolve_run_dir(train_cfg, dataset.name, estimator.solver)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=dims,
        activation=str(model_cfg.get("activation", "relu")),
        loss=estimator.loss,
        solver=estimator.solver,
        param_count=sum((dims[i] + 1) * dims[i + 1] for i in range(len(dims) - 1)),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    estimator.callbacks = [jsonl, csv_sink, plots]

    try:
        estimator.fit(dataset.inputs, dataset.targets)
    finally:
        plots.close()

    predictions = estimator.predict(dataset.inputs)
    metric_names = train_cfg.get("metrics") or default_metrics(data_spec.task_type)
    final = dict(
        compute_metrics(metric_names, predictions, dataset.targets, task_type=data_spec.task_type)
    )
    final["score"] = estimator.score(dataset.inputs, dataset.targets)
    final["loss"] = estimator.loss_
    final["loss_first"] = estimator.loss_first_
    final["stalled"] = estimator.stalled_
    (run_dir / "metrics_final.json").write_text(json.dumps(final, indent=2, sort_keys=True))

    summary_tail = int(train_cfg.get("summary_tail", 32))
    summary_path = write_summary(jsonl.path, run_dir / "summary.json", tail=summary_tail)

    safe_config = _safe_config(config, estimator.hidden_layer_sizes)
    safe_config["provenance"] = dict(dataset.provenance, n_samples=dataset.n_samples)
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    return RunResult(
        epochs=estimator.n_epochs_,
        loss=estimator.loss_,
        score=final["score"],
        metrics_path=str(jsonl.path),
        summary_path=str(summary_path),
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str, solver: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(train_cfg["run_dir"])
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset / solver


def _safe_config(config: Mapping[str, object], hidden: Iterable[int]) -> Mapping[str, object]:
    copied = json.loads(json.dumps(config))
    copied.setdefault("model", {})["hidden"] = list(hidden)
    return copied


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: List[int],
    activation: str,
    loss: str,
    solver: str,
    param_count: int,
) -> None:
    print("=== mlpnet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Dimensions    : {dims}")
    print(f"Activation    : {activation}")
    print(f"Loss          : {loss}")
    print(f"Solver        : {solver}")
    print(f"Parameters    : {param_count}")
    print("==================")


__all__ = ["build_estimator", "load_preset", "presets", "run_pipeline"]
