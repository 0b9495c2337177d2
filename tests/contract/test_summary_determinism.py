import json
from pathlib import Path

from mlpnet.training import pipelines


def _config(run_dir: Path) -> dict:
    return {
        "data": {"name": "sine", "options": {"n_points": 64, "seed": 123}},
        "model": {"hidden": [4], "activation": "tanh", "loss": "square"},
        "train": {
            "solver": "adam",
            "learning_rate": 0.05,
            "epochs": 12,
            "batch_size": 16,
            "seed": 55,
            "run_dir": str(run_dir),
            "enable_plots": False,
        },
    }


def test_summary_outputs_are_deterministic(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "run_a"))
    second = pipelines.run_pipeline(_config(tmp_path / "run_b"))

    assert Path(first.metrics_path).read_bytes() == Path(second.metrics_path).read_bytes()
    assert Path(first.summary_path).read_bytes() == Path(second.summary_path).read_bytes()
    assert first.loss == second.loss


def test_run_artifacts_contract(tmp_path):
    result = pipelines.run_pipeline(_config(tmp_path / "run"))
    run_dir = tmp_path / "run"

    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert [record["epoch"] for record in records] == list(range(1, 13))
    assert all(record["split"] == "train" and record["seed"] == 55 for record in records)
    assert records[-1]["loss"] == result.loss

    csv_lines = (run_dir / "metrics.csv").read_text().splitlines()
    assert csv_lines[0] == "epoch,loss,split"
    assert len(csv_lines) == 13

    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["records"] == 12
    assert summary["metrics"]["loss"]["first"] == records[0]["loss"]

    final = json.loads((run_dir / "metrics_final.json").read_text())
    assert set(final) >= {"mae", "rmse", "r2", "score", "loss", "loss_first", "stalled"}
    assert final["score"] == result.score
    assert json.loads((run_dir / "config.json").read_text())["model"]["hidden"] == [4]
