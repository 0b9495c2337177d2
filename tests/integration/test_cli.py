import json
from pathlib import Path

import pytest

from cli.main import main


def _last_json_line(capsys) -> dict:
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


def test_cli_basic_preset(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--preset", "random-problem-adam", "--epochs", "3"])
    payload = _last_json_line(capsys)
    run_dir = Path("runs/random-problem-adam")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "summary.json").exists()
    assert payload["epochs"] == 3


def test_cli_config_override_and_plots(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("train:\n  epochs: 4\n  solver: sgd\n  learning_rate: 0.05\n")
    dump = tmp_path / "resolved.json"
    main(
        [
            "--preset", "sine-tanh-momentum",
            "--config", str(override),
            "--enable-plots",
            "--seed", "3",
            "--run-dir", "out",
            "--dump-config", str(dump),
        ]
    )
    resolved = json.loads(dump.read_text())
    assert resolved["train"]["solver"] == "sgd"
    assert resolved["train"]["batch_size"] == 32
    assert (Path("out") / "loss.png").exists()
    assert _last_json_line(capsys)["epochs"] == 4


def test_cli_lists_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    assert "blobs-tanh-lbfgs" in capsys.readouterr().out.split()
