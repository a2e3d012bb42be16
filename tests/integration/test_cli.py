import json
from pathlib import Path

import pytest

from cli.main import main


def _train(*extra):
    main(["train", "--preset", "sentiment-quick", "--epochs", "20", *extra])


def test_cli_train_then_predict(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    _train("--fresh")
    out = capsys.readouterr().out
    run_dir = Path("runs/sentiment-quick")
    assert (run_dir / "model.json").exists()
    assert (run_dir / "vocabulary.json").exists()
    assert (run_dir / "metrics_train.jsonl").exists()
    assert (run_dir / "config.json").exists()
    assert "Vocabulary size: 22" in out
    summary = json.loads(out.strip().splitlines()[-1])
    assert summary["epochs_run"] == 20
    assert summary["final_epoch"] == 20

    main(["predict", "--preset", "sentiment-quick", "i hate bad work"])
    out = capsys.readouterr().out
    assert 'Input: "i hate bad work"' in out
    assert "Label:" in out
    assert out.count("%") == 3


def test_cli_predict_json_defaults_to_test_sentences(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    _train()
    capsys.readouterr()
    main(["predict", "--preset", "sentiment-quick", "--json"])
    records = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]
    assert len(records) == 4
    for record in records:
        assert record["label"] in {"positive", "negative", "neutral"}
        assert sum(record["probs"].values()) == pytest.approx(1.0)


def test_cli_predict_without_model(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        main(["predict", "--preset", "sentiment-quick", "hello"])
    assert "Please run training first" in str(excinfo.value)


def test_cli_resume_and_dump_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    _train("--fresh")
    dump = tmp_path / "resolved.json"
    main(
        [
            "train",
            "--preset",
            "sentiment-quick",
            "--epochs",
            "30",
            "--run-dir",
            "runs/sentiment-quick",
            "--dump-config",
            str(dump),
        ]
    )
    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["epochs_run"] == 10
    assert json.loads(dump.read_text())["train"]["epochs"] == 30


def test_cli_softmax(capsys):
    main(["softmax", "1", "2", "3"])
    out = capsys.readouterr().out
    assert out.startswith("softmax(1.0, 2.0, 3.0) = [0.090031, 0.244728, 0.665241]")
    assert out.strip().endswith("= 1.0")


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    names = capsys.readouterr().out.split()
    assert "sentiment-demo" in names
    assert "sentiment-mse" in names


def test_cli_requires_a_command():
    with pytest.raises(SystemExit):
        main([])
