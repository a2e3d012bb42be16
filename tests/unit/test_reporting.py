from textmlp.reporting import CsvSink, JsonlSink, PlotAdapter, read_jsonl


def test_jsonl_sink_truncates_unless_appending(tmp_path):
    path = tmp_path / "metrics.jsonl"
    sink = JsonlSink(path, split="train", seed=3)
    sink.on_epoch(1, {"loss": 0.5, "accuracy": 1, "flag": True, "name": "x"})
    assert read_jsonl(path) == [
        {"epoch": 1, "split": "train", "seed": 3, "loss": 0.5, "accuracy": 1.0}
    ]

    JsonlSink(path, seed=3, append=True)(2, {"loss": 0.25})
    assert [r["epoch"] for r in read_jsonl(path)] == [1, 2]

    JsonlSink(path, seed=3)
    assert read_jsonl(path) == []


def test_csv_sink_writes_header_once(tmp_path):
    path = tmp_path / "metrics.csv"
    sink = CsvSink(path)
    sink.on_epoch(1, {"loss": 0.5})
    sink.on_epoch(2, {"loss": 0.4})
    lines = path.read_text().splitlines()
    assert lines[0] == "epoch,loss,split"
    assert len(lines) == 3


def test_disabled_plot_adapter_writes_nothing(tmp_path):
    plots = PlotAdapter(tmp_path / "plots", enable_plots=False)
    plots.on_epoch(1, {"loss": 1.0})
    assert plots.close() is None
    assert not (tmp_path / "plots").exists()
