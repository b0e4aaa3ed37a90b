import logging

from call_timing.exporters.save import save_file
from call_timing.exporters.table import CSV_HEADER, build_table, format_time, to_csv
from call_timing.stats import function_stats


def test_format_time():
    assert format_time(float("nan")) == "-"
    assert format_time(0.25) == "250μs"
    assert format_time(12.5) == "12.50ms"
    assert format_time(1500) == "1.50s"


def test_to_csv(snapshot_of):
    snap = snapshot_of({"Loader.read": ([0, 10], [4, 6], [1, 3], True), "helper": ([20], [2])})
    lines = to_csv(function_stats(snap)).splitlines()

    assert lines[0] == ",".join(CSV_HEADER)
    assert lines[1] == "Loader,read,true,2.0,1,3,1,3,5.0,4,6,4,6,2"
    assert lines[2] == ",helper,false,nan,nan,nan,nan,nan,2.0,2,2,2,2,1"


def test_build_table_rows(snapshot_of):
    snap = snapshot_of({"Loader.read": ([0], [4]), "helper": ([20], [2])})
    table = build_table(function_stats(snap))
    assert table.row_count == 2


def test_save_file_writes_into_export_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("CALL_TIMING_EXPORT_DIR", str(tmp_path))
    path = save_file("a,b\n", "results", "csv")
    assert path == str(tmp_path / "results.csv")
    assert (tmp_path / "results.csv").read_text(encoding="utf-8") == "a,b\n"

    path = save_file("diagram", "flow", "markdown", directory=str(tmp_path / "nested"))
    assert (tmp_path / "nested" / "flow.md").read_text(encoding="utf-8") == "diagram"


def test_save_file_failure_is_logged(tmp_path, caplog):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    with caplog.at_level(logging.WARNING, logger="call_timing.exporters.save"):
        assert save_file("x", "results", "csv", directory=str(blocker / "sub")) is None
    assert "Error saving file" in caplog.text


def test_store_save_helpers(store, tmp_path, monkeypatch):
    monkeypatch.setenv("CALL_TIMING_EXPORT_DIR", str(tmp_path))
    store.record_call("App.init", 0.0, 20.0, 100.0)
    store.record_call("DataService.fetch", 10.0, 5.0, 50.0)

    csv_path = store.save_results()
    diagram_path = store.save_sequence_diagram()

    assert (tmp_path / "profiler-results.csv").read_text(encoding="utf-8").startswith("group,name,")
    assert "App->>DataService: fetch" in (tmp_path / "sequence-diagram.md").read_text(encoding="utf-8")
    assert csv_path.endswith(".csv")
    assert diagram_path.endswith(".md")


def test_store_log_prints_table(store, capsys):
    store.record_call("App.init", 0.0, 20.0, 100.0)
    store.log()
    assert "Call timings" in capsys.readouterr().out
