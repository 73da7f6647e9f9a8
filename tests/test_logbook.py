import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from rescope import runtime
from rescope.runtime.core import RunResult
from rescope.runtime.interpreter import run_program
from rescope.runtime.logbook import (
    build_run_entry,
    diff_outputs,
    hash_output,
    hash_text,
    read_logbook,
    record_run,
    show_logbook,
)


def test_hash_text_is_sha256_hex():
    assert hash_text("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert hash_output(RunResult("")) == hash_text("")


def test_equal_outputs_hash_equal():
    a = run_program("{ x : (x) : $1 $1 }")
    b = run_program("xx")
    assert a.text == b.text
    assert hash_output(a) == hash_output(b)


def test_diff_outputs():
    assert diff_outputs("same\n", "same\n") == []
    diff = diff_outputs("one\ntwo", "one\nthree", "before", "after")
    assert diff[:2] == ["--- before", "+++ after"]
    assert "-two" in diff
    assert "+three" in diff


def test_build_run_entry_summarises_the_run():
    source = "{a:a:b}"
    result = run_program(source)
    entry = build_run_entry("prog.rsc", source, result)
    assert entry["program"] == "prog.rsc"
    assert entry["source_hash"] == hash_text(source)
    assert entry["output_hash"] == hash_text("b")
    assert entry["steps"] == 1
    assert entry["log_length"] == 2
    assert entry["first_log"] == "step:1"
    assert entry["last_log"] == "scope"
    assert entry["timestamp"].endswith("Z")


def test_build_run_entry_with_an_empty_log():
    entry = build_run_entry("p", "text", RunResult("text"))
    assert entry["first_log"] is None and entry["last_log"] is None


def test_record_and_read_back(tmp_path, capsys):
    path = tmp_path / "book.jsonl"
    for source in ("{a:a:1}", "{a:a:2}", "{a:a:3}"):
        record_run("inline", source, run_program(source), logbook_path=path)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert json.loads(lines[0])["output_hash"] == hash_text("1")

    recent = read_logbook(2, path)
    assert [e["output_hash"] for e in recent] == [hash_text("2"), hash_text("3")]
    assert "📜" in capsys.readouterr().err


def test_record_run_defaults_to_runtime_logbook_file(monkeypatch, tmp_path):
    path = tmp_path / "default.jsonl"
    monkeypatch.setattr(runtime, "LOGBOOK_FILE", str(path))
    record_run("inline", "x", RunResult("x"))
    assert path.exists()


def test_show_logbook(tmp_path, capsys):
    path = tmp_path / "book.jsonl"
    show_logbook(logbook_path=path)
    assert "No logbook yet." in capsys.readouterr().out

    record_run("demo.rsc", "{a:a:b}", run_program("{a:a:b}"), logbook_path=path)
    capsys.readouterr()
    show_logbook(logbook_path=path)
    out = capsys.readouterr().out
    assert "last 1 entries" in out
    assert "demo.rsc" in out
    assert "[1 steps]" in out
    assert "log: step:1 → scope" in out
