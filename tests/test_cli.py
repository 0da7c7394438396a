from __future__ import annotations

import io
import json
import sys
from typing import Any, Dict, List

import pytest

from cpg_reducer import cli
from cpg_reducer.logging import setup_logging
from cpg_reducer.util.errors import ExitCode

CPG = r"""
digraph cpg {
  A [label="\"A\"", file="\"f1.c\""];
  B [label="\"B\"", file="\"f1.c\""];
  C [label="\"C\"", file="\"f2.c\""];
  A -> B [value="1"];
  B -> C [value="2"];
}
"""

TWO_GRAPHS = r"""
digraph one {
  x [label="\"x\"", file="\"a.c\""];
  y [label="\"y\"", file="\"b.c\""];
  x -> y;
}
digraph two {
  p [label="\"p\"", file="\"c.c\""];
  q [label="\"q\"", file="\"c.c\""];
  r [label="\"r\"", file=""];
  p -> q;
}
"""


@pytest.fixture(autouse=True)
def _fresh_logging(monkeypatch) -> None:
    for key in ("CPG_REDUCER_CONFIG", "CPG_REDUCER_NODE_TYPE", "CPG_REDUCER_FORMAT", "CPG_REDUCER_PROGRESS"):
        monkeypatch.delenv(key, raising=False)
    # Bind the stderr handler to this test's captured stream.
    setattr(setup_logging, "_configured", False)


def _run(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return int(excinfo.value.code or 0)


def _blocks(text: str) -> List[Dict[str, Any]]:
    decoder = json.JSONDecoder()
    blocks = []
    index = 0
    while index < len(text):
        if text[index].isspace():
            index += 1
            continue
        doc, index = decoder.raw_decode(text, index)
        blocks.append(doc)
    return blocks


def _write(tmp_path, text: str):
    path = tmp_path / "cpg.dot"
    path.write_text(text, encoding="utf-8")
    return path


def test_function_mode_reduces_and_serializes(tmp_path, capsys) -> None:
    path = _write(tmp_path, CPG)

    assert _run(["-n", "function", "-f", "d3-arc", str(path)]) == 0

    (doc,) = _blocks(capsys.readouterr().out)
    assert doc["nodes"] == [{"id": "B", "group": "f1"}, {"id": "C", "group": "f2"}]
    assert doc["links"] == [{"source": "B", "target": "C", "value": "2"}]


def test_compartment_mode_is_default(tmp_path, capsys) -> None:
    path = _write(tmp_path, CPG)

    assert _run([str(path)]) == 0

    (doc,) = _blocks(capsys.readouterr().out)
    assert doc["nodes"] == [{"id": "f1.c", "group": "f1"}, {"id": "f2.c", "group": "f2"}]
    # Compartments carry no links until inter-file edges are aggregated.
    assert doc["links"] == []


def test_each_graph_gets_its_own_block_in_order(tmp_path, capsys) -> None:
    path = _write(tmp_path, TWO_GRAPHS)

    assert _run(["-n", "function", str(path)]) == 0

    first, second = _blocks(capsys.readouterr().out)
    assert [n["id"] for n in first["nodes"]] == ["x", "y"]
    assert first["links"] == [{"source": "x", "target": "y", "value": ""}]
    assert second["nodes"] == [{"id": "r", "group": "NONE"}]
    assert second["links"] == []


def test_reads_stdin_for_dash(monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO(CPG))

    assert _run(["-n", "function", "-"]) == 0

    (doc,) = _blocks(capsys.readouterr().out)
    assert [n["id"] for n in doc["nodes"]] == ["B", "C"]


def test_missing_input_argument_prints_usage(capsys) -> None:
    assert _run([]) == int(ExitCode.USAGE_ERROR) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == "usage: cpg-reducer -n function|compartment -f d3-arc input-dot-file\n"


def test_invalid_node_type_prints_usage(tmp_path, capsys) -> None:
    path = _write(tmp_path, CPG)

    assert _run(["-n", "module", str(path)]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("usage: cpg-reducer")


def test_extra_positional_argument_prints_usage(tmp_path, capsys) -> None:
    path = _write(tmp_path, CPG)

    assert _run([str(path), str(path)]) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("usage: cpg-reducer")


def test_missing_file_attribute_aborts(tmp_path, capsys) -> None:
    path = _write(tmp_path, "digraph { a -> b; }")

    assert _run([str(path)]) == int(ExitCode.PRECONDITION_VIOLATION)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "'a' has no 'file' attribute" in captured.err


def test_unparsable_input_exits_with_input_error(tmp_path) -> None:
    path = _write(tmp_path, "digraph { a -> ")

    assert _run([str(path)]) == int(ExitCode.INPUT_ERROR)


def test_missing_input_file_exits_with_input_error(tmp_path) -> None:
    assert _run([str(tmp_path / "missing.dot")]) == int(ExitCode.INPUT_ERROR)


def test_progress_renders_summary_on_stderr(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("CPG_REDUCER_PROGRESS", "1")
    path = _write(tmp_path, CPG)

    assert _run(["-n", "function", str(path)]) == 0

    captured = capsys.readouterr()
    assert "Reduction Summary" in captured.err
    assert "Reduction Summary" not in captured.out
    assert len(_blocks(captured.out)) == 1


def test_log_file_receives_step_events(tmp_path, monkeypatch, capsys) -> None:
    log_path = tmp_path / "logs" / "run.log"
    monkeypatch.setenv("CPG_REDUCER_LOG_FILE", str(log_path))
    monkeypatch.setenv("CPG_REDUCER_LOG_LEVEL", "INFO")
    path = _write(tmp_path, CPG)

    assert _run(["-n", "function", str(path)]) == 0

    content = log_path.read_text(encoding="utf-8")
    assert "[reduce:complete] Reduced intra-file edges" in content
    assert "Run complete" in content
