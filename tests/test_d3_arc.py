from __future__ import annotations

import io
import json

from cpg_reducer.export.d3_arc import FORMATS, format_d3_arc, trim_group, trim_label, write_d3_arc
from cpg_reducer.graph.access import NetworkxGraph


def _node(g: NetworkxGraph, node: str, label: str, file: str) -> None:
    g.add_node(node)
    g.set_node_attr(node, "label", label)
    g.set_node_attr(node, "file", file)


def test_trim_label_strips_one_delimiter_each_side() -> None:
    assert trim_label('"foo"') == "foo"
    assert trim_label('""') == ""
    assert trim_label("a") == ""
    assert trim_label("") == ""


def test_trim_group_strips_quote_and_extension() -> None:
    assert trim_group('"kern/foo.c"') == "kern/foo"
    assert trim_group('"a.c"') == "a"
    assert trim_group('".c"') == ""
    assert trim_group("") == "NONE"


def test_format_d3_arc_exact_layout() -> None:
    g = NetworkxGraph("cpg")
    _node(g, "a", '"a"', '"x.c"')
    _node(g, "b", '"b"', "")
    edge = g.add_edge("a", "b")
    g.set_edge_attr(edge, "value", "3")

    assert format_d3_arc(g) == (
        "{\n"
        '  "nodes": [\n'
        '    {"id": "a", "group": "x"},\n'
        '    {"id": "b", "group": "NONE"}\n'
        "  ],\n"
        '  "links": [\n'
        '    {"source": "a", "target": "b", "value": "3"}\n'
        "  ]\n"
        "}\n"
    )


def test_format_d3_arc_empty_graph() -> None:
    assert format_d3_arc(NetworkxGraph("empty")) == '{\n  "nodes": [\n  ],\n  "links": [\n  ]\n}\n'


def test_format_d3_arc_has_no_trailing_comma_when_last_nodes_have_no_links() -> None:
    g = NetworkxGraph("cpg")
    _node(g, "a", '"a"', '"x.c"')
    _node(g, "b", '"b"', '"y.c"')
    _node(g, "c", '"c"', '"z.c"')
    g.add_edge("a", "b")
    g.add_edge("a", "c")

    text = format_d3_arc(g)
    doc = json.loads(text)

    assert [n["id"] for n in doc["nodes"]] == ["a", "b", "c"]
    assert [(link["source"], link["target"]) for link in doc["links"]] == [("a", "b"), ("a", "c")]
    assert '"value": ""}\n  ]' in text


def test_format_d3_arc_defaults_missing_label_and_value_to_empty() -> None:
    g = NetworkxGraph("cpg")
    g.add_node("a")
    g.set_node_attr("a", "file", "")
    g.add_edge("a", "a")

    doc = json.loads(format_d3_arc(g))

    assert doc["nodes"] == [{"id": "", "group": "NONE"}]
    assert doc["links"] == [{"source": "", "target": "", "value": ""}]


def test_format_d3_arc_escapes_label_characters() -> None:
    g = NetworkxGraph("cpg")
    _node(g, "a", '"say \\"hi\\""', '"x.c"')

    doc = json.loads(format_d3_arc(g))

    assert doc["nodes"][0]["id"] == 'say \\"hi\\"'


def test_format_d3_arc_keeps_parallel_links_in_order() -> None:
    g = NetworkxGraph("cpg")
    _node(g, "a", '"a"', '"x.c"')
    _node(g, "b", '"b"', '"y.c"')
    first = g.add_edge("a", "b")
    second = g.add_edge("a", "b")
    g.set_edge_attr(first, "value", "1")
    g.set_edge_attr(second, "value", "2")

    doc = json.loads(format_d3_arc(g))

    assert [link["value"] for link in doc["links"]] == ["1", "2"]


def test_write_d3_arc_is_registered_as_d3_arc() -> None:
    g = NetworkxGraph("cpg")
    _node(g, "a", '"a"', '"x.c"')
    buf = io.StringIO()

    FORMATS["d3-arc"](g, buf)

    assert buf.getvalue() == format_d3_arc(g)
    assert FORMATS["d3-arc"] is write_d3_arc
