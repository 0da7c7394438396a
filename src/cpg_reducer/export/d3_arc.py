from __future__ import annotations

import io
import json
from typing import Callable, Dict, List, TextIO

from ..graph.access import GraphAccess, NodeId
from ..transform.merge import LABEL_ATTR
from ..transform.reduce import FILE_ATTR

VALUE_ATTR = "value"

# Upstream CPGs wrap labels in one quote character on each side and file
# names in a quote plus a two-character extension and closing quote
# ("kern/foo.c" -> kern/foo). The DOT loader keeps those embedded quotes.
LABEL_DELIMITER_WIDTH = 1
FILE_PREFIX_WIDTH = 1
FILE_SUFFIX_WIDTH = 3
NO_FILE_GROUP = "NONE"


def trim_label(label: str) -> str:
    if len(label) <= 2 * LABEL_DELIMITER_WIDTH:
        return ""
    return label[LABEL_DELIMITER_WIDTH : len(label) - LABEL_DELIMITER_WIDTH]


def trim_group(file: str) -> str:
    if not file:
        return NO_FILE_GROUP
    if len(file) <= FILE_PREFIX_WIDTH + FILE_SUFFIX_WIDTH:
        return ""
    return file[FILE_PREFIX_WIDTH : len(file) - FILE_SUFFIX_WIDTH]


def _attr(graph: GraphAccess, node: NodeId, key: str) -> str:
    return graph.node_attr(node, key) or ""


def _string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _write_array(stream: TextIO, name: str, items: List[str], *, last: bool) -> None:
    stream.write(f'  "{name}": [\n')
    for index, item in enumerate(items):
        stream.write(f"    {item}")
        if index < len(items) - 1:
            stream.write(",")
        stream.write("\n")
    stream.write("  ]\n" if last else "  ],\n")


def write_d3_arc(graph: GraphAccess, stream: TextIO) -> None:
    """
    Write ``graph`` as a D3 arc-diagram document.

    Nodes and links keep the graph's own order since the front end does not
    sort them. Node ids are trimmed labels, groups are trimmed file names,
    and links reference nodes by trimmed label.
    """
    nodes: List[str] = []
    links: List[str] = []
    for node in graph.nodes():
        label = trim_label(_attr(graph, node, LABEL_ATTR))
        group = trim_group(_attr(graph, node, FILE_ATTR))
        nodes.append(f'{{"id": {_string(label)}, "group": {_string(group)}}}')

        for edge in graph.out_edges(node):
            target = trim_label(_attr(graph, graph.head(edge), LABEL_ATTR))
            value = graph.edge_attr(edge, VALUE_ATTR) or ""
            links.append(
                f'{{"source": {_string(label)}, "target": {_string(target)}, "value": {_string(value)}}}'
            )

    stream.write("{\n")
    _write_array(stream, "nodes", nodes, last=False)
    _write_array(stream, "links", links, last=True)
    stream.write("}\n")


def format_d3_arc(graph: GraphAccess) -> str:
    buf = io.StringIO()
    write_d3_arc(graph, buf)
    return buf.getvalue()


Writer = Callable[[GraphAccess, TextIO], None]

FORMATS: Dict[str, Writer] = {
    "d3-arc": write_d3_arc,
}
