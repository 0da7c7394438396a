from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union

import pydot

from ..logging import get_logger
from ..util.errors import GraphParseError
from .access import EdgeRef, NetworkxGraph, NodeId

LOG = get_logger(__name__)

STDIN_PATH = "-"

# pydot reports default-attribute statements as nodes with these names.
_DEFAULT_STATEMENTS = {"node", "edge", "graph"}

Attrs = Dict[str, str]


def unquote(value: Any) -> str:
    """
    Decode a DOT ID the way Graphviz hands it to attribute readers.

    Quoted strings lose their outer quotes, escaped quotes and
    backslash-newline continuations; HTML strings lose their angle brackets.
    Any other backslash sequence is kept verbatim.
    """
    text = str(value)
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        inner = text[1:-1].replace("\\\r\n", "").replace("\\\n", "")
        return inner.replace('\\"', '"')
    if len(text) >= 2 and text[0] == "<" and text[-1] == ">":
        return text[1:-1]
    return text


def _node_key(raw: Any) -> NodeId:
    """Node identity for a raw pydot node or edge endpoint name, without any port suffix."""
    if not isinstance(raw, str):
        raise GraphParseError("subgraph edge endpoints are not supported")
    if raw.startswith('"'):
        closing = raw.rfind('"')
        if closing > 0 and raw[closing + 1 :].startswith(":"):
            raw = raw[: closing + 1]
        return unquote(raw)
    return unquote(raw.split(":", 1)[0])


def _decoded(attrs: Dict[str, Any]) -> Attrs:
    return {str(k): unquote(v) for k, v in attrs.items()}


def _sequence(obj: Any) -> int:
    return int(obj.obj_dict.get("sequence") or 0)


class _GraphBuilder:
    """
    Replays the statements of one pydot graph into a NetworkxGraph.

    Attribute keys follow declaration semantics: a key used on any node (or
    in a ``node [...]`` default) is readable on every node, falling back to
    the default in scope when the node was created, else the empty string.
    The same holds for edges.

    In a strict graph a repeated tail -> head statement updates the edge
    already present instead of adding a parallel one. Self-loops stay.
    """

    def __init__(self, name: str, *, strict: bool = False) -> None:
        self.graph = NetworkxGraph(name)
        self._strict = strict
        self._edges: Dict[Tuple[NodeId, NodeId], EdgeRef] = {}
        self._node_keys: Set[str] = set()
        self._edge_keys: Set[str] = set()

    def build(self, dot: Any) -> NetworkxGraph:
        self._replay(dot, {}, {})
        for node in self.graph.nodes():
            for key in self._node_keys:
                if self.graph.node_attr(node, key) is None:
                    self.graph.set_node_attr(node, key, "")
        for node in self.graph.nodes():
            for edge in self.graph.out_edges(node):
                for key in self._edge_keys:
                    if self.graph.edge_attr(edge, key) is None:
                        self.graph.set_edge_attr(edge, key, "")
        return self.graph

    def _replay(self, dot: Any, node_defaults: Attrs, edge_defaults: Attrs) -> None:
        statements: List[Tuple[int, str, Any]] = []
        statements.extend((_sequence(n), "node", n) for n in dot.get_node_list())
        statements.extend((_sequence(e), "edge", e) for e in dot.get_edge_list())
        statements.extend((_sequence(s), "subgraph", s) for s in dot.get_subgraph_list())
        statements.sort(key=lambda item: item[0])

        for _, kind, obj in statements:
            if kind == "subgraph":
                # Defaults declared inside a subgraph stay local to it.
                self._replay(obj, dict(node_defaults), dict(edge_defaults))
            elif kind == "edge":
                self._add_edge(obj, node_defaults, edge_defaults)
            else:
                raw_name = obj.get_name()
                attrs = _decoded(obj.get_attributes())
                if raw_name in _DEFAULT_STATEMENTS:
                    if raw_name == "node":
                        node_defaults.update(attrs)
                        self._node_keys.update(attrs)
                    elif raw_name == "edge":
                        edge_defaults.update(attrs)
                        self._edge_keys.update(attrs)
                    continue
                node = self._ensure_node(_node_key(raw_name), node_defaults)
                for key, value in attrs.items():
                    self.graph.set_node_attr(node, key, value)
                self._node_keys.update(attrs)

    def _ensure_node(self, node: NodeId, node_defaults: Attrs) -> NodeId:
        if self.graph.has_node(node):
            return node
        self.graph.add_node(node)
        for key, value in node_defaults.items():
            self.graph.set_node_attr(node, key, value)
        return node

    def _add_edge(self, edge: Any, node_defaults: Attrs, edge_defaults: Attrs) -> None:
        tail = self._ensure_node(_node_key(edge.get_source()), node_defaults)
        head = self._ensure_node(_node_key(edge.get_destination()), node_defaults)
        explicit = _decoded(edge.get_attributes())
        ref = self._edges.get((tail, head)) if self._strict else None
        if ref is not None:
            for key, value in explicit.items():
                self.graph.set_edge_attr(ref, key, value)
            self._edge_keys.update(explicit)
            return
        ref = self.graph.add_edge(tail, head)
        if self._strict:
            self._edges[(tail, head)] = ref
        attrs = dict(edge_defaults)
        attrs.update(explicit)
        for key, value in attrs.items():
            self.graph.set_edge_attr(ref, key, value)
        self._edge_keys.update(attrs)


def _parse(text: str, source: str) -> List[Any]:
    if not text.strip():
        return []
    try:
        parsed = pydot.graph_from_dot_data(text)
    except Exception as e:
        raise GraphParseError(f"Failed to parse graph description {source}: {e}") from e
    if parsed is None:
        raise GraphParseError(f"Failed to parse graph description {source}")
    return list(parsed)


def iter_graphs_from_text(text: str, *, source: str = "<string>") -> Iterator[NetworkxGraph]:
    """
    Yield one graph per definition in ``text``, in document order.

    Each graph is built only when requested, so callers holding at most one
    graph at a time never see two alive at once.
    """
    dots = _parse(text, source)
    LOG.debug("Parsed graph description", extra={"source": source, "graphs": len(dots)})
    for dot in dots:
        name = unquote(dot.get_name() or "")
        strict = bool(dot.obj_dict.get("strict"))
        yield _GraphBuilder(name, strict=strict).build(dot)


def read_graph_text(path: Union[str, Path]) -> Tuple[str, str]:
    """Return (text, source label) for a path, or for stdin when path is ``-``."""
    if str(path) == STDIN_PATH:
        return sys.stdin.read(), "<stdin>"
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8"), str(p)
    except (OSError, UnicodeDecodeError) as e:
        raise GraphParseError(f"Failed to read graph description {p}: {e}") from e


def iter_graphs(path: Union[str, Path]) -> Iterator[NetworkxGraph]:
    text, source = read_graph_text(path)
    return iter_graphs_from_text(text, source=source)


def load_graphs(text: str) -> List[NetworkxGraph]:
    return list(iter_graphs_from_text(text))


def load_graph(text: str) -> Optional[NetworkxGraph]:
    """Return the first graph of ``text``, or None when it defines none."""
    return next(iter_graphs_from_text(text), None)
