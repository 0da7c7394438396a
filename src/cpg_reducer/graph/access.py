from __future__ import annotations

from typing import Any, Dict, Iterator, NamedTuple, Optional, Protocol

import networkx as nx

NodeId = str


class EdgeRef(NamedTuple):
    tail: NodeId
    head: NodeId
    key: int


class GraphAccess(Protocol):
    """
    Capabilities the reduction pipeline needs from a graph library.

    Iteration follows the library's native order. Attribute reads return None
    when the key is not declared for the entity.
    """

    name: str
    strict: bool

    def nodes(self) -> Iterator[NodeId]: ...

    def has_node(self, node: NodeId) -> bool: ...

    def out_edges(self, node: NodeId) -> Iterator[EdgeRef]: ...

    def tail(self, edge: EdgeRef) -> NodeId: ...

    def head(self, edge: EdgeRef) -> NodeId: ...

    def node_attr(self, node: NodeId, key: str) -> Optional[str]: ...

    def edge_attr(self, edge: EdgeRef, key: str) -> Optional[str]: ...

    def set_node_attr(self, node: NodeId, key: str, value: str) -> None: ...

    def set_edge_attr(self, edge: EdgeRef, key: str, value: str) -> None: ...

    def add_node(self, node_id: NodeId) -> NodeId: ...

    def add_edge(self, tail: NodeId, head: NodeId) -> EdgeRef: ...

    def remove_node(self, node: NodeId) -> None: ...

    def remove_edge(self, edge: EdgeRef) -> None: ...

    def degree(self, node: NodeId, *, count_in: bool = True, count_out: bool = True) -> int: ...

    def number_of_nodes(self) -> int: ...

    def number_of_edges(self) -> int: ...


class NetworkxGraph:
    """
    GraphAccess adapter over networkx.

    Non-strict graphs are MultiDiGraphs (parallel edges and self-loops kept).
    Strict graphs are DiGraphs that refuse self-loops; adding an existing
    edge returns the edge already present.
    """

    def __init__(self, name: str = "", *, strict: bool = False) -> None:
        self.name = name
        self.strict = strict
        self._g: Any = nx.DiGraph(name=name) if strict else nx.MultiDiGraph(name=name)

    def __repr__(self) -> str:
        kind = "strict" if self.strict else "multi"
        return (
            f"NetworkxGraph(name={self.name!r}, {kind}, "
            f"nodes={self.number_of_nodes()}, edges={self.number_of_edges()})"
        )

    def nodes(self) -> Iterator[NodeId]:
        return iter(self._g.nodes)

    def has_node(self, node: NodeId) -> bool:
        return self._g.has_node(node)

    def out_edges(self, node: NodeId) -> Iterator[EdgeRef]:
        if self.strict:
            for tail, head in self._g.out_edges(node):
                yield EdgeRef(tail, head, 0)
            return
        for tail, head, key in self._g.out_edges(node, keys=True):
            yield EdgeRef(tail, head, key)

    def tail(self, edge: EdgeRef) -> NodeId:
        return edge.tail

    def head(self, edge: EdgeRef) -> NodeId:
        return edge.head

    def _edge_data(self, edge: EdgeRef) -> Dict[str, str]:
        if self.strict:
            return self._g.edges[edge.tail, edge.head]
        return self._g.edges[edge.tail, edge.head, edge.key]

    def node_attr(self, node: NodeId, key: str) -> Optional[str]:
        return self._g.nodes[node].get(key)

    def edge_attr(self, edge: EdgeRef, key: str) -> Optional[str]:
        return self._edge_data(edge).get(key)

    def set_node_attr(self, node: NodeId, key: str, value: str) -> None:
        self._g.nodes[node][key] = value

    def set_edge_attr(self, edge: EdgeRef, key: str, value: str) -> None:
        self._edge_data(edge)[key] = value

    def add_node(self, node_id: NodeId) -> NodeId:
        self._g.add_node(node_id)
        return node_id

    def add_edge(self, tail: NodeId, head: NodeId) -> EdgeRef:
        if self.strict:
            if tail == head:
                raise ValueError(f"strict graph {self.name!r} does not allow self-loop on {tail!r}")
            self._g.add_edge(tail, head)
            return EdgeRef(tail, head, 0)
        key = self._g.add_edge(tail, head)
        return EdgeRef(tail, head, key)

    def remove_node(self, node: NodeId) -> None:
        self._g.remove_node(node)

    def remove_edge(self, edge: EdgeRef) -> None:
        if self.strict:
            self._g.remove_edge(edge.tail, edge.head)
        else:
            self._g.remove_edge(edge.tail, edge.head, key=edge.key)

    def degree(self, node: NodeId, *, count_in: bool = True, count_out: bool = True) -> int:
        total = 0
        if count_in:
            total += self._g.in_degree(node)
        if count_out:
            total += self._g.out_degree(node)
        return total

    def number_of_nodes(self) -> int:
        return self._g.number_of_nodes()

    def number_of_edges(self) -> int:
        return self._g.number_of_edges()
