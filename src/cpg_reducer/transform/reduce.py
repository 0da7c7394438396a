from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..graph.access import GraphAccess, NodeId
from ..logging import get_logger
from ..util.errors import MissingAttributeError

LOG = get_logger(__name__)

FILE_ATTR = "file"


@dataclass
class ReductionStats:
    edges_removed: int = 0
    nodes_removed: int = 0
    isolated_kept: List[NodeId] = field(default_factory=list)


def node_file(graph: GraphAccess, node: NodeId) -> str:
    """Return the ``file`` attribute of a node; its absence breaks the input contract."""
    value = graph.node_attr(node, FILE_ATTR)
    if value is None:
        raise MissingAttributeError(node, FILE_ATTR)
    return value


def is_intra_file(file_tail: str, file_head: str) -> bool:
    """True when both endpoints belong to the same known file."""
    return bool(file_tail) and bool(file_head) and file_tail == file_head


def reduce_graph(graph: GraphAccess, stats: Optional[ReductionStats] = None) -> GraphAccess:
    """
    Remove intra-file edges in place, and the nodes they leave without edges.

    Nodes are visited over a snapshot of ids so that deleting a head node
    (possibly the node being visited, for a self-loop) never disturbs the
    traversal; removed ids are skipped when reached. Nodes that had no edges
    before the pass are left alone to expose anomalies in the input.
    """
    stats = stats if stats is not None else ReductionStats()

    for node in list(graph.nodes()):
        if not graph.has_node(node):
            continue
        file_n = node_file(graph, node)
        reduced = False
        isolated = graph.degree(node) == 0

        for edge in list(graph.out_edges(node)):
            head = graph.head(edge)
            file_m = node_file(graph, head)
            if not is_intra_file(file_n, file_m):
                continue

            graph.remove_edge(edge)
            stats.edges_removed += 1
            reduced = True

            if graph.degree(head) > 0:
                continue
            graph.remove_node(head)
            stats.nodes_removed += 1

        if reduced and graph.has_node(node) and graph.degree(node) == 0:
            graph.remove_node(node)
            stats.nodes_removed += 1
        elif isolated:
            stats.isolated_kept.append(node)

    if stats.isolated_kept:
        LOG.warning(
            "Nodes without edges left in graph",
            extra={"graph": graph.name, "isolated": len(stats.isolated_kept)},
        )
    return graph
