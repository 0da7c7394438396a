from __future__ import annotations

from typing import Dict, Optional

from ..graph.access import GraphAccess, NetworkxGraph, NodeId
from ..logging import get_logger
from .reduce import FILE_ATTR, node_file

LOG = get_logger(__name__)

LABEL_ATTR = "label"
MERGED_GRAPH_NAME = "kernel"


def merge_compartments(
    graph: GraphAccess,
    assignments: Optional[Dict[NodeId, NodeId]] = None,
) -> GraphAccess:
    """
    Build a new strict graph with one compartment node per non-empty file.

    Compartments are created on first sight in traversal order and carry the
    file name as both label and file. Nodes without a file are dropped.
    When ``assignments`` is given it receives node -> compartment for every
    node that was placed in one.

    Inter-file edges are not carried over to the compartments yet, so the
    result has no edges.
    """
    merged = NetworkxGraph(MERGED_GRAPH_NAME, strict=True)
    compartments: Dict[str, NodeId] = {}

    for node in graph.nodes():
        file_n = node_file(graph, node)
        if not file_n:
            continue
        compartment = compartments.get(file_n)
        if compartment is None:
            compartment = merged.add_node(file_n)
            merged.set_node_attr(compartment, LABEL_ATTR, file_n)
            merged.set_node_attr(compartment, FILE_ATTR, file_n)
            compartments[file_n] = compartment
            LOG.debug("Created compartment", extra={"compartment": file_n})
        if assignments is not None:
            assignments[node] = compartment

    return merged
