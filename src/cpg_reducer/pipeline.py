from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Optional, TextIO

from .export.d3_arc import FORMATS
from .graph.access import GraphAccess
from .logging import get_logger
from .transform.merge import merge_compartments
from .transform.reduce import ReductionStats, reduce_graph
from .util.errors import ExportError

LOG = get_logger(__name__)

NODE_TYPE_FUNCTION = "function"
NODE_TYPE_COMPARTMENT = "compartment"
NODE_TYPES = (NODE_TYPE_FUNCTION, NODE_TYPE_COMPARTMENT)
DEFAULT_NODE_TYPE = NODE_TYPE_COMPARTMENT
DEFAULT_FORMAT = "d3-arc"


@dataclass
class GraphSummary:
    name: str
    nodes_in: int
    edges_in: int
    edges_removed: int = 0
    nodes_removed: int = 0
    isolated_kept: int = 0
    nodes_out: int = 0
    links_out: int = 0


@dataclass
class RunSummary:
    graphs: List[GraphSummary] = field(default_factory=list)

    def totals(self) -> Dict[str, int]:
        return {
            "graphs": len(self.graphs),
            "nodes_in": sum(g.nodes_in for g in self.graphs),
            "edges_in": sum(g.edges_in for g in self.graphs),
            "edges_removed": sum(g.edges_removed for g in self.graphs),
            "nodes_removed": sum(g.nodes_removed for g in self.graphs),
            "isolated_kept": sum(g.isolated_kept for g in self.graphs),
            "nodes_out": sum(g.nodes_out for g in self.graphs),
            "links_out": sum(g.links_out for g in self.graphs),
        }


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: _StepTimers,
    **extra: Any,
) -> None:
    duration_ms = None
    if phase == "start":
        timers.start(step)
    else:
        duration_ms = timers.finish(step)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    LOG.log(level, message, extra=payload)


def transform_graph(graph: GraphAccess, node_type: str, summary: GraphSummary) -> GraphAccess:
    """
    Reduce ``graph`` and, for compartment nodes, merge it.

    The input graph is mutated; in compartment mode the returned graph is a
    new object and the input should no longer be used.
    """
    if node_type not in NODE_TYPES:
        raise ValueError(f"Unknown node type: {node_type}")
    timers = _StepTimers()

    _log_event(logging.DEBUG, "Reducing intra-file edges", step="reduce", phase="start", timers=timers)
    stats = ReductionStats()
    reduce_graph(graph, stats)
    summary.edges_removed = stats.edges_removed
    summary.nodes_removed = stats.nodes_removed
    summary.isolated_kept = len(stats.isolated_kept)
    _log_event(
        logging.INFO,
        "Reduced intra-file edges",
        step="reduce",
        phase="complete",
        timers=timers,
        graph=graph.name,
        edges_removed=stats.edges_removed,
        nodes_removed=stats.nodes_removed,
    )

    if node_type == NODE_TYPE_COMPARTMENT:
        _log_event(logging.DEBUG, "Merging compartments", step="merge", phase="start", timers=timers)
        graph = merge_compartments(graph)
        _log_event(
            logging.INFO,
            "Merged compartments",
            step="merge",
            phase="complete",
            timers=timers,
            compartments=graph.number_of_nodes(),
        )

    summary.nodes_out = graph.number_of_nodes()
    summary.links_out = graph.number_of_edges()
    return graph


def export_graph(graph: GraphAccess, fmt: str, stream: TextIO) -> None:
    writer = FORMATS.get(fmt)
    if writer is None:
        raise ExportError(f"Unknown output format: {fmt}")
    timers = _StepTimers()
    _log_event(logging.DEBUG, "Writing graph", step="export", phase="start", timers=timers, format=fmt)
    writer(graph, stream)
    stream.flush()
    _log_event(logging.DEBUG, "Wrote graph", step="export", phase="complete", timers=timers, format=fmt)


def process_graph(graph: GraphAccess, node_type: str, fmt: str, stream: TextIO) -> GraphSummary:
    summary = GraphSummary(name=graph.name, nodes_in=graph.number_of_nodes(), edges_in=graph.number_of_edges())
    result = transform_graph(graph, node_type, summary)
    export_graph(result, fmt, stream)
    return summary
