from __future__ import annotations

import sys
from typing import List, Optional

from .config import RunConfig, dump_config, load_run_config, usage_text
from .graph.dot import STDIN_PATH, iter_graphs
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .pipeline import RunSummary, process_graph
from .util.errors import ExitCode, UsageError, as_exit_code
from .util.rich_progress import RunProgress, render_run_summary_table

LOG = get_logger(__name__)


def cmd_reduce(cfg: RunConfig) -> int:
    """
    Reduce every graph of the input description and write one block per graph
    to stdout. Graphs are handled one at a time, in document order.
    """
    LOG.debug("Run configuration", extra={"config": dump_config(cfg)})
    source = "<stdin>" if cfg.input_path == STDIN_PATH else cfg.input_path
    summary = RunSummary()
    status = "FAILED"
    try:
        with RunProgress(enabled=cfg.progress) as progress:
            for graph in iter_graphs(cfg.input_path):
                progress.start_graph(graph.name)
                summary.graphs.append(process_graph(graph, cfg.node_type, cfg.format, sys.stdout))
                progress.finish_graph()
        status = "OK"
    finally:
        render_run_summary_table(
            enabled=cfg.progress,
            status=status,
            totals=summary.totals(),
            node_type=cfg.node_type,
            source=source,
        )
    LOG.info("Run complete", extra=summary.totals())
    return int(ExitCode.OK)


def main(argv: Optional[List[str]] = None) -> None:
    try:
        cfg = load_run_config(argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        if cfg.log_file is not None:
            add_run_log_file(cfg.log_file)
        sys.exit(cmd_reduce(cfg))
    except SystemExit:
        raise
    except UsageError:
        sys.stderr.write(usage_text())
        sys.exit(int(ExitCode.USAGE_ERROR))
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())  # ensure something is configured
        LOG.error("Execution failed: %s", e, extra={"error": str(e), "error_type": type(e).__name__})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
