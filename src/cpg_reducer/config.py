from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import yaml

from .export.d3_arc import FORMATS
from .pipeline import DEFAULT_FORMAT, DEFAULT_NODE_TYPE, NODE_TYPES
from .util.errors import ConfigError, UsageError

# --------
# Defaults
# --------
PROG = "cpg-reducer"
USAGE = f"{PROG} -n {'|'.join(NODE_TYPES)} -f {'|'.join(FORMATS)} input-dot-file"
DEFAULT_LOG_LEVEL = "WARNING"
CONFIG_ENV = "CPG_REDUCER_CONFIG"
ALLOWED_CONFIG_KEYS = {
    "node_type",
    "format",
    "log_level",
    "log_file",
    "json_logs",
    "progress",
}
BOOL_CONFIG_KEYS = {"json_logs", "progress"}
STR_CONFIG_KEYS = {"node_type", "format", "log_level", "log_file"}


@dataclass(frozen=True)
class RunConfig:
    input_path: str
    node_type: str = DEFAULT_NODE_TYPE
    format: str = DEFAULT_FORMAT

    # Logging / display
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[Path] = None
    json_logs: bool = False
    progress: bool = False


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog=PROG, usage=USAGE, add_help=False)
    parser.add_argument("-n", dest="node_type", choices=NODE_TYPES, default=None)
    parser.add_argument("-f", dest="format", choices=sorted(FORMATS), default=None)
    parser.add_argument("input_path", metavar="input-dot-file")
    return parser


def usage_text() -> str:
    return f"usage: {USAGE}\n"


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        elif path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            # Try YAML first then JSON
            try:
                data = yaml.safe_load(text) or {}
            except yaml.YAMLError:
                data = json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ConfigError(f"Config field '{key}' must be a boolean")


def _normalize(data: Dict[str, Any], *, origin: str) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown {origin} keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ConfigError(f"Config field '{key}' must be a string")
            normalized[key] = value.strip()
    node_type = normalized.get("node_type")
    if node_type is not None and node_type not in NODE_TYPES:
        raise ConfigError(f"Config field 'node_type' must be one of: {', '.join(NODE_TYPES)}")
    fmt = normalized.get("format")
    if fmt is not None and fmt not in FORMATS:
        raise ConfigError(f"Config field 'format' must be one of: {', '.join(sorted(FORMATS))}")
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def load_run_config(argv: Optional[List[str]] = None) -> RunConfig:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    The config file path comes from CPG_REDUCER_CONFIG since the command line
    only carries -n, -f and the input path.
    """
    ns = build_parser().parse_args(argv)

    base: Dict[str, Any] = {
        "node_type": DEFAULT_NODE_TYPE,
        "format": DEFAULT_FORMAT,
        "log_level": DEFAULT_LOG_LEVEL,
        "log_file": None,
        "json_logs": False,
        "progress": False,
    }

    file_cfg: Dict[str, Any] = {}
    config_path = _env_str(CONFIG_ENV)
    if config_path:
        file_cfg = _normalize(_parse_config_file(Path(config_path)), origin="config")

    env_cfg = _normalize(
        _compact_dict(
            {
                "node_type": _env_str("CPG_REDUCER_NODE_TYPE"),
                "format": _env_str("CPG_REDUCER_FORMAT"),
                "log_level": _env_str("CPG_REDUCER_LOG_LEVEL"),
                "log_file": _env_str("CPG_REDUCER_LOG_FILE"),
                "json_logs": _env_str("CPG_REDUCER_JSON_LOGS"),
                "progress": _env_str("CPG_REDUCER_PROGRESS"),
            }
        ),
        origin="environment",
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "node_type": ns.node_type,
            "format": ns.format,
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    log_file = merged.get("log_file")
    return RunConfig(
        input_path=str(ns.input_path),
        node_type=str(merged["node_type"]),
        format=str(merged["format"]),
        log_level=str(merged.get("log_level") or DEFAULT_LOG_LEVEL).upper(),
        log_file=Path(log_file) if log_file else None,
        json_logs=bool(merged["json_logs"]),
        progress=bool(merged["progress"]),
    )


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "input_path": cfg.input_path,
        "node_type": cfg.node_type,
        "format": cfg.format,
        "log_level": cfg.log_level,
        "log_file": str(cfg.log_file) if cfg.log_file else None,
        "json_logs": cfg.json_logs,
        "progress": cfg.progress,
    }
