"""Structured logging setup (JSONL format)."""

from __future__ import annotations

import json
import os
import sys
import threading
import traceback
from contextvars import ContextVar
from pathlib import Path

import platformdirs
from loguru import logger

APP_NAME = "tmux-launcher"

# Correlation ID for a spawn and all of its tmux calls
trace_id_var: ContextVar[str] = ContextVar("trace_id", default=None)


def json_sink(message) -> None:
    """JSONL sink - writes one JSON object per record to stderr."""
    record = message.record
    log_entry = {
        "timestamp": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        "level": record["level"].name.lower(),
        "component": record["function"],
        "pid": os.getpid(),
        "tid": threading.current_thread().ident,
        "operation": record["extra"].get("operation", "unknown"),
        "operation_status": record["extra"].get("status", None),
        "trace_id": record["extra"].get("trace_id") or trace_id_var.get(),
        "message": record["message"],
        "context": {k: v for k, v in record["extra"].items()
                    if k not in ("operation", "status", "trace_id", "metrics")},
        "metrics": record["extra"].get("metrics", {}),
        "error": None
    }

    if record["exception"]:
        exc_type, exc_value, exc_tb = record["exception"]
        tb_lines = []
        if exc_tb:
            tb_lines = traceback.format_tb(exc_tb)

        log_entry["error"] = {
            "type": exc_type.__name__ if exc_type else "Unknown",
            "message": str(exc_value) if exc_value else "Unknown error",
            "traceback_lines": tb_lines
        }

    try:
        sys.stderr.write(json.dumps(log_entry, default=str) + "\n")
    except (OSError, TypeError, ValueError) as e:
        try:
            sys.stderr.write(f"[LOG_ERROR] Failed to write log: {e}\n")
        except OSError:
            pass


def log_dir() -> Path:
    """
    Directory for rotated log files.

    Linux: ~/.local/state/tmux-launcher/log/
    macOS: ~/Library/Logs/tmux-launcher/
    """
    return Path(platformdirs.user_log_dir(appname=APP_NAME, ensure_exists=True))


def setup_logger(console: bool = True, debug: bool = False):
    """
    Configure Loguru for machine-readable JSONL output.

    The curses UI owns the terminal while it runs, so the stderr sink is
    limited to warnings (or dropped with console=False). The file sink
    always records DEBUG.

    Args:
        console: Attach the stderr JSONL sink
        debug: Lower the stderr sink to DEBUG
    """
    logger.remove()

    if console:
        logger.add(
            json_sink,
            level="DEBUG" if debug else "WARNING"
        )

    logger.add(
        str(log_dir() / "launcher.jsonl"),
        format="{message}",
        serialize=True,
        rotation="10 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG"
    )

    return logger
