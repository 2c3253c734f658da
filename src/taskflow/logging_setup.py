# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterable
from pathlib import Path

# Per-record read/write chatter; the console shows these only at INFO+.
DATA_LAYER_LOGGERS = ("taskflow.storage", "taskflow.tasks", "taskflow.accounts")

# HTTP stack used by the completion client.
NOISY_LIBRARIES = ("httpx", "httpcore", "openai")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable while the session controller is busy:
    - taskflow logs pass, except DEBUG chatter from the data layer
    - everything else (openai, httpx, py.warnings) only at ERROR+
    """

    def __init__(self, quiet_prefixes: Iterable[str] = DATA_LAYER_LOGGERS) -> None:
        super().__init__()
        self._quiet = tuple(quiet_prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == "taskflow" or name.startswith("taskflow."):
            if any(name == p or name.startswith(p + ".") for p in self._quiet):
                return record.levelno >= logging.INFO
            return True

        return record.levelno >= logging.ERROR


def log_file_name(app_name: str) -> str:
    """'My Tasks' -> 'my-tasks.log'. Falls back to taskflow.log."""
    slug = re.sub(r"[^a-z0-9._-]+", "-", (app_name or "").strip().lower()).strip("-.")
    return f"{slug or 'taskflow'}.log"


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    app_name: str = "taskflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure logging with:
    - Console handler: filtered for interactive use
    - File handler: full logs (every mutation and LLM attempt) for debugging

    Call this ONCE, before the session is built. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name(app_name)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # The SDK logs request lines at INFO; keep them out of the file too.
    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return log_file
