"""Console and file logging shared by the CLI and the API server."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# chatty below WARNING unless running with --debug
QUIET_LOGGERS = ("uvicorn.access", "multipart", "httpx")


def _as_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(level: int | str = logging.INFO, log_file: str | Path | None = None) -> None:
    """
    Route FBMS log records to a rich console handler and, optionally, a file.

    The file handler always records DEBUG, so a till session can be traced
    afterwards even when the console only shows warnings. SQL statements are
    logged only at DEBUG.

    Args:
        level: Console level, as a number or a name such as ``"INFO"``
        log_file: Optional path of the plain-text log file
    """
    level = _as_level(level)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if log_file else level)
    root.handlers.clear()

    console = RichHandler(show_time=False, show_path=False, rich_tracebacks=True)
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    debug = level <= logging.DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if debug else logging.WARNING)
