"""Logging setup for the ``cmdpool`` logger namespace.

Task lines and the final report go to stdout through ``print``; log records
go to stderr so the two never interleave on the same stream.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV = "CMDPOOL_LOG_LEVEL"
LOG_FILE_ENV = "CMDPOOL_LOG_FILE"

_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s thread=%(threadName)s msg=%(message)s"


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is when a record is emitted.

    Binding the stream once would keep a reference to a stream that test
    capture or an embedding application may have closed since.
    """

    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


def _resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    raw = level if level is not None else os.environ.get(LOG_LEVEL_ENV, "")
    resolved = logging.getLevelName(raw.strip().upper()) if raw.strip() else None
    if not isinstance(resolved, int):
        return logging.WARNING
    return resolved


def _handlers_of(root: logging.Logger, kind: type[logging.Handler]) -> list[logging.Handler]:
    return [h for h in root.handlers if type(h) is kind]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"cmdpool.{name}")


def setup_logging(*, level: int | str | None = None) -> None:
    """Configure the ``cmdpool`` logger.

    ``level`` (the ``--log-level`` flag) wins over ``CMDPOOL_LOG_LEVEL``; the
    default is WARNING, which only reports timeouts and spawn errors. When
    ``CMDPOOL_LOG_FILE`` is set, a file handler records at least INFO so a
    run's start/stop lifecycle is kept. Safe to call repeatedly.
    """
    stream_level = _resolve_level(level)
    root = logging.getLogger("cmdpool")

    stream_handlers = _handlers_of(root, _StderrHandler)
    if stream_handlers:
        stream_handler = stream_handlers[0]
    else:
        stream_handler = _StderrHandler()
        root.addHandler(stream_handler)
    stream_handler.setFormatter(logging.Formatter(_FORMAT))
    stream_handler.setLevel(stream_level)

    effective_level = stream_level
    file_path_raw = os.environ.get(LOG_FILE_ENV, "").strip()
    wanted = Path(file_path_raw).expanduser().resolve() if file_path_raw else None

    for handler in _handlers_of(root, logging.FileHandler):
        if wanted is None or Path(handler.baseFilename).resolve() != wanted:
            root.removeHandler(handler)
            handler.close()

    if wanted is not None:
        existing = _handlers_of(root, logging.FileHandler)
        if existing:
            file_handler = existing[0]
        else:
            wanted.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(wanted, encoding="utf-8")
            root.addHandler(file_handler)
        file_level = min(stream_level, logging.INFO)
        file_handler.setFormatter(logging.Formatter(_FORMAT))
        file_handler.setLevel(file_level)
        effective_level = min(effective_level, file_level)

    root.setLevel(effective_level)
