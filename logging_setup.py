# logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from config import get_settings

# Top-level modules and packages that make up this application.
APP_LOGGERS = ("db", "config", "utils", "models", "errors")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - allow our own logs
    - SQLAlchemy engine echo only at WARNING+
    - any other third-party logger only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        root = name.split(".", 1)[0]

        if root in APP_LOGGERS:
            return True

        if name.startswith("sqlalchemy."):
            return record.levelno >= logging.WARNING

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: Optional[Union[str, Path]] = None,
    console_level: Optional[Union[int, str]] = None,
    file_level: Union[int, str] = logging.DEBUG,
) -> None:
    """
    Configure logging with a filtered console handler and a file handler
    that keeps everything.

    Directory and console level default to the configured settings. Call
    this once, before the first log line.
    """
    settings = get_settings()
    log_dir = Path(log_dir) if log_dir is not None else settings.log_dir
    if console_level is None:
        console_level = settings.log_level
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tasktrail.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

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

    logging.captureWarnings(True)
