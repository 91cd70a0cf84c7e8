"""Logging setup for the tracker core.

Modules call ``get_logger(__name__)``; the first call installs handlers on the
root logger unless the host application already configured logging.
``configure_logging`` can be called explicitly to choose the level, the log
directory or to turn the dated log file off.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import date
from pathlib import Path

DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def configure_logging(
    level: str | None = None,
    log_dir: Path | None = None,
    to_file: bool | None = None,
) -> None:
    """Install console (and optionally file) handlers on the root logger.

    Unset arguments fall back to ``LOG_LEVEL``, ``APPTRACK_LOG_DIR`` and
    ``LOG_TO_FILE``. Does nothing to handlers if the root logger has some.
    """
    global _configured
    _configured = True

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    numeric = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric)
    if root.handlers:
        return

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric)
    console.setFormatter(formatter)
    root.addHandler(console)

    if to_file is None:
        to_file = _env_flag("LOG_TO_FILE", True)
    if not to_file:
        return

    directory = Path(log_dir or os.environ.get("APPTRACK_LOG_DIR") or DEFAULT_LOG_DIR)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(directory / f"tracker_{date.today():%Y-%m-%d}.log", encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled: %s", exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
