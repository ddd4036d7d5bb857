from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class BracketLevelFormatter(logging.Formatter):
    """Bracketed lowercase level tags and UTC timestamps."""

    _TAGS = {
        logging.DEBUG: "[debug]",
        logging.INFO: "[info]",
        logging.WARNING: "[warn]",
        logging.ERROR: "[error]",
        logging.CRITICAL: "[crit]",
    }

    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    def format(self, record):
        record.level_tag = self._TAGS.get(record.levelno, f"[lvl{record.levelno}]")
        return super().format(record)


def init_logging(level: str = "info", stream=None) -> None:
    """
    Install a single stderr handler on the root logger.

    `level` is one of debug, info, warn, error; unknown names fall back to info.
    """
    root = logging.getLogger()
    root.setLevel(_LEVELS.get(str(level).lower(), logging.INFO))

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(BracketLevelFormatter(fmt="%(asctime)s %(level_tag)s %(name)s: %(message)s"))
    root.addHandler(handler)
