# lfspkg/logging.py
# -*- coding: utf-8 -*-
"""
lfspkg logging

Features:
 - Console color formatter (stderr), toggled by config.color
 - Rotating file handler under the log root
 - get_logger(module) returns an adapter injecting 'lfspkg_module' into records
 - setup_logging() is idempotent: calling it again replaces the handlers it owns
"""

from __future__ import annotations

import sys
import logging
import logging.handlers
import threading
from typing import List, Optional

from lfspkg.config import Config

_ROOT_NAME = "lfspkg"
_lock = threading.RLock()
_handlers: List[logging.Handler] = []


# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m",  # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        if not hasattr(record, "lfspkg_module"):
            record.lfspkg_module = record.name
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg


class _ModuleFormatter(logging.Formatter):
    def format(self, record):
        if not hasattr(record, "lfspkg_module"):
            record.lfspkg_module = record.name
        return super().format(record)


# ----------------------
# Configuration
# ----------------------
def setup_logging(config: Config, verbose: bool = False) -> logging.Logger:
    """Attach console and (optional) rotating file handlers to the 'lfspkg' logger."""
    root = logging.getLogger(_ROOT_NAME)
    with _lock:
        for h in list(_handlers):
            root.removeHandler(h)
            h.close()
        _handlers.clear()

        level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
        root.setLevel(logging.DEBUG)
        root.propagate = False

        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(level)
        ch.setFormatter(ColorFormatter("[%(asctime)s] [%(levelname)s] [%(lfspkg_module)s] %(message)s",
                                       datefmt="%H:%M:%S", color=config.color))
        root.addHandler(ch)
        _handlers.append(ch)

        if config.log_file:
            try:
                config.log_file.parent.mkdir(parents=True, exist_ok=True)
                fh = logging.handlers.RotatingFileHandler(str(config.log_file), maxBytes=config.log_max_bytes,
                                                          backupCount=config.log_backups, encoding="utf-8")
            except OSError:
                root.warning("logging: cannot open log file %s", config.log_file, exc_info=True)
            else:
                fh.setLevel(logging.DEBUG)
                fh.setFormatter(_ModuleFormatter("%(asctime)s %(levelname)s [%(lfspkg_module)s] %(message)s"))
                root.addHandler(fh)
                _handlers.append(fh)
    return root


def get_logger(module: str) -> logging.LoggerAdapter:
    """Return a LoggerAdapter that injects 'lfspkg_module' into records."""
    base = logging.getLogger(_ROOT_NAME)
    return logging.LoggerAdapter(base, {"lfspkg_module": module})
