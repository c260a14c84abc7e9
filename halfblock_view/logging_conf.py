#!/usr/bin/env python3
# halfblock_view/logging_conf.py
"""
Central logging setup for the half-block viewer.
Supports console and optional rotating file logs.
"""

import logging
from logging.handlers import RotatingFileHandler
from halfblock_view.config import Config

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(cfg: Config, console: bool = True) -> None:
    """
    Configure the root logger from cfg["logging"].

    console=False is used while the full-screen UI owns the terminal; records
    then only go to the rotating file, if one is configured.
    """
    level_name = cfg["logging"].get("level", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    if console:
        logging.basicConfig(level=level, format=_FORMAT)

    log_file = cfg["logging"].get("file")
    if log_file:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=int(cfg["logging"].get("rotate_bytes", 5 * 1024 * 1024)),
            backupCount=int(cfg["logging"].get("rotate_keep", 3)),
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    elif not console:
        root.addHandler(logging.NullHandler())

    if cfg["logging"].get("http_debug"):
        logging.getLogger("urllib3").setLevel(logging.DEBUG)
        logging.getLogger("requests").setLevel(logging.DEBUG)
