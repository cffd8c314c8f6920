"""
Logging setup.
"""

from __future__ import annotations

import logging
import os

# httpx logs every request at INFO; the loop already logs pump transitions
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_path: str, log_level: str = "INFO") -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
