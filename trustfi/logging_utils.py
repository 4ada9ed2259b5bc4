from __future__ import annotations

import logging
import os
from typing import Final

from .config import LOG_LEVEL_ENV

_ROOT_LOGGER_NAME: Final[str] = "trustfi"


def get_logger(name: str = _ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a ``trustfi`` logger sharing a single stream handler."""

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s %(name)s %(message)s", "%Y-%m-%d %H:%M:%S"
            )
        )
        root.addHandler(handler)
        root.setLevel(os.getenv(LOG_LEVEL_ENV, "INFO").upper())
        root.propagate = False
    if name == _ROOT_LOGGER_NAME or name.startswith(_ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return root.getChild(name)
