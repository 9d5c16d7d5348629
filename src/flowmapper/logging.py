"""Logger access for flowmapper modules.

Every module obtains its logger through `get_logger(__name__)`, so hosts can
configure the whole `flowmapper` hierarchy at once. The library never installs
handlers beyond a NullHandler on its root logger.
"""

from __future__ import annotations

import logging

ROOT_LOGGER_NAME = "flowmapper"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
