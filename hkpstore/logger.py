"""
hkpstore.logger
---------------
One JSON-line stdout handler (plus an optional file handler) on the
``hkpstore`` logger. Component modules log through child loggers such as
``hkpstore.import`` and inherit this configuration by propagation.
"""

import json
import logging
import os
import sys
import time

LOG_FORMAT = json.dumps({
    "ts": "%(asctime)s",
    "level": "%(levelname)s",
    "name": "%(name)s",
    "msg": "%(message)s",
})


def parse_level(level) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level!r}")
    return resolved


def get_logger(name="hkpstore", level=logging.INFO, to_file=None):
    """Configure and return the named logger; handlers are attached once."""
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(level))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%SZ")
    formatter.converter = time.gmtime

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    to_file = to_file or os.getenv("HKPSTORE_LOG_FILE")
    if to_file:
        os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
        file_handler = logging.FileHandler(to_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
