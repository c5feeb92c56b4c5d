from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_configured = False


def configure(debug: bool = False) -> None:
    """Set up the root handler once; later calls only adjust the level."""
    global _configured
    level = logging.DEBUG if debug else logging.WARNING
    if not _configured:
        logging.basicConfig(level=level, format=LOG_FORMAT)
        _configured = True
    logging.getLogger("chore").setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
