"""Logging setup for the GigFlow backend."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(debug: bool = False) -> None:
    """Install a stream handler on the root logger once."""
    global _configured
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True
    root.setLevel(level)
    # Keep access logs from drowning out application lines
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger for a backend area, e.g. ``gigflow.gigs``."""
    return logging.getLogger(name)
