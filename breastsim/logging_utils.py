import logging
import os
import sys

import structlog

_CONFIGURED = False


def _configure(level: str) -> None:
    global _CONFIGURED
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    _CONFIGURED = True


def get_logger(name: str = __name__):
    """Return a configured structlog logger."""
    if not _CONFIGURED:
        _configure(os.getenv("BREASTSIM_LOG_LEVEL", "INFO"))
    return structlog.get_logger(name)
