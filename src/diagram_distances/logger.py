"""
Structured logging for diagram_distances.

Events are emitted through structlog on top of stdlib loggers, so nothing is
shown below WARNING until the application calls ``configure_logging`` (or
configures the ``diagram_distances`` stdlib logger itself).
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


def _add_package_info(
    logger: Any, method: str, event_dict: EventDict
) -> EventDict:
    """Tag every entry with the package name."""
    event_dict["package"] = "diagram_distances"
    return event_dict


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Configure structlog for console output, or JSON output when ``json`` is set.

    Call once from the application (benchmark scripts, notebooks, services).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_package_info,
    ]

    if json:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    logging.getLogger("diagram_distances").setLevel(log_level)


def get_logger(name: str = "diagram_distances") -> structlog.stdlib.BoundLogger:
    """
    Return a structlog logger bound to the stdlib logger ``name``.

    Usage:
        log = get_logger(__name__)
        log.debug("auction_phase_complete", phase=3, epsilon=0.01)
    """
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
