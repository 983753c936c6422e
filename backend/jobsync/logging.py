"""
structlog setup for the jobsync service.

Events are snake_case names with keyword context, e.g.
``log.info("gmail_sync_completed", user_id=..., created=3)``.
"""

import logging
import sys
from typing import List, Optional

import structlog

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache", "urllib3")


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Route structlog through the stdlib root logger.

    ``json_output`` selects one JSON object per line (deployments) or the
    colored console renderer (local runs and tests).
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
