# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Every module in the notification core logs through the standard library
(``logging.getLogger(__name__)``). This module routes those records
through structlog's ``ProcessorFormatter`` so that send-scoped context
bound with :func:`log_context` (user id, notification type) lands on
every line, whether it came from a stdlib logger or a structlog one.

Output is JSON outside development and colored console output in
development or debug mode.

Example:
    >>> from src.utils.logging import setup_logging, log_context
    >>> from src.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> with log_context(user_id="u-1", notification_type="EMERGENCY"):
    ...     logging.getLogger("src.demo").info("Admitted %s", "n-1")
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from src.core.config.settings import Settings

HANDLER_NAME = "notification-core"

QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "sqlalchemy",
    "asyncio",
    "aiosmtplib",
    "dramatiq",
    "apscheduler",
)


def _build_renderer(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and the root stdlib logger.

    Safe to call more than once: the handler installed on the root logger
    is replaced, not duplicated.

    Args:
        settings: Application settings (log_level, debug, environment).
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Applied to stdlib records and structlog events alike
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_build_renderer(settings),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(log_level)


def log_context(**kwargs: object) -> AbstractContextManager[None]:
    """Bind values to every log line emitted inside a with block.

    On exit only these keys are restored to their previous state; context
    bound by the caller (a request or job id) is left alone.

    Args:
        **kwargs: Key-value pairs, e.g. user_id and notification_type.

    Example:
        >>> with log_context(user_id="u-1", notification_type="EMERGENCY"):
        ...     logger.info("Admitting")
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
