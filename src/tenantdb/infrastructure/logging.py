"""Structlog configuration for applications embedding tenantdb.

tenantdb only ever calls ``structlog.get_logger()``; the embedding
application decides how those events render. ``configure_logging`` is the
optional one-call setup: colored console output for development, JSON for
production, and every event tagged with the tenant of the current request.

Usage:
    from tenantdb import configure_logging

    configure_logging(level=logging.INFO)

The tenant middleware binds ``tenant_id`` for the duration of each request
through ``bind_tenant``, so application log lines emitted inside a route
carry it without passing it around.
"""

from __future__ import annotations

import os
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog

TENANT_LOG_KEY = "tenant_id"


def bind_tenant(tenant_id: str) -> AbstractContextManager[Any]:
    """Bind ``tenant_id`` to every log event in the current context.

    Args:
        tenant_id: Tenant the enclosed work runs for

    Returns:
        A context manager that restores the previous binding on exit
    """
    return structlog.contextvars.bound_contextvars(**{TENANT_LOG_KEY: tenant_id})


def configure_logging(level: int = 0, *, json_output: bool | None = None) -> None:
    """Configure structlog with tenant-aware processors.

    Uses colored console output for development (when FORCE_COLOR is set
    or running in a TTY), otherwise uses JSON output for production.

    Args:
        level: Minimum stdlib logging level to emit (default: everything)
        json_output: Force JSON (True) or console (False) output instead of
            detecting it from the terminal
    """
    if json_output is None:
        # FORCE_COLOR=1 enables colors even in non-TTY environments (like Docker)
        force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
        json_output = not (force_color or sys.stdout.isatty())

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
