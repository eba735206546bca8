"""Logging configuration for the OAuth2 credential model.

Importing the package only attaches a ``NullHandler`` to the ``oauth2_model``
logger. Applications call ``configure_logging()`` to get formatted output
with operation ids.
"""

import logging
import sys
from contextvars import ContextVar

# Context variable to store the operation id across nested calls
operation_id_ctx: ContextVar[str | None] = ContextVar("operation_id", default=None)

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(operation_id)s%(message)s"

# Parent of every oauth2_model.* module logger
logger = logging.getLogger("oauth2_model")
logger.addHandler(logging.NullHandler())


class OperationIdFilter(logging.Filter):
    """Logging filter that adds operation_id to log records."""

    def filter(self, record):
        """Add operation_id to the log record if available."""
        operation_id = operation_id_ctx.get()
        record.operation_id = f"[{operation_id}] " if operation_id else ""
        return True


def configure_logging(debug: bool | None = None) -> logging.Logger:
    """Configure root output and the package log level.

    Args:
        debug: Force debug output on or off (defaults to ``Settings.debug``)

    Returns:
        The package logger
    """
    if debug is None:
        from oauth2_model.config import get_settings

        debug = get_settings().debug

    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    operation_filter = OperationIdFilter()
    for handler in logging.root.handlers:
        if not any(isinstance(f, OperationIdFilter) for f in handler.filters):
            handler.addFilter(operation_filter)

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if debug:
        logger.debug("Debug mode enabled")

    return logger
