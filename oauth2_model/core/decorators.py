"""Decorators for the OAuth2 credential model."""

import functools
import traceback
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import ParamSpec, TypeVar

from .logging import logger, operation_id_ctx

P = ParamSpec("P")
R = TypeVar("R")


def track_operation(
    operation_name: str,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator to track credential operations with timing and error handling.

    Nested tracked calls reuse the outer operation id so that one grant
    shows up under a single id in the logs.

    Args:
        operation_name: Name of the operation being tracked

    Returns:
        Decorated function with operation tracking
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            outer_id = operation_id_ctx.get()
            token = None
            if outer_id is None:
                token = operation_id_ctx.set(str(uuid.uuid4())[:8])
            start_time = datetime.now(UTC).timestamp()

            logger.debug("Starting %s", operation_name)

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = datetime.now(UTC).timestamp() - start_time
                logger.error("Failed %s after %.3fs: %s", operation_name, duration, str(e))
                logger.debug("Traceback: %s", traceback.format_exc())
                raise
            else:
                duration = datetime.now(UTC).timestamp() - start_time
                logger.debug("Completed %s in %.3fs", operation_name, duration)
            finally:
                if token is not None:
                    operation_id_ctx.reset(token)

            return result

        return wrapper

    return decorator
