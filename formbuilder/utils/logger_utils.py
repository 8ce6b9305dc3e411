import logging
from typing import Optional
from formbuilder.exceptions.custom_exception import CustomException

# Shared logger for cross-cutting messages; modules otherwise log under their own name
logger = logging.getLogger("formbuilder")


def log_info(context: str, message: str) -> None:
    logger.info(f"[{context}] {message}")


def log_warning(context: str, message: str) -> None:
    logger.warning(f"[{context}] {message}")


def log_transition(submission_id: str, field: str, old, new, actor: str) -> None:
    """Record a status or payment status change of a submission"""
    logger.info(f"[TRANSITION] {submission_id} {field}: {old} -> {new} by {actor}")


def _describe(error: Exception) -> str:
    return str(error) or error.__class__.__name__


def handle_route_error(error: Exception, context: str) -> None:
    """
    Log an exception caught in a route and re-raise it.

    Client errors (4xx CustomException) are logged at info level without a
    traceback; anything else is logged as an error with the stack.

    Raises:
        the original exception, always
    """
    if isinstance(error, CustomException) and error.status_code < 500:
        logger.info(f"[ROUTE] {context}: {error.status_code} {error.message}")
        raise error

    logger.error(f"[ROUTE ERROR] {context}: {_describe(error)}", exc_info=True)
    raise error


def handle_middleware_error(
    error: Exception,
    context: str,
    custom_exception: Optional[CustomException] = None
) -> None:
    logger.error(f"[MIDDLEWARE ERROR] {context}: {_describe(error)}", exc_info=True)

    if custom_exception:
        raise custom_exception from error
    raise error
