from __future__ import annotations

from storefront.config import settings
from storefront.core.exceptions import DeliveryError
from storefront.utils.logger import logger


def is_production() -> bool:
    return settings.ENVIRONMENT == "production"


def safe_error_log(error: BaseException, context: str = "Unknown error") -> None:
    """
    Logs an error with a context tag.
    Outside production the stack trace is included; in production only the
    context and the exception type are written.
    """
    if is_production():
        logger.error(f"[{context}] {type(error).__name__} occurred")
    else:
        logger.error(f"[{context}] {error}", exc_info=error)


def get_safe_error_message(error: BaseException, default_message: str) -> str:
    """
    Message that can be shown to the visitor.

    DeliveryError messages are written for the visitor and pass through.
    Anything else is reduced to `default_message` in production and to a
    coarse category elsewhere, never the raw exception text.
    """
    if isinstance(error, DeliveryError):
        return error.message
    if is_production():
        return default_message

    text = str(error).lower()
    if "timeout" in text or "connect" in text or "network" in text:
        return "Check your network connection."
    if "401" in text:
        return "Authentication required. Please sign in again."
    if "403" in text:
        return "You do not have access to this resource."
    if "404" in text:
        return "The requested resource was not found."
    if "500" in text:
        return "Server error. Please try again shortly."
    if "json" in text:
        return "The server response was not in the expected format."
    return default_message
