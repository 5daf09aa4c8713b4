"""
Module-level SDK API.

Usage:
    import error_tracker

    error_tracker.init(
        dsn="https://errors.example.com",
        app_id="my-api",
        commit_hash="abc123",
        environment="Production",
    )

    await error_tracker.capture_message("Something happened", "Warning")
"""

from typing import Any, Mapping, Optional

import structlog

from .client import Client
from .hub import LevelLike
from .models import ErrorLevel
from .registry import registry
from .scope import UserLike

logger = structlog.get_logger(__name__)

NOT_INITIALIZED = "ErrorTracker: Not initialized. Call init() first."


def init(options: Any = None, **kwargs: Any) -> Client:
    """
    Initialize the SDK. Call as early as possible in the application.

    A second call is ignored with a warning and returns the active client.

    Raises:
        ConfigurationError: If the options are invalid
    """
    existing = registry.get()
    if existing is not None:
        logger.warning("ErrorTracker: Already initialized")
        return existing

    client = Client(options, **kwargs)
    if not registry.set_if_empty(client):
        # Lost a race with a concurrent init
        client.close()
        logger.warning("ErrorTracker: Already initialized")
        return registry.get()
    return client


def get_client() -> Optional[Client]:
    """Active client, or None before init()."""
    return registry.get()


async def capture_exception(
    error: Any,
    level: LevelLike = ErrorLevel.ERROR,
) -> Optional[str]:
    """
    Capture an exception.

    Args:
        error: The exception (or any value) to capture
        level: Error level (default: Error)

    Returns:
        Event ID, or None if not sent
    """
    client = registry.get()
    if client is None:
        logger.warning(NOT_INITIALIZED)
        return None
    return await client.capture_exception(error, level)


async def capture_message(
    message: str,
    level: LevelLike = ErrorLevel.WARNING,
) -> Optional[str]:
    """
    Capture a message.

    Args:
        message: The message to capture
        level: Error level (default: Warning)

    Returns:
        Event ID, or None if not sent
    """
    client = registry.get()
    if client is None:
        logger.warning(NOT_INITIALIZED)
        return None
    return await client.capture_message(message, level)


def set_user(user: Optional[UserLike]) -> None:
    """Set user information for all future events; None clears it."""
    client = registry.get()
    if client is not None:
        client.set_user(user)


def set_tag(key: str, value: str) -> None:
    client = registry.get()
    if client is not None:
        client.set_tag(key, value)


def set_tags(tags: Mapping[str, str]) -> None:
    client = registry.get()
    if client is not None:
        client.set_tags(tags)


def set_extra(key: str, value: Any) -> None:
    client = registry.get()
    if client is not None:
        client.set_extra(key, value)


def set_extras(extras: Mapping[str, Any]) -> None:
    client = registry.get()
    if client is not None:
        client.set_extras(extras)


async def flush(timeout: float = 5.0) -> None:
    """Send pending events and wait for completion, bounded by timeout."""
    client = registry.get()
    if client is not None:
        await client.flush(timeout)


def close() -> None:
    """Detach all hooks and forget the active client."""
    client = registry.clear()
    if client is not None:
        client.close()
