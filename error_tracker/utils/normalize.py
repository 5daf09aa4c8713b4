"""Error normalization utilities."""

import traceback
from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass
class CanonicalError:
    """An arbitrary captured value reduced to message, stack and name."""

    message: str
    stack: Optional[str] = None
    name: Optional[str] = None


def _field(value: Any, name: str) -> Any:
    try:
        if isinstance(value, Mapping):
            return value.get(name)
        return getattr(value, name, None)
    except Exception:
        return None


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def format_exception_stack(error: BaseException) -> Optional[str]:
    """Format the traceback of a raised exception; None if it was never raised."""
    if error.__traceback__ is None:
        return None
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def normalize_error(error: Any) -> CanonicalError:
    """
    Normalize any value into a CanonicalError.

    Never raises: exceptions, strings, mappings, arbitrary objects and
    scalars all produce a usable message.
    """
    if isinstance(error, CanonicalError):
        return error

    if isinstance(error, BaseException):
        try:
            stack = format_exception_stack(error)
        except Exception:
            stack = None
        return CanonicalError(
            message=_safe_str(error) or type(error).__name__,
            stack=stack,
            name=type(error).__name__,
        )

    if isinstance(error, str):
        return CanonicalError(message=error)

    if error is not None and not isinstance(error, (bool, int, float)):
        stack = _field(error, "stack")
        name = _field(error, "name")
        return CanonicalError(
            message=extract_message(error),
            stack=_safe_str(stack) if stack else None,
            name=_safe_str(name) if name else None,
        )

    return CanonicalError(message=_safe_str(error))


def extract_message(error: Any) -> str:
    """Extract a message string from any error value."""
    if isinstance(error, BaseException):
        return _safe_str(error) or type(error).__name__
    if isinstance(error, str):
        return error
    if error is not None and not isinstance(error, (bool, int, float)):
        message = _field(error, "message") or _field(error, "reason")
        if message:
            return _safe_str(message)
    return _safe_str(error)


def is_error_like(value: Any) -> bool:
    """Check if a value is an exception or carries a string message."""
    if isinstance(value, BaseException):
        return True
    if value is None or isinstance(value, str):
        return False
    return isinstance(_field(value, "message"), str)
