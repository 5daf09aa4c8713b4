"""Stack parsing, error normalization and safe-execution helpers."""

from .normalize import CanonicalError, extract_message, is_error_like, normalize_error
from .safe import run_coroutine, safe, safe_execute, safe_execute_async, with_timeout
from .stacktrace import parse_stack_trace

__all__ = [
    "CanonicalError",
    "extract_message",
    "is_error_like",
    "normalize_error",
    "parse_stack_trace",
    "run_coroutine",
    "safe",
    "safe_execute",
    "safe_execute_async",
    "with_timeout",
]
