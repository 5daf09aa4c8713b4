"""Runtime-specific event enrichment."""

import platform
from typing import Optional

from .models import ErrorEvent
from .utils.normalize import CanonicalError
from .utils.stacktrace import parse_stack_trace


class Runtime:
    """
    Adds environment-specific fields to an already built event.

    The hub calls enrich() only after build_event(), so scope snapshots are
    always taken first.
    """

    def user_agent(self) -> Optional[str]:
        return None

    def enrich(self, event: ErrorEvent, error: Optional[CanonicalError] = None) -> ErrorEvent:
        user_agent = self.user_agent()
        if user_agent:
            event.user_agent = user_agent
        if error is not None:
            event.source_context = parse_stack_trace(error.stack)
        return event


class ProcessRuntime(Runtime):
    """Enrichment for a Python process: interpreter and platform as user agent."""

    def __init__(self) -> None:
        self._user_agent = (
            f"{platform.python_implementation()}/{platform.python_version()} "
            f"({platform.system()} {platform.release()}; {platform.machine()})"
        )

    def user_agent(self) -> Optional[str]:
        return self._user_agent
