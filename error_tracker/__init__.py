"""
Error tracker SDK: captures errors and messages and delivers them to the
ingestion endpoint, queueing events that could not be sent.
"""

from .api import (
    capture_exception,
    capture_message,
    close,
    flush,
    get_client,
    init,
    set_extra,
    set_extras,
    set_tag,
    set_tags,
    set_user,
)
from .client import Client
from .config import Config, ErrorTrackerOptions
from .exceptions import ConfigurationError, ErrorTrackerError
from .models import Environment, ErrorEvent, ErrorLevel, SourceContext, UserInfo

__version__ = "1.0.0"

__all__ = [
    "Client",
    "Config",
    "ConfigurationError",
    "Environment",
    "ErrorEvent",
    "ErrorLevel",
    "ErrorTrackerError",
    "ErrorTrackerOptions",
    "SourceContext",
    "UserInfo",
    "capture_exception",
    "capture_message",
    "close",
    "flush",
    "get_client",
    "init",
    "set_extra",
    "set_extras",
    "set_tag",
    "set_tags",
    "set_user",
]
