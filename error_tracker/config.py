"""Configuration management using Pydantic Settings."""

from typing import Any, Callable, Dict, Mapping, Optional

import structlog
from pydantic import ValidationError, field_validator
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import Environment, UserInfo

logger = structlog.get_logger(__name__)

VALID_ENVIRONMENTS = [env.value for env in Environment]


class ErrorTrackerOptions(BaseSettings):
    """
    SDK options.

    Values passed explicitly win; anything left out is read from
    ERROR_TRACKER_* environment variables (and the .env file when the
    settings are loaded without arguments).
    """

    model_config = SettingsConfigDict(
        env_prefix="ERROR_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Event identity
    dsn: str = ""
    app_id: str = ""
    commit_hash: str = ""
    environment: Environment = Environment.DEVELOPMENT

    # Delivery
    api_key: Optional[str] = None
    timeout: float = 10.0  # seconds per request
    queue_path: Optional[str] = None  # None = memory-only queue
    max_queue_size: int = 100
    shutdown_timeout: float = 2.0

    # Behaviour
    auto_capture: bool = True
    debug: bool = False
    tags: Dict[str, str] = {}
    user: Optional[UserInfo] = None
    before_send: Optional[Callable[..., Any]] = None

    @field_validator("dsn", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> Any:
        """Strip the trailing slash so endpoint paths join cleanly."""
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def check_environment(cls, v: Any) -> Any:
        """Reject anything but the three known environments."""
        if isinstance(v, Environment):
            return v
        if v not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of: {', '.join(VALID_ENVIRONMENTS)}"
            )
        return v


def _normalize_keys(options: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept both appId and app_id style option names."""
    return {to_snake(key): value for key, value in options.items()}


class Config:
    """
    Validated option holder shared by the hub, transports and integrations.

    The shape is fixed at construction; individual values can be changed
    later with update().
    """

    def __init__(self, options: Any = None, **kwargs: Any):
        """
        Build and validate the configuration.

        Args:
            options: ErrorTrackerOptions instance or a mapping of options
            **kwargs: Options given as keyword arguments

        Raises:
            ConfigurationError: If a required option is missing or invalid
        """
        if isinstance(options, ErrorTrackerOptions):
            merged = options.model_dump()
            merged.update(_normalize_keys(kwargs))
        else:
            merged = _normalize_keys(dict(options or {}, **kwargs))

        try:
            self._options = ErrorTrackerOptions(_env_file=None, **merged)
        except ValidationError as e:
            raise ConfigurationError(f"ErrorTracker: invalid options: {e}") from e

        self._validate()

    def _validate(self) -> None:
        if not self._options.dsn:
            raise ConfigurationError("ErrorTracker: dsn is required")
        if not self._options.app_id:
            raise ConfigurationError("ErrorTracker: appId is required")
        if not self._options.commit_hash:
            raise ConfigurationError("ErrorTracker: commitHash is required")

    def get(self, key: str) -> Any:
        """Read a single option (camelCase or snake_case name)."""
        return getattr(self._options, to_snake(key))

    def get_all(self) -> Dict[str, Any]:
        """Snapshot of all options."""
        return {
            name: dict(value) if isinstance(value, dict) else value
            for name, value in self._options
        }

    def update(self, updates: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """
        Shallow-merge new option values.

        Used for runtime reconfiguration such as swapping before_send.
        Values are not re-validated.
        """
        changes = _normalize_keys(dict(updates or {}, **kwargs))
        self._options = self._options.model_copy(update=changes)

    @property
    def options(self) -> ErrorTrackerOptions:
        return self._options

    def debug_log(self, message: str, /, **details: Any) -> None:
        """Log a diagnostic message when debug mode is on. Never raises."""
        try:
            if self._options.debug:
                logger.debug(f"[ErrorTracker] {message}", **details)
        except Exception:
            pass
