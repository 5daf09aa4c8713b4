"""Error event payload models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Environment(str, Enum):
    """Deployment environments accepted by the ingestion API."""

    PRODUCTION = "Production"
    STAGING = "Staging"
    DEVELOPMENT = "Development"


class ErrorLevel(str, Enum):
    """Event severity levels."""

    ERROR = "Error"
    WARNING = "Warning"
    CRITICAL = "Critical"


class WireModel(BaseModel):
    """Base model using camelCase names on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump to a JSON-compatible dict, omitting absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def detached_copy(self):
        """Deep copy; falls back to a shallow copy when a value cannot be deep-copied."""
        try:
            return self.model_copy(deep=True)
        except Exception:
            return self.model_copy()


class SourceContext(WireModel):
    """Best-effort source location of the frame that raised."""

    file_name: Optional[str] = None
    line_number: Optional[int] = None
    column_number: Optional[int] = None
    function_name: Optional[str] = None


class UserInfo(WireModel):
    """User context. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None


class ErrorEvent(WireModel):
    """
    A captured error as it is queued and sent.

    app_id, commit_hash, environment, level and message are always present;
    everything else is left as None when empty so it never reaches the wire.
    """

    app_id: str
    commit_hash: str
    environment: Environment
    level: ErrorLevel
    message: str
    stack_trace: Optional[str] = None
    source_context: Optional[SourceContext] = None
    metadata: Optional[Dict[str, Any]] = None
    tags: Optional[Dict[str, str]] = None
    user: Optional[UserInfo] = None
    user_agent: Optional[str] = None
    timestamp: Optional[str] = None


class IngestErrorResponse(WireModel):
    """Success body returned by the ingestion endpoint."""

    success: bool
    id: Optional[str] = None


class ApiErrorResponse(WireModel):
    """Error body returned by the ingestion endpoint."""

    error: str
    details: Optional[List[str]] = None


@dataclass
class TransportResponse:
    """Result of a single delivery attempt."""

    success: bool
    id: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
