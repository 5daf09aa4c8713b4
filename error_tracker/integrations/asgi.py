"""
ASGI middleware for Starlette and FastAPI applications.

Usage:
    app = FastAPI()
    app.add_middleware(ErrorTrackerMiddleware)
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..models import ErrorLevel

if TYPE_CHECKING:
    from ..client import Client

logger = structlog.get_logger(__name__)

DEFAULT_RESPONSE = {"error": "Internal server error"}


def _user_field(user: Any, name: str) -> Any:
    if isinstance(user, dict):
        return user.get(name)
    return getattr(user, name, None)


class ErrorTrackerMiddleware(BaseHTTPMiddleware):
    """
    Request context and unhandled exception capture.

    Before the request is handled, the user found on request.state.user and
    the x-request-id header are put on the scope. An exception escaping the
    application is captured with the request details as the "request" extra,
    then answered with a JSON error response (or re-raised with rethrow=True).
    """

    def __init__(
        self,
        app,
        client: Optional["Client"] = None,
        rethrow: bool = False,
        response: Any = None,
        status_code: int = 500,
    ):
        super().__init__(app)
        self.client = client
        self.rethrow = rethrow
        self.response = DEFAULT_RESPONSE if response is None else response
        self.status_code = status_code

    def _get_client(self) -> Optional["Client"]:
        if self.client is not None:
            return self.client
        from ..api import get_client

        return get_client()

    def _set_request_context(self, client: "Client", request: Request) -> None:
        user = getattr(request.state, "user", None)
        user_id = _user_field(user, "id")
        if user_id:
            client.set_user({"id": str(user_id), "email": _user_field(user, "email")})

        request_id = request.headers.get("x-request-id")
        if request_id:
            client.set_tag("requestId", request_id)

    def _request_metadata(self, request: Request) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "path": request.url.path,
            "method": request.method,
            "query": dict(request.query_params),
            "ip": request.client.host if request.client else None,
            "userAgent": request.headers.get("user-agent"),
        }

        user_id = _user_field(getattr(request.state, "user", None), "id")
        if user_id:
            metadata["userId"] = str(user_id)

        request_id = request.headers.get("x-request-id")
        if request_id:
            metadata["requestId"] = request_id

        return metadata

    async def dispatch(self, request: Request, call_next):
        client = self._get_client()
        if client is not None:
            try:
                self._set_request_context(client, request)
            except Exception as e:
                client.config.debug_log("Request context failed", error=repr(e))

        try:
            return await call_next(request)
        except Exception as exc:
            if client is not None:
                client.set_extra("request", self._request_metadata(request))
                try:
                    await client.capture_exception(exc, ErrorLevel.ERROR)
                finally:
                    client.set_extra("request", None)
            else:
                logger.error(
                    "ErrorTracker: Not initialized, error not captured",
                    error=repr(exc),
                )

            if self.rethrow:
                raise

            return JSONResponse(content=self.response, status_code=self.status_code)
