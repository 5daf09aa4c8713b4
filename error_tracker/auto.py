"""
Auto-initialization entry point.

Importing this module initializes the SDK from ERROR_TRACKER_* environment
variables (or the .env file):

    import error_tracker.auto  # noqa: F401
"""

from .api import init
from .config import ErrorTrackerOptions

client = init(ErrorTrackerOptions())

client.config.debug_log(
    "Auto-initialized with config",
    dsn=client.config.get("dsn"),
    app_id=client.config.get("app_id"),
    environment=client.config.get("environment"),
)
