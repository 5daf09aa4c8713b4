"""Structured logging setup for SDK diagnostics."""

import logging

import structlog


def configure_logging(debug: bool = False, log_level: str = "INFO") -> None:
    """
    Route structlog output through stdlib logging as JSON lines.

    Host applications that already configure structlog should not call this.

    Args:
        debug: Force DEBUG level so SDK diagnostics are visible
        log_level: Level name used when debug is off
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = logging.DEBUG if debug else getattr(logging, log_level.upper())
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger("error_tracker").setLevel(level)
