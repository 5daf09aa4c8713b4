"""Automatic capture integrations."""

from .global_handlers import HandlerStack, setup_global_handlers

__all__ = ["HandlerStack", "setup_global_handlers"]
