"""Transports delivering events to the ingestion endpoint."""

from .base import INGEST_PATH, BaseTransport
from .beacon import BeaconTransport
from .http import HttpTransport

__all__ = ["INGEST_PATH", "BaseTransport", "BeaconTransport", "HttpTransport"]
