"""Storage backends and interfaces."""

from mock_portal.storage.base import LogStore, PortalStorage, RouteRepository
from mock_portal.storage.memory import InMemoryPortalStorage
from mock_portal.storage.postgres import PostgresPortalStorage

__all__ = [
    "InMemoryPortalStorage",
    "LogStore",
    "PortalStorage",
    "PostgresPortalStorage",
    "RouteRepository",
]
