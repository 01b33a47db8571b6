"""Storage layer for jumpjump."""

from jumpjump.storage.errors import LocationStoreError
from jumpjump.storage.migrations import CURRENT_VERSION, MigrationError, migrate
from jumpjump.storage.sqlite import LocationStore, default_db_path

__all__ = [
    "CURRENT_VERSION",
    "LocationStore",
    "LocationStoreError",
    "MigrationError",
    "default_db_path",
    "migrate",
]
