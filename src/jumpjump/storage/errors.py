"""Exceptions raised by the storage layer."""


class LocationStoreError(Exception):
    """Custom exception for location store errors."""

    pass
