"""SQLite storage layer for the ranked location index.

This module provides the persistent location index with support for:
- Insert-or-rank-bump of visited locations (case-insensitive natural key)
- Listings ordered by rank, then by most recent access
- Filtering through the ordered multi-token matcher
- Schema versioning and migrations on open

The LocationStore class owns one SQLite connection for its lifetime and
should be used as a context manager so the connection is released on
every exit path.
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from jumpjump.matching import PatternMatcher
from jumpjump.storage.errors import LocationStoreError
from jumpjump.storage.migrations import CURRENT_VERSION, migrate
from jumpjump.types import LocationEntry, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = ".jumpjump"

# Rank first, most recently touched wins ties, newest row as a last resort
_ORDER_BY = "ORDER BY rank DESC, last_access DESC, id DESC"

# Native upsert needs SQLite 3.24+
_HAS_UPSERT = sqlite3.sqlite_version_info >= (3, 24, 0)


def default_db_path() -> Path:
    """Get the default store file under the user's home directory.

    Raises:
        LocationStoreError: If the home directory cannot be determined
    """
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise LocationStoreError(
            f"Could not find home directory to store jumpjump db: {e}"
        ) from e
    return home / DEFAULT_DB_NAME


class LocationStore:
    """SQLite storage for visited locations.

    Args:
        db_path: Path to SQLite database file.
                 Defaults to ~/.jumpjump
        ephemeral: If True, use in-memory storage for testing (default: False)
        matcher: PatternMatcher used for filtering (a fresh one if omitted)
        busy_timeout: Seconds to wait for a lock held by another process
        clock: Callable returning the current local time (default: datetime.now)

    Attributes:
        db_path: Path to database file (None if ephemeral)
        ephemeral: Whether using ephemeral storage
        matcher: The session's PatternMatcher
        schema_version: Schema version after opening
        _conn: SQLite connection instance
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        ephemeral: bool = False,
        matcher: Optional[PatternMatcher] = None,
        busy_timeout: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Open the store and bring its schema up to date.

        Raises:
            LocationStoreError: If the store cannot be opened or migrated
        """
        self.ephemeral = ephemeral
        self.matcher = matcher or PatternMatcher()
        self._clock = clock or datetime.now
        self._conn: Optional[sqlite3.Connection] = None
        self.supports_upsert = _HAS_UPSERT

        if ephemeral:
            self.db_path = None
        else:
            self.db_path = db_path or default_db_path()

        try:
            if ephemeral:
                # Use in-memory database for testing
                conn = sqlite3.connect(":memory:", isolation_level=None)
            else:
                # Ensure database directory exists
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    str(self.db_path),
                    timeout=busy_timeout,
                    isolation_level=None,
                )
        except (sqlite3.Error, OSError) as e:
            raise LocationStoreError(f"Failed to open location store: {e}") from e

        self._conn = conn
        self._conn.row_factory = sqlite3.Row

        try:
            self.schema_version = migrate(self._conn, CURRENT_VERSION)
            self.matcher.register(self._conn)
        except LocationStoreError:
            self.close()
            raise
        except sqlite3.Error as e:
            self.close()
            raise LocationStoreError(f"Failed to initialize location store: {e}") from e

        logger.debug(
            f"Opened location store {self.db_path or ':memory:'} "
            f"at schema v{self.schema_version}"
        )

    def _now(self) -> str:
        return format_timestamp(self._clock())

    def add_location(self, location: str) -> None:
        """Record a visit to a location.

        Inserts the location with rank 1, or bumps the rank of the existing
        case-insensitively equal location by exactly one. Either way
        last_access is set to now.

        Args:
            location: Canonicalized absolute path

        Raises:
            ValueError: If location is empty
            LocationStoreError: If the write fails (nothing is applied)
        """
        if not location:
            raise ValueError("Location cannot be empty")

        now = self._now()

        try:
            if self.supports_upsert:
                self._conn.execute(
                    """
                    INSERT INTO jump_location (location, rank, last_access)
                    VALUES (?, 1, ?)
                    ON CONFLICT(location) DO UPDATE
                    SET rank = rank + 1, last_access = excluded.last_access
                    """,
                    (location, now),
                )
            else:
                self._add_location_in_transaction(location, now)

        except sqlite3.Error as e:
            self._conn.rollback()
            raise LocationStoreError(f"Failed to add location: {e}") from e

        logger.debug(f"Added location {location}")

    def _add_location_in_transaction(self, location: str, now: str) -> None:
        # Write lock up front so the read and the write see the same row
        self._conn.execute("BEGIN IMMEDIATE")
        row = self._conn.execute(
            "SELECT id FROM jump_location WHERE location = ?",
            (location,),
        ).fetchone()

        if row is None:
            self._conn.execute(
                "INSERT INTO jump_location (location, rank, last_access) VALUES (?, 1, ?)",
                (location, now),
            )
        else:
            self._conn.execute(
                "UPDATE jump_location SET rank = rank + 1, last_access = ? WHERE id = ?",
                (now, row["id"]),
            )
        self._conn.commit()

    def get_locations(self) -> list[str]:
        """List every location, best ranked first.

        Returns:
            Locations ordered by rank, then most recent access

        Raises:
            LocationStoreError: If the read fails
        """
        try:
            cursor = self._conn.execute(f"SELECT location FROM jump_location {_ORDER_BY}")
            return [row["location"] for row in cursor.fetchall()]

        except sqlite3.Error as e:
            raise LocationStoreError(f"Failed to get locations: {e}") from e

    def get_matching_locations(self, tokens: Iterable[str]) -> list[str]:
        """List locations containing all tokens in order, best ranked first.

        Args:
            tokens: Query tokens, matched case-insensitively in order

        Returns:
            Matching locations (empty if nothing matches)

        Raises:
            PatternError: If tokens are empty or form an invalid pattern
            LocationStoreError: If the read fails
        """
        pattern = self.matcher.build_pattern(tokens)

        try:
            cursor = self._conn.execute(
                f"SELECT location FROM jump_location WHERE regexp(?, location) {_ORDER_BY}",
                (pattern,),
            )
            return [row["location"] for row in cursor.fetchall()]

        except sqlite3.Error as e:
            raise LocationStoreError(f"Failed to get matching locations: {e}") from e

    def get_all_locations_verbose(self) -> list[LocationEntry]:
        """List every location with its rank and last access time.

        Returns:
            LocationEntry records in the same order as get_locations

        Raises:
            LocationStoreError: If the read fails
        """
        try:
            cursor = self._conn.execute(
                f"SELECT id, location, rank, last_access FROM jump_location {_ORDER_BY}"
            )
            rows = cursor.fetchall()

        except sqlite3.Error as e:
            raise LocationStoreError(f"Failed to get locations: {e}") from e

        return [
            LocationEntry(
                id=row["id"],
                location=row["location"],
                rank=row["rank"],
                last_access=parse_timestamp(row["last_access"]),
            )
            for row in rows
        ]

    def count(self) -> int:
        """Count tracked locations.

        Raises:
            LocationStoreError: If the read fails
        """
        try:
            row = self._conn.execute("SELECT COUNT(*) FROM jump_location").fetchone()
            return int(row[0])

        except sqlite3.Error as e:
            raise LocationStoreError(f"Failed to count locations: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "LocationStore":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
