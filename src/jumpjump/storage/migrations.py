"""Versioned schema migrations for the location store.

Migrations are an ordered sequence of frozen steps. Step ``i`` (0-indexed)
takes a store from version ``i`` to version ``i + 1``. A released step is
never edited; schema changes are appended as new steps.

Each step runs in its own transaction together with the version bump, so
a failed step leaves both the schema and the recorded version untouched.
The connection must be in autocommit mode (``isolation_level=None``) so
that DDL statements are covered by the explicit ``BEGIN``.
"""

import logging
import sqlite3
from dataclasses import dataclass

from jumpjump.storage.errors import LocationStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """One schema step.

    Attributes:
        version: Schema version the store is at after this step
        description: Human readable summary, logged when applied
        statements: SQL run in order inside the step's transaction
    """
    version: int
    description: str
    statements: tuple[str, ...]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version=1,
        description="Create jump_location table",
        statements=(
            """CREATE TABLE IF NOT EXISTS jump_location (
                id INTEGER PRIMARY KEY ASC,
                location TEXT UNIQUE,
                rank INTEGER
            )""",
            "CREATE INDEX IF NOT EXISTS location_index ON jump_location(location)",
        ),
    ),
    Migration(
        version=2,
        description="Make jump_location.location unique case-insensitively",
        statements=(
            "DROP TABLE IF EXISTS jump_location_v1",
            "ALTER TABLE jump_location RENAME TO jump_location_v1",
            # The index followed the table through the rename
            "DROP INDEX IF EXISTS location_index",
            """CREATE TABLE jump_location (
                id INTEGER PRIMARY KEY ASC,
                location TEXT UNIQUE COLLATE NOCASE,
                rank INTEGER
            )""",
            "CREATE INDEX IF NOT EXISTS location_index ON jump_location(location)",
            """INSERT OR IGNORE INTO jump_location (id, location, rank)
                SELECT id, location, rank FROM jump_location_v1 ORDER BY id""",
        ),
    ),
    Migration(
        version=3,
        description="Add last_access column to jump_location",
        statements=(
            "ALTER TABLE jump_location ADD COLUMN last_access TIMESTAMP",
            # Same fixed-width text as jumpjump.types.TIMESTAMP_FORMAT
            """UPDATE jump_location
                SET last_access = strftime('%Y-%m-%d %H:%M:%f', 'now', 'localtime') || '000'""",
            """CREATE INDEX IF NOT EXISTS rank_index
                ON jump_location(rank DESC, last_access DESC)""",
        ),
    ),
)

CURRENT_VERSION = len(MIGRATIONS)


class MigrationError(LocationStoreError):
    """Raised when the store schema cannot be brought to the target version."""

    pass


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS migration_version (
            id INTEGER PRIMARY KEY ASC,
            version INTEGER
        )
    """)


def get_version(conn: sqlite3.Connection) -> int:
    """Get the current schema version.

    Returns:
        Recorded schema version (0 if no migration has been applied)

    Raises:
        MigrationError: If the version marker cannot be read
    """
    try:
        _ensure_version_table(conn)
        row = conn.execute(
            "SELECT version FROM migration_version WHERE id = 1 LIMIT 1"
        ).fetchone()
    except sqlite3.Error as e:
        raise MigrationError(f"Failed to get database version: {e}") from e

    if row is None or row[0] is None:
        return 0
    return int(row[0])


def apply_migration(conn: sqlite3.Connection, migration: Migration) -> None:
    """Apply one migration step and record its version atomically.

    Raises:
        MigrationError: If any statement fails (the step is rolled back)
    """
    try:
        conn.execute("BEGIN")
        for sql in migration.statements:
            conn.execute(sql)

        # Version bump is always the last act of the step
        conn.execute(
            "INSERT OR REPLACE INTO migration_version (id, version) VALUES (1, ?)",
            (migration.version,),
        )
        conn.commit()

    except sqlite3.Error as e:
        conn.rollback()
        raise MigrationError(
            f"Migration v{migration.version} failed ({migration.description}): {e}"
        ) from e

    logger.info(f"Applied migration v{migration.version}: {migration.description}")


def migrate(conn: sqlite3.Connection, target_version: int = CURRENT_VERSION) -> int:
    """Bring the store schema to exactly ``target_version``.

    Steps are applied one at a time, re-reading the recorded version after
    each, so a store at any earlier version ends up at the same schema as
    one migrated step by step.

    Args:
        conn: Connection in autocommit mode
        target_version: Version to reach (default: latest)

    Returns:
        The schema version after migrating

    Raises:
        MigrationError: If the stored version is unknown, the target would
            require a downgrade or an unknown step, or a step fails
    """
    if target_version < 0 or target_version > len(MIGRATIONS):
        raise MigrationError(f"Unknown target database version {target_version}")

    while True:
        current_version = get_version(conn)

        if current_version == target_version:
            return current_version

        if current_version > len(MIGRATIONS):
            raise MigrationError(f"Unrecognized database version {current_version}")

        if current_version > target_version:
            raise MigrationError(
                f"Database version {current_version} is newer than "
                f"target version {target_version}"
            )

        if current_version == 0:
            logger.info(f"Initializing fresh database to v{target_version}")
        else:
            logger.info(f"Running migrations from v{current_version} to v{target_version}")

        apply_migration(conn, MIGRATIONS[current_version])
