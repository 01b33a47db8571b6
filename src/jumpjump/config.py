"""Configuration settings for jumpjump.

This module provides Pydantic Settings for configuration management with:
- Environment variable support (JUMPJUMP_ prefix)
- CLI argument override support
- Type validation and defaults
"""

from pathlib import Path
from typing import Optional, Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jumpjump.matching import DEFAULT_CACHE_SIZE
from jumpjump.storage.sqlite import default_db_path


def normalize_db_path(path: Union[str, Path]) -> Path:
    """Expand ~ and make a store path absolute."""
    return Path(path).expanduser().resolve()


class JumpSettings(BaseSettings):
    """Configuration settings for jumpjump.

    Settings are loaded from environment variables with the JUMPJUMP_ prefix.
    CLI arguments can override these settings when provided.

    Attributes:
        db_path: Path to the SQLite store (default: ~/.jumpjump)
        log_level: Logging level (default: WARNING)
        raw_patterns: Treat query tokens as regex fragments (default: False)
        pattern_cache_size: Compiled patterns kept per session (default: 128)
        busy_timeout: Seconds to wait on a locked store (default: 5.0)

    Example:
        >>> settings = JumpSettings()
        >>> print(settings.log_level)
        WARNING

        >>> # Override via environment
        >>> # JUMPJUMP_DB_PATH=/tmp/jump.db
        >>> settings = JumpSettings()
        >>> print(settings.get_db_path())
        /tmp/jump.db
    """

    model_config = SettingsConfigDict(
        env_prefix="JUMPJUMP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Storage
    db_path: Optional[Path] = Field(
        default=None,
        description="Path to SQLite store (default: ~/.jumpjump)",
    )
    busy_timeout: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait for a store locked by another process",
    )

    # Matching
    raw_patterns: bool = Field(
        default=False,
        description="Treat query tokens as regular expression fragments",
    )
    pattern_cache_size: int = Field(
        default=DEFAULT_CACHE_SIZE,
        ge=1,
        description="Maximum number of compiled patterns kept per session",
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    def get_db_path(self) -> Path:
        """Get the store path, resolving to default if not set.

        Raises:
            LocationStoreError: If no path is set and the home directory
                cannot be found
        """
        if self.db_path:
            return normalize_db_path(self.db_path)
        return default_db_path()
