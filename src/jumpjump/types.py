"""Core data types for the location index.

This module defines the record returned by the verbose listing:
- LocationEntry: One tracked location with its rank and recency
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

# Fixed-width text form used for last_access so that text order is time order
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def format_timestamp(value: datetime) -> str:
    """Format a datetime as stored in the last_access column."""
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a last_access column value back into a datetime."""
    return datetime.strptime(value, TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class LocationEntry:
    """A location tracked by the index.

    Attributes:
        id: Surrogate identity, stable for the record's lifetime
        location: Canonicalized absolute path (case-insensitive natural key)
        rank: Visit counter, 1 on first insert and +1 on every repeat
        last_access: Local time of the most recent visit

    Raises:
        ValueError: If rank is not positive or location is empty
    """
    id: int
    location: str
    rank: int
    last_access: datetime

    def __post_init__(self) -> None:
        """Validate entry fields after initialization."""
        if not self.location:
            raise ValueError("Location cannot be empty")

        if self.rank < 1:
            raise ValueError(f"Rank must be positive, got {self.rank}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        data = asdict(self)
        data["last_access"] = format_timestamp(self.last_access)
        return data
