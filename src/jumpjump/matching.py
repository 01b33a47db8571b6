"""Ordered, case-insensitive multi-token matching for stored locations.

A query such as ``["bar", "doo"]`` matches any location that contains
"bar" and, somewhere after it, "doo", ignoring case. The tokens are
compiled into a single regular expression that SQLite evaluates through
a ``regexp(pattern, text)`` scalar function registered per connection.

Compiled expressions are kept in a size-bound LRU cache owned by the
matcher instance, so one matcher belongs to one store session.
"""

import logging
import re
import sqlite3
from collections import OrderedDict
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 128

# Joins tokens so that any text may appear between them
_WILDCARD = ".*"
# Case-insensitive, and "." also crosses newlines inside a location
_PATTERN_FLAGS = "(?is)"


class PatternError(ValueError):
    """Raised when query tokens cannot be turned into a match pattern."""

    pass


class PatternMatcher:
    """Builds and evaluates ordered substring patterns.

    Args:
        raw_patterns: If True, tokens are embedded as regex fragments
            instead of literal substrings (default: False)
        cache_size: Maximum number of compiled patterns to keep

    Thread Safety: Not thread-safe; a matcher is used by one connection.
    """

    def __init__(
        self,
        raw_patterns: bool = False,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        if cache_size < 1:
            raise ValueError("cache_size must be at least 1")

        self.raw_patterns = raw_patterns
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, re.Pattern[str]]" = OrderedDict()

    def build_pattern(self, tokens: Iterable[str]) -> str:
        """Build the pattern text for an ordered sequence of tokens.

        Args:
            tokens: Query tokens, in the order they must appear

        Returns:
            Pattern text accepted by ``is_match`` and the SQLite ``regexp``

        Raises:
            PatternError: If there are no tokens, a token is empty, or a
                raw pattern does not compile
        """
        token_list = list(tokens)
        if not token_list:
            raise PatternError("At least one query token is required")
        if any(not token for token in token_list):
            raise PatternError("Query tokens cannot be empty")

        if not self.raw_patterns:
            token_list = [re.escape(token) for token in token_list]

        pattern = _PATTERN_FLAGS + _WILDCARD.join(token_list)

        if self.raw_patterns:
            # Surface bad fragments here rather than from inside SQLite
            try:
                self._compile(pattern)
            except re.error as e:
                raise PatternError(f"Invalid pattern {pattern!r}: {e}") from e

        return pattern

    def is_match(self, pattern: str, text: Optional[str]) -> bool:
        """Check whether text satisfies a pattern from ``build_pattern``."""
        if text is None:
            return False
        return self._compile(pattern).search(text) is not None

    def regexp(self, pattern: str, text: Optional[str]) -> bool:
        """SQLite scalar function adapter: ``regexp(pattern, text)``."""
        return self.is_match(pattern, text)

    def register(self, conn: sqlite3.Connection) -> None:
        """Install this matcher as the ``regexp`` function on a connection."""
        conn.create_function("regexp", 2, self.regexp, deterministic=True)

    def clear_cache(self) -> None:
        """Drop all compiled patterns."""
        self._cache.clear()

    @property
    def cached_patterns(self) -> int:
        """Number of compiled patterns currently cached."""
        return len(self._cache)

    def _compile(self, pattern: str) -> "re.Pattern[str]":
        compiled = self._cache.get(pattern)
        if compiled is not None:
            self._cache.move_to_end(pattern, last=True)
            return compiled

        compiled = re.compile(pattern)
        self._cache[pattern] = compiled
        if len(self._cache) > self.cache_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicted compiled pattern {evicted!r}")
        return compiled
