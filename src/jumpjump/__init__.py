"""jumpjump - a ranked index of visited directories.

This package records the directories a user visits, ranks them by visit
count and recency, and resolves partial queries to the best match.

Main components:
- storage.sqlite: The persistent location index (LocationStore)
- storage.migrations: Versioned schema migrations
- matching: Ordered case-insensitive multi-token matching
- resolver: Query resolution (all locations, or the single best match)
- config: Pydantic Settings for configuration management

Usage:
    # Record a visit, then jump back
    jumpjump add .
    cd "$(jumpjump get proj src)"

    # Or run the module directly
    python -m jumpjump --help
"""

__all__ = ["main"]
__version__ = "0.1.0"


def main() -> None:
    """Main entry point for the jumpjump command."""
    from jumpjump.__main__ import main as _main
    _main()
