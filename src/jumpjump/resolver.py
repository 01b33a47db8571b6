"""Resolve a query into locations.

With no tokens every location is listed, best ranked first. With tokens
only the single best match is returned, or nothing when no location
matches. A miss is not an error.
"""

from typing import Iterable, Optional

from jumpjump.storage.sqlite import LocationStore


def best_location(store: LocationStore, tokens: Iterable[str]) -> Optional[str]:
    """Get the highest ranked location matching all tokens, if any.

    Empty tokens match anything, so a query of only empty tokens gives
    the highest ranked location overall.
    """
    query = [token for token in tokens if token]

    if not query:
        locations = store.get_locations()
    else:
        locations = store.get_matching_locations(query)
    return locations[0] if locations else None


def resolve(store: LocationStore, tokens: Iterable[str]) -> list[str]:
    """Resolve query tokens to the locations to report.

    Args:
        store: Open location store
        tokens: Query tokens; empty strings match anything

    Returns:
        All locations when the token sequence is empty, otherwise a list
        holding at most the best match
    """
    query = list(tokens)

    if not query:
        return store.get_locations()

    location = best_location(store, query)
    return [location] if location is not None else []
