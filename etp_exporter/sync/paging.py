"""Time-boundary filtering for pages sorted newest first."""

from datetime import datetime
from typing import Callable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def filter_since(
    items: Sequence[T],
    since: datetime | None,
    timestamp: Callable[[T], datetime],
) -> Tuple[List[T], bool]:
    """Keep items at or after since; return (kept, boundary_reached).

    boundary_reached is True when the page held anything older than since.
    Pages are sorted descending, so no later page can hold newer items and
    pagination must stop after this page.
    """
    if since is None:
        return list(items), False
    kept = [item for item in items if timestamp(item) >= since]
    return kept, len(kept) < len(items)
