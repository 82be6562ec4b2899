"""Abstract base for remote issue sources."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Generic, Iterator, List, TypeVar

from etp_exporter.errors import TransportError
from etp_exporter.models import Comment, Issue

T = TypeVar("T")


class Page(Generic[T]):
    """One bounded batch of items from a paginated listing.

    A page whose fetch failed carries the error and no items; the source has
    already applied its own retries before handing it out.
    """

    def __init__(self, number: int, items: List[T] | None = None, error: TransportError | None = None) -> None:
        self.number = number
        self.items = items or []
        self.error = error

    @property
    def failed(self) -> bool:
        return self.error is not None

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        state = f"error={self.error}" if self.failed else f"items={len(self.items)}"
        return f"Page(number={self.number}, {state})"


class IssueSource(ABC):
    """Paginated, time-sorted listings of issues and comments."""

    @abstractmethod
    def list_issues(self, per_page: int = 100) -> Iterator[Page[Issue]]:
        """Yield pages of issues sorted by update time, newest first."""
        ...

    @abstractmethod
    def list_comments(
        self, issue_number: int, per_page: int = 100, since: datetime | None = None
    ) -> Iterator[Page[Comment]]:
        """Yield pages of an issue's comments sorted by creation time, newest first.

        A source may drop comments created before `since` itself; callers still
        apply the cutoff to what they receive.
        """
        ...

    def close(self) -> None:
        """Release connections. Override if needed."""
        return None

    def __enter__(self) -> "IssueSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
