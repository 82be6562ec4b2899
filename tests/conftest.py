"""Shared fixtures: report bodies, issue factories and an in-memory issue source."""

from datetime import UTC, datetime, timedelta
from typing import Dict, Iterator, List

import pytest

from etp_exporter.adapters.base import IssueSource, Page
from etp_exporter.errors import TransportError
from etp_exporter.models import Comment, Issue
from etp_exporter.store import DocumentStore

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

FIREFOX_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"


def make_body(
    url: str = "https://example.com/",
    user_agent: str = FIREFOX_UA,
    preferences: List[str] | None = None,
    has_exception: str | None = "false",
    message: str = "works fine",
) -> str:
    """Report body as Firefox serializes it (CRLF line endings)."""
    prefs = preferences if preferences is not None else ["privacy.trackingprotection.enabled: true"]
    lines = [f"Full URL: {url}", f"userAgent: {user_agent}", "", "**Preferences**", *prefs, ""]
    if has_exception is not None:
        lines += [f"hasException: {has_exception}", ""]
    lines += ["**Comments**", message]
    return "\r\n".join(lines)


def make_issue(number: int, hours_ago: int = 0, body: str | None = None, **kwargs) -> Issue:
    ts = BASE_TIME - timedelta(hours=hours_ago)
    return Issue(
        number=number,
        id=1000 + number,
        title=f"Broken site report #{number}",
        body=make_body() if body is None else body,
        labels=kwargs.pop("labels", ["trackingprotection"]),
        created_at=kwargs.pop("created_at", ts),
        updated_at=ts,
        **kwargs,
    )


def make_comment(comment_id: int, issue_number: int, hours_ago: int = 0, body: str | None = None) -> Comment:
    return Comment(
        id=comment_id,
        issue_number=issue_number,
        body=make_body(message=f"comment {comment_id}") if body is None else body,
        created_at=BASE_TIME - timedelta(hours=hours_ago),
    )


class FakeSource(IssueSource):
    """IssueSource serving prepared pages; records which pages were requested.

    A page given as a TransportError instance is served as a failed page.
    """

    def __init__(
        self,
        issue_pages: List[List[Issue] | TransportError] | None = None,
        comment_pages: Dict[int, List[List[Comment] | TransportError]] | None = None,
    ) -> None:
        self.issue_pages = issue_pages or []
        self.comment_pages = comment_pages or {}
        self.requested_issue_pages: List[int] = []
        self.requested_comment_issues: List[int] = []
        self.comment_since: List[datetime | None] = []

    def _serve(self, pages, requested: List[int]) -> Iterator[Page]:
        for number, items in enumerate(pages, start=1):
            requested.append(number)
            if isinstance(items, TransportError):
                yield Page(number, error=items)
            else:
                yield Page(number, list(items))

    def list_issues(self, per_page: int = 100) -> Iterator[Page[Issue]]:
        return self._serve(self.issue_pages, self.requested_issue_pages)

    def list_comments(
        self, issue_number: int, per_page: int = 100, since: datetime | None = None
    ) -> Iterator[Page[Comment]]:
        self.comment_since.append(since)
        self.requested_comment_issues.append(issue_number)
        return self._serve(self.comment_pages.get(issue_number, []), [])


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    s = DocumentStore(tmp_path, "etp-test")
    s.ping()
    return s


@pytest.fixture
def issues(store):
    return store.collection("issues")


@pytest.fixture
def reports(store):
    return store.collection("reports")
