"""Unit tests for GitHub adapter (mocked API)."""

import logging
from datetime import UTC, datetime
from unittest.mock import Mock, patch

import pytest
import requests

from etp_exporter.adapters.github import GitHubAdapter
from etp_exporter.errors import TransportError
from etp_exporter.models import Comment, Issue


def _issue_data(number: int, updated: str = "2024-01-16T12:00:00Z") -> dict:
    return {
        "number": number,
        "id": 5000 + number,
        "title": f"Issue {number}",
        "body": "Body text",
        "state": "open",
        "labels": [{"name": "trackingprotection"}, {"name": "status-new"}],
        "created_at": "2024-01-15T10:00:00Z",
        "updated_at": updated,
        "user": {"login": "octocat"},
    }


def _comment_data(comment_id: int) -> dict:
    return {
        "id": comment_id,
        "body": f"comment {comment_id}",
        "created_at": f"2024-01-15T10:{comment_id:02d}:00Z",
        "updated_at": f"2024-01-15T10:{comment_id:02d}:00Z",
        "user": {"login": "user1"},
    }


def _resp(status: int = 200, data=None, links: dict | None = None, headers: dict | None = None) -> Mock:
    resp = Mock()
    resp.status_code = status
    resp.json.return_value = data
    resp.links = links or {}
    resp.headers = headers or {}
    resp.text = ""
    resp.reason = ""
    return resp


NEXT = {"next": {"url": "https://api.github.com/next"}}


@pytest.fixture
def adapter() -> GitHubAdapter:
    return GitHubAdapter(
        token="test-token",
        repo="owner/repo",
        api_url="https://api.github.com",
        max_retry=2,
        max_failed_pages=2,
        sleep=Mock(),
    )


def test_list_issues_follows_pages(adapter: GitHubAdapter) -> None:
    """list_issues walks numbered pages until there is no next link."""
    responses = [_resp(data=[_issue_data(3), _issue_data(2)], links=NEXT), _resp(data=[_issue_data(1)])]

    with patch.object(adapter._session, "request", side_effect=responses) as req:
        pages = list(adapter.list_issues(per_page=2))

    assert [p.number for p in pages] == [1, 2]
    assert [i.number for i in pages[0].items] == [3, 2]
    issue = pages[1].items[0]
    assert isinstance(issue, Issue)
    assert issue.id == 5001
    assert issue.labels == ["trackingprotection", "status-new"]
    assert issue.comment_list == []
    assert issue.comments_imported is False

    first = req.call_args_list[0]
    assert first[0][0] == "GET"
    assert first[0][1] == "https://api.github.com/repos/owner/repo/issues"
    params = first[1]["params"]
    assert params["sort"] == "updated"
    assert params["direction"] == "desc"
    assert params["state"] == "all"
    assert params["per_page"] == 2
    assert params["page"] == 1
    assert req.call_args_list[1][1]["params"]["page"] == 2


def test_list_issues_is_lazy(adapter: GitHubAdapter) -> None:
    """Pages are only requested as the caller iterates."""
    with patch.object(adapter._session, "request", return_value=_resp(data=[_issue_data(1)], links=NEXT)) as req:
        pages = adapter.list_issues()
        next(pages)
    assert req.call_count == 1


def test_list_issues_stops_on_empty_page(adapter: GitHubAdapter) -> None:
    with patch.object(adapter._session, "request", return_value=_resp(data=[], links=NEXT)):
        assert list(adapter.list_issues()) == []


def test_failed_page_is_yielded_and_pagination_continues(adapter: GitHubAdapter) -> None:
    responses = [
        _resp(data=[_issue_data(3)], links=NEXT),
        _resp(status=500, data={"message": "Server Error"}),
        _resp(data=[_issue_data(1)]),
    ]
    with patch.object(adapter._session, "request", side_effect=responses):
        pages = list(adapter.list_issues())

    assert [p.failed for p in pages] == [False, True, False]
    assert "500" in str(pages[1].error)
    assert pages[2].number == 3


def test_connection_error_becomes_failed_page(adapter: GitHubAdapter) -> None:
    responses = [requests.ConnectionError("boom"), _resp(data=[])]
    with patch.object(adapter._session, "request", side_effect=responses):
        pages = list(adapter.list_issues())
    assert len(pages) == 1
    assert isinstance(pages[0].error, TransportError)


def test_gives_up_after_consecutive_failures(adapter: GitHubAdapter) -> None:
    with patch.object(adapter._session, "request", return_value=_resp(status=502)) as req:
        pages = list(adapter.list_issues())
    assert len(pages) == 2
    assert all(p.failed for p in pages)
    assert req.call_count == 2


def test_rate_limit_is_retried_after_delay(adapter: GitHubAdapter) -> None:
    limited = _resp(status=429, headers={"Retry-After": "5"})
    responses = [limited, _resp(data=[_issue_data(1)])]

    with patch.object(adapter._session, "request", side_effect=responses) as req:
        pages = list(adapter.list_issues())

    assert not pages[0].failed
    assert req.call_count == 2
    adapter._sleep.assert_called_once_with(5.0)


def test_rate_limit_retries_exhausted(adapter: GitHubAdapter) -> None:
    limited = _resp(status=429, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "0"})
    with patch.object(adapter._session, "request", return_value=limited) as req:
        page = next(adapter.list_issues())
    assert page.failed
    # first attempt + max_retry retries
    assert req.call_count == 3


def test_forbidden_without_rate_limit_is_not_retried(adapter: GitHubAdapter) -> None:
    forbidden = _resp(status=403, data={"message": "Resource not accessible"})
    with patch.object(adapter._session, "request", return_value=forbidden) as req:
        page = next(adapter.list_issues())
    assert page.failed
    assert "Resource not accessible" in str(page.error)
    assert req.call_count == 1
    adapter._sleep.assert_not_called()


def test_exhausted_quota_403_is_retried_until_reset(adapter: GitHubAdapter) -> None:
    limited = _resp(status=403, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "0"})
    responses = [limited, _resp(data=[_issue_data(1)])]
    with patch.object(adapter._session, "request", side_effect=responses) as req:
        pages = list(adapter.list_issues())
    assert not pages[0].failed
    assert req.call_count == 2
    adapter._sleep.assert_called_once()


def test_secondary_limit_is_logged_not_retried(adapter: GitHubAdapter, caplog) -> None:
    """A 403 with Retry-After but quota left fails the page without sleeping."""
    abuse = _resp(status=403, data={"message": "You have exceeded a secondary rate limit"}, headers={"Retry-After": "60"})
    with caplog.at_level(logging.WARNING, logger="etp_exporter.adapters.github"):
        with patch.object(adapter._session, "request", return_value=abuse) as req:
            page = next(adapter.list_issues())
    assert page.failed
    assert "secondary rate limit" in str(page.error)
    assert req.call_count == 1
    adapter._sleep.assert_not_called()
    assert "Abuse detected" in caplog.text


def test_list_comments_newest_first(adapter: GitHubAdapter) -> None:
    """Comments arrive oldest first from the API and are handed out newest first."""
    responses = [
        _resp(data=[_comment_data(1), _comment_data(2)], links=NEXT),
        _resp(data=[_comment_data(3)]),
    ]
    with patch.object(adapter._session, "request", side_effect=responses) as req:
        pages = list(adapter.list_comments(42, per_page=2))

    assert [[c.id for c in p.items] for p in pages] == [[3], [2, 1]]
    assert [p.number for p in pages] == [1, 2]
    comment = pages[0].items[0]
    assert isinstance(comment, Comment)
    assert comment.issue_number == 42
    assert "/repos/owner/repo/issues/42/comments" in req.call_args_list[0][0][1]


def test_list_comments_sends_since(adapter: GitHubAdapter) -> None:
    since = datetime(2024, 1, 15, 10, 2, tzinfo=UTC)
    with patch.object(adapter._session, "request", return_value=_resp(data=[_comment_data(3)])) as req:
        pages = list(adapter.list_comments(42, since=since))
    assert [c.id for c in pages[0].items] == [3]
    params = req.call_args[1]["params"]
    assert params["since"] == "2024-01-15T10:02:00+00:00"
    assert params["per_page"] == 100


def test_list_comments_without_since_omits_param(adapter: GitHubAdapter) -> None:
    with patch.object(adapter._session, "request", return_value=_resp(data=[])) as req:
        list(adapter.list_comments(42))
    assert "since" not in req.call_args[1]["params"]


def test_get_authenticated_login(adapter: GitHubAdapter) -> None:
    with patch.object(adapter._session, "request", return_value=_resp(data={"login": "bot"})) as req:
        assert adapter.get_authenticated_login() == "bot"
    assert req.call_args[0][1] == "https://api.github.com/user"


def test_authorization_header(adapter: GitHubAdapter) -> None:
    assert adapter._session.headers["Authorization"] == "Bearer test-token"
