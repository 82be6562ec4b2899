"""GitHub API adapter."""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, TypeVar

import requests

from etp_exporter.adapters.base import IssueSource, Page
from etp_exporter.errors import TransportError
from etp_exporter.models import Comment, Issue

T = TypeVar("T")

LOG = logging.getLogger("etp_exporter.adapters.github")

RATE_LIMIT_STATUSES = (403, 429)


def _parse_iso(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _issue_from_api(data: Dict[str, Any]) -> Issue:
    labels = [lb["name"] for lb in (data.get("labels") or []) if isinstance(lb, dict) and "name" in lb]
    return Issue(
        number=data["number"],
        id=data["id"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        labels=labels,
        created_at=_parse_iso(data["created_at"]),
        updated_at=_parse_iso(data.get("updated_at") or data["created_at"]),
    )


def _comment_from_api(issue_number: int, data: Dict[str, Any]) -> Comment:
    return Comment(
        id=data["id"],
        issue_number=issue_number,
        body=data.get("body") or "",
        created_at=_parse_iso(data["created_at"]),
    )


class GitHubAdapter(IssueSource):
    """GitHub REST implementation of IssueSource.

    Rate limits are honored here: a 403/429 that reports an exhausted quota
    is retried after the advertised delay, up to max_retry times. Anything
    else surfaces to callers as a failed Page.
    """

    def __init__(
        self,
        token: str,
        repo: str,
        api_url: str = "https://api.github.com",
        max_retry: int = 3,
        max_failed_pages: int = 3,
        timeout: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.repo = repo
        self._api_url = api_url.rstrip("/")
        self._max_retry = max_retry
        self._max_failed_pages = max_failed_pages
        self._timeout = timeout
        self._sleep = sleep
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "Authorization": f"Bearer {token}",
            }
        )

    def close(self) -> None:
        self._session.close()

    def _rate_limit_delay(self, resp: requests.Response) -> float | None:
        """Seconds to wait before retrying, or None if the response is not a primary rate limit.

        A 403 with quota left is a secondary (abuse) limit: it is only logged
        and the request fails.
        """
        exhausted = resp.headers.get("X-RateLimit-Remaining") == "0"
        if resp.status_code == 403 and not exhausted:
            if resp.headers.get("Retry-After"):
                LOG.warning("Abuse detected for request %s", resp.url)
            return None
        if resp.status_code not in RATE_LIMIT_STATUSES:
            return None
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                return 60.0
        reset = int(resp.headers.get("X-RateLimit-Reset", 0))
        return max(reset - time.time(), 0) + 1

    def _request(self, method: str, path: str, params: Dict[str, Any] | None = None) -> requests.Response:
        url = f"{self._api_url}{path}"
        attempt = 0
        while True:
            try:
                resp = self._session.request(method, url, params=params, timeout=self._timeout)
            except requests.RequestException as e:
                raise TransportError(f"{method} {path} failed: {e}") from e

            delay = self._rate_limit_delay(resp)
            if delay is not None:
                LOG.info("Request quota exhausted for request %s %s", method, path)
                if attempt < self._max_retry:
                    attempt += 1
                    LOG.info("Retrying after %.0f seconds (attempt %s/%s)", delay, attempt, self._max_retry)
                    self._sleep(delay)
                    continue
            if resp.status_code >= 400:
                msg = resp.text or resp.reason or str(resp.status_code)
                try:
                    msg = resp.json().get("message", msg)
                except (ValueError, AttributeError):
                    pass
                raise TransportError(f"GitHub API error {resp.status_code}: {msg}")
            return resp

    def _paginate(
        self,
        path: str,
        params: Dict[str, Any],
        convert: Callable[[Dict[str, Any]], T],
    ) -> Iterator[Page[T]]:
        """Walk numbered pages until an empty page or no rel="next" link.

        A failed page is yielded with its error and pagination moves on to the
        next page number; max_failed_pages consecutive failures end the walk.
        """
        page = 1
        failures = 0
        while True:
            try:
                resp = self._request("GET", path, params={**params, "page": page})
                data = resp.json() or []
                items: List[T] = [convert(d) for d in data]
            except TransportError as e:
                failures += 1
                LOG.warning("Failed to fetch page %s of %s: %s", page, path, e)
                yield Page(page, error=e)
                if failures >= self._max_failed_pages:
                    LOG.warning("Giving up on %s after %s consecutive failed pages", path, failures)
                    return
                page += 1
                continue
            except (ValueError, KeyError) as e:
                failures += 1
                LOG.warning("Malformed response for page %s of %s: %s", page, path, e)
                yield Page(page, error=TransportError(f"Malformed response: {e}"))
                if failures >= self._max_failed_pages:
                    return
                page += 1
                continue

            failures = 0
            if not items:
                return
            yield Page(page, items)
            if "next" not in (resp.links or {}):
                return
            page += 1

    def get_authenticated_login(self) -> str:
        """Verify the token and return the login it belongs to."""
        data = self._request("GET", "/user").json()
        return data.get("login", "")

    def list_issues(self, per_page: int = 100) -> Iterator[Page[Issue]]:
        params = {"state": "all", "sort": "updated", "direction": "desc", "per_page": per_page}
        return self._paginate(f"/repos/{self.repo}/issues", params, _issue_from_api)

    def list_comments(
        self, issue_number: int, per_page: int = 100, since: datetime | None = None
    ) -> Iterator[Page[Comment]]:
        """Yield comment pages newest first.

        The issue comments endpoint only lists oldest first, so one issue's
        pages are collected and handed out in reverse order. `since` is sent
        as the endpoint's own filter, which keeps that buffer to the comments
        the caller can still keep.
        """
        path = f"/repos/{self.repo}/issues/{issue_number}/comments"
        params: Dict[str, Any] = {"per_page": per_page}
        if since is not None:
            params["since"] = since.isoformat()
        pages = list(self._paginate(path, params, lambda d: _comment_from_api(issue_number, d)))
        for i, page in enumerate(reversed(pages), start=1):
            yield Page(i, list(reversed(page.items)), error=page.error)
