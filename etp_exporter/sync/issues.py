"""Incremental issue sync: page through issues newest first and insert new ones."""

import logging
from datetime import datetime

from etp_exporter.adapters.base import IssueSource
from etp_exporter.errors import StoreError
from etp_exporter.store import Collection
from etp_exporter.sync.paging import filter_since

LOG = logging.getLogger("etp_exporter.sync.issues")

ISSUE_KEY = "number"


class SyncResult:
    """Counts for one issue sync run."""

    def __init__(self) -> None:
        self.pages = 0
        self.imported = 0
        self.duplicates = 0
        self.failed_pages = 0

    def __repr__(self) -> str:
        return (
            f"SyncResult(pages={self.pages}, imported={self.imported}, "
            f"duplicates={self.duplicates}, failed_pages={self.failed_pages})"
        )


class IncrementalIssueSync:
    """Mirror issues from an IssueSource into the issues collection.

    Inserts are idempotent on the issue number: issues already in the store
    are rejected one by one and counted as duplicates, never overwritten.
    """

    def __init__(self, source: IssueSource, issues: Collection, per_page: int = 100) -> None:
        self._source = source
        self._issues = issues
        self._per_page = per_page

    def sync(self, since: datetime | None = None) -> SyncResult:
        """Import issues updated at or after since (all issues if None)."""
        result = SyncResult()
        # For GitHub issues the issue number is the unique key.
        self._issues.create_unique_index(ISSUE_KEY)
        LOG.info("Starting to fetch issues%s...", f" updated since {since.isoformat()}" if since else "")

        for page in self._source.list_issues(per_page=self._per_page):
            result.pages += 1
            if page.failed:
                result.failed_pages += 1
                LOG.warning("Skipping issue page %s: %s", page.number, page.error)
                continue

            issues, boundary_reached = filter_since(page.items, since, lambda i: i.updated_at)
            LOG.debug("Received %s issues from the API (%s within range).", len(page.items), len(issues))

            docs = [issue.model_copy(update={"comment_list": [], "comments_imported": False}).to_document()
                    for issue in issues]
            try:
                insert = self._issues.insert_many(docs, ordered=False)
            except StoreError as e:
                result.failed_pages += 1
                LOG.error("Error while importing issues of page %s: %s", page.number, e)
            else:
                result.imported += insert.inserted_count
                result.duplicates += insert.duplicate_count
                if insert.errors:
                    result.failed_pages += 1
                    LOG.error(
                        "Failed to store %s issues of page %s: %s", len(insert.errors), page.number, insert.errors[0]
                    )
                LOG.info(
                    "Imported %s issues into the store (%s already present).",
                    insert.inserted_count,
                    insert.duplicate_count,
                )

            if boundary_reached:
                LOG.info("Reached issues older than %s, stopping pagination.", since.isoformat())
                break

        LOG.info("Done. Imported %s issues this run.", result.imported)
        if result.failed_pages:
            LOG.warning("Failed pages: %s", result.failed_pages)
        return result
