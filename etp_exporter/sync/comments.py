"""Comment backfill: append comments to issues not yet marked as comments_imported."""

import logging
from datetime import datetime
from typing import List

from etp_exporter.adapters.base import IssueSource
from etp_exporter.store import Collection
from etp_exporter.sync.paging import filter_since

LOG = logging.getLogger("etp_exporter.sync.comments")


class BackfillResult:
    """Counts for one comment backfill run."""

    def __init__(self) -> None:
        self.issues = 0
        self.issues_with_comments = 0
        self.imported = 0
        self.failed_pages = 0
        self.incomplete_issues: List[int] = []

    def __repr__(self) -> str:
        return (
            f"BackfillResult(issues={self.issues}, issues_with_comments={self.issues_with_comments}, "
            f"imported={self.imported}, failed_pages={self.failed_pages})"
        )


class CommentBackfillSync:
    """Fetch comments for every stored issue whose comments were not imported yet.

    An issue is flagged comments_imported once all of its comment pages were
    appended, so later runs skip it. Issues with a failed comment page stay
    unflagged.
    """

    def __init__(self, source: IssueSource, issues: Collection, per_page: int = 100) -> None:
        self._source = source
        self._issues = issues
        self._per_page = per_page

    def _pending_issue_numbers(self) -> List[int]:
        return [doc["number"] for doc in self._issues.find({"comments_imported": False}, projection=["number"])]

    def backfill(self, since: datetime | None = None) -> BackfillResult:
        """Append comments created at or after since (all comments if None)."""
        result = BackfillResult()
        numbers = self._pending_issue_numbers()
        LOG.info(
            "Starting comment import for %s issues out of %s.",
            len(numbers),
            self._issues.count(),
        )

        for number in numbers:
            result.issues += 1
            # Comments kept from an earlier incomplete run.
            stored = self._issues.find_one(number) or {}
            existing = {c["id"] for c in stored.get("comment_list") or []}
            appended = 0
            complete = True
            for page in self._source.list_comments(number, per_page=self._per_page, since=since):
                if page.failed:
                    result.failed_pages += 1
                    complete = False
                    LOG.warning("Skipping comment page %s of issue #%s: %s", page.number, number, page.error)
                    continue

                comments, boundary_reached = filter_since(page.items, since, lambda c: c.created_at)
                comments = [c for c in comments if c.id not in existing]
                if comments:
                    self._issues.update_one(
                        number,
                        push={"comment_list": [c.model_dump(mode="json") for c in comments]},
                    )
                    appended += len(comments)
                    LOG.debug("Imported %s comments of issue #%s into the store.", len(comments), number)
                if boundary_reached:
                    break

            if appended:
                result.issues_with_comments += 1
                result.imported += appended
            if complete:
                self._issues.update_one(number, set={"comments_imported": True})
            else:
                result.incomplete_issues.append(number)

        LOG.info("Done. Imported %s comments for %s issues this run.", result.imported, result.issues)
        LOG.info(
            "For this run, out of %s issues %s had comments.",
            result.issues,
            result.issues_with_comments,
        )
        if result.incomplete_issues:
            LOG.warning("Comment import incomplete for issues %s", result.incomplete_issues)
        return result
