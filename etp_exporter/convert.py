"""Convert mirrored issues into ETP reports."""

import logging
from typing import List

from pydantic import ValidationError

from etp_exporter.errors import StoreError
from etp_exporter.models import Issue, ParseError
from etp_exporter.report import build_reports
from etp_exporter.store import Collection

LOG = logging.getLogger("etp_exporter.convert")

ISSUE_PROJECTION = ["id", "number", "labels", "created_at", "updated_at", "body", "comment_list"]


class ConversionSummary:
    """Counts for one conversion run."""

    def __init__(self) -> None:
        self.issues = 0
        self.reports = 0
        self.parse_errors: List[ParseError] = []

    @property
    def failed_issue_numbers(self) -> List[int]:
        """Distinct issue numbers with at least one parse failure, in order of appearance."""
        return list(dict.fromkeys(e.issue_number for e in self.parse_errors))

    def __repr__(self) -> str:
        return (
            f"ConversionSummary(issues={self.issues}, reports={self.reports}, "
            f"failed_issues={len(self.failed_issue_numbers)})"
        )


class ConversionPipeline:
    """Read every stored issue, build its reports and write them to the reports collection.

    Reports are derived data: each run writes into a staging collection that
    replaces the reports collection only once every issue was converted, so
    converting twice does not duplicate them and a failed run leaves the
    previous reports in place.
    """

    def __init__(self, issues: Collection, reports: Collection) -> None:
        self._issues = issues
        self._reports = reports

    def run(self) -> ConversionSummary:
        summary = ConversionSummary()
        staged = self._reports.staging()

        for doc in self._issues.find(projection=ISSUE_PROJECTION):
            try:
                issue = Issue.model_validate(doc)
            except ValidationError as e:
                LOG.warning("Skipping invalid issue document #%s: %s", doc.get("number"), e)
                continue
            summary.issues += 1

            reports, errors = build_reports(issue)
            summary.parse_errors.extend(errors)
            if not reports:
                continue
            result = staged.insert_many([r.to_document() for r in reports])
            if result.errors:
                raise StoreError(f"Failed to store reports of issue #{issue.number}: {result.errors[0]}")
            summary.reports += result.inserted_count

        previous = self._reports.count()
        self._reports.replace_with(staged)
        if previous:
            LOG.info("Replaced %s reports of a previous run.", previous)
        LOG.info("Done. Converted %s issues into %s reports.", summary.issues, summary.reports)
        failed = summary.failed_issue_numbers
        if failed:
            LOG.warning("Failed to parse %s issues/comments into reports", len(failed))
            LOG.debug("Issues with parse failures %s", failed)
        return summary
