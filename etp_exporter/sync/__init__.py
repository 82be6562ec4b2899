"""Incremental mirroring of issues and comments into the document store."""

from etp_exporter.sync.comments import BackfillResult, CommentBackfillSync
from etp_exporter.sync.issues import IncrementalIssueSync, SyncResult
from etp_exporter.sync.paging import filter_since

__all__ = ["BackfillResult", "CommentBackfillSync", "IncrementalIssueSync", "SyncResult", "filter_since"]
