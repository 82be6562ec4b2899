"""Data models for mirrored issues, comments and extracted reports (Pydantic)."""

from etp_exporter.models.comment import Comment
from etp_exporter.models.issue import Issue
from etp_exporter.models.report import ParseError, Preference, Report

__all__ = ["Comment", "Issue", "ParseError", "Preference", "Report"]
