"""Remote issue source adapters."""

from etp_exporter.adapters.base import IssueSource, Page
from etp_exporter.adapters.github import GitHubAdapter

__all__ = ["GitHubAdapter", "IssueSource", "Page"]
