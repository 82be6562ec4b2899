"""ETP report extracted from an issue or comment body."""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from etp_exporter.models.comment import Comment
from etp_exporter.models.issue import Issue


class Preference(BaseModel):
    """One browser preference entry of a report, in source order."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: bool | int | float | str


class Report(BaseModel):
    """One report per successfully parsed issue or comment body.

    has_exception is tri-state: None means the body predates the
    hasException line.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    issue_number: int
    labels: List[str] = Field(default_factory=list)
    created_at: datetime
    url: str
    user_agent: Dict[str, Any] = Field(default_factory=dict)
    preferences: List[Preference] = Field(default_factory=list)
    has_exception: bool | None = None
    user_message: str = ""

    def to_document(self) -> Dict[str, Any]:
        """Document representation of the report for storage."""
        return {
            "id": self.id,
            "issueNumber": self.issue_number,
            "labels": list(self.labels),
            "createdAt": self.created_at.isoformat(),
            "url": self.url,
            "userAgent": self.user_agent,
            "preferences": [{"key": p.key, "value": p.value} for p in self.preferences],
            "hasException": self.has_exception,
            "userMessage": self.user_message,
        }


class ParseError(BaseModel):
    """A body that failed to parse. Exists only within one conversion run."""

    issue_number: int
    source: Issue | Comment
    cause: str

    @property
    def is_comment(self) -> bool:
        return isinstance(self.source, Comment)
