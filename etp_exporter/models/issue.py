"""Mirrored issue document."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from etp_exporter.models.comment import Comment


class Issue(BaseModel):
    """Issue as stored in the issues collection.

    comment_list grows by appends from the comment backfill; comments_imported
    flips to True once every comment page was fetched.
    """

    number: int
    id: int
    title: str = ""
    body: str = ""
    labels: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    comment_list: List[Comment] = Field(default_factory=list)
    comments_imported: bool = False

    def to_document(self) -> dict:
        """Document representation for the store."""
        return self.model_dump(mode="json")
