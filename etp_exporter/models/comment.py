"""Comment on a mirrored issue."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Comment(BaseModel):
    """Comment on an issue. Immutable once stored."""

    model_config = ConfigDict(frozen=True)

    id: int
    issue_number: int
    body: str = ""
    created_at: datetime
