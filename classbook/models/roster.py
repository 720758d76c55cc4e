from datetime import datetime, timezone

from beanie import Document, Indexed
from pydantic import Field

from classbook.models.student import Student


class Roster(Document):
    """The whole student list, stored as one document and overwritten on every save."""

    key: Indexed(str, unique=True)
    students: list[Student] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "roster"
