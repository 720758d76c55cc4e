"""Remote roster store: the whole student list is read once and overwritten on every save."""
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from classbook.models.roster import Roster
from classbook.models.student import Student

logger = logging.getLogger(__name__)


class SyncResult(BaseModel):
    ok: bool = True
    error: Optional[str] = None


class RosterStore(Protocol):
    async def load(self) -> list[Student]: ...

    async def save(self, students: list[Student]) -> SyncResult: ...


class MongoRosterStore:
    """Roster kept in a single Beanie document. Last writer wins."""

    def __init__(self, key: str):
        self.key = key

    async def load(self) -> list[Student]:
        doc = await Roster.find_one(Roster.key == self.key)
        if not doc:
            return []
        return list(doc.students)

    async def save(self, students: list[Student]) -> SyncResult:
        try:
            doc = await Roster.find_one(Roster.key == self.key)
            if not doc:
                doc = Roster(key=self.key)
            doc.students = list(students)
            doc.updated_at = datetime.now(timezone.utc)
            await doc.save()
        except PyMongoError as e:
            logger.exception("Roster save failed")
            return SyncResult(ok=False, error=str(e))
        return SyncResult()
