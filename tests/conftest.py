from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from classbook.api.deps import get_repository
from classbook.main import app
from classbook.models.student import Student
from classbook.services.repository import StudentRepository
from classbook.services.store import SyncResult

CAIRO = ZoneInfo("Africa/Cairo")
NOW = datetime(2024, 3, 5, 10, 0, tzinfo=CAIRO)


class FakeStore:
    """In-memory roster store; set fail=True to simulate a remote write error."""

    def __init__(self, students=None):
        self.students = [Student.model_validate(s) for s in (students or [])]
        self.saves = 0
        self.fail = False

    async def load(self):
        return [s.model_copy(deep=True) for s in self.students]

    async def save(self, students):
        if self.fail:
            return SyncResult(ok=False, error="remote unavailable")
        self.saves += 1
        self.students = [s.model_copy(deep=True) for s in students]
        return SyncResult()


def make_student(**overrides) -> dict:
    data = {
        "id": "1001",
        "name": "Mona Adel",
        "age": 14,
        "stage": "prep2",
        "phone": "01012345678",
        "guardianPhone": "01198765432",
        "attendance": [],
        "grades": [],
        "payments": [],
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def repo(store):
    return StudentRepository(store, clock=lambda: NOW)


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()
