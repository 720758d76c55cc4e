"""In-memory student roster with a single write path to the remote store."""
import asyncio
import json
import logging
import random
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import BaseModel, Field

from classbook.config import settings
from classbook.models.student import (
    GradeCreate,
    GradeRecord,
    PaymentCreate,
    PaymentRecord,
    Stage,
    Student,
    StudentCreate,
    StudentUpdate,
)
from classbook.services.aggregator import day_key
from classbook.services.store import RosterStore, SyncResult

logger = logging.getLogger(__name__)


class StudentNotFound(LookupError):
    def __init__(self, query: str):
        super().__init__(f"Student not found: {query}")
        self.query = query


class DuplicateStudent(ValueError):
    def __init__(self, code: str):
        super().__init__(f"Student code already in use: {code}")
        self.code = code


class AttendanceResult(BaseModel):
    student: Student
    day: date
    already_marked: bool = False
    sync: SyncResult = Field(default_factory=SyncResult)


class ReportStatusRow(BaseModel):
    code: str
    name: str
    stage: str
    guardian_phone: str
    sent: bool
    sent_at: Optional[str] = None


class StorageUsage(BaseModel):
    size_kb: float
    limit_kb: int
    percent: float
    free_mb: float


def _local_now() -> datetime:
    return datetime.now(settings.tz)


class StudentRepository:
    """Owns the student list. Every mutation ends in _commit(), which mirrors
    the whole list to the store and hands back the SyncResult."""

    def __init__(self, store: RosterStore, clock: Callable[[], datetime] = _local_now):
        self._store = store
        self._clock = clock
        self._students: list[Student] = []
        self._lock = asyncio.Lock()

    async def load(self) -> int:
        self._students = await self._store.load()
        logger.info("Loaded %d students from roster store", len(self._students))
        return len(self._students)

    async def _commit(self) -> SyncResult:
        async with self._lock:
            snapshot = [s.model_copy(deep=True) for s in self._students]
            result = await self._store.save(snapshot)
        if not result.ok:
            logger.error("Roster sync failed, local changes kept: %s", result.error)
        return result

    # ---- reads ----

    @property
    def students(self) -> list[Student]:
        return list(self._students)

    def list_students(self, query: str = "", stage: str = "") -> list[Student]:
        """Substring match on name, code or phone; exact stage; ordered by numeric code."""
        query = query or ""

        def matches(s: Student) -> bool:
            hit = query in s.name or query in s.id or (bool(s.phone) and query in s.phone)
            return hit and (not stage or s.stage == stage)

        def code_order(s: Student):
            return (0, int(s.id)) if s.id.isdigit() else (1, s.id)

        return sorted((s for s in self._students if matches(s)), key=code_order)

    def get(self, code: str) -> Student:
        for s in self._students:
            if s.id == code:
                return s
        logger.warning("Lookup for unknown student code %s", code)
        raise StudentNotFound(code)

    def find(self, query: str) -> Student:
        """Resolve by code or by exact (trimmed) full name."""
        query = query.strip()
        for s in self._students:
            if s.id == query or s.name.strip() == query:
                return s
        logger.warning("No student matches %r", query)
        raise StudentNotFound(query)

    def generate_id(self) -> str:
        taken = {s.id for s in self._students}
        while True:
            code = str(random.randint(1000, 9999))
            if code not in taken:
                return code

    # ---- writes ----

    async def register(self, data: StudentCreate) -> tuple[Student, SyncResult]:
        code = data.id or self.generate_id()
        if any(s.id == code for s in self._students):
            raise DuplicateStudent(code)
        student = Student(
            id=code,
            name=data.name,
            age=data.age,
            stage=data.stage.value if isinstance(data.stage, Stage) else data.stage,
            phone=data.phone,
            guardian_phone=data.guardian_phone,
            photo=data.photo,
            note=data.note,
            created_at=self._clock().isoformat(),
        )
        self._students.append(student)
        return student, await self._commit()

    async def update(self, code: str, data: StudentUpdate) -> tuple[Student, SyncResult]:
        student = self.get(code)
        for key, value in data.model_dump(exclude_unset=True).items():
            if isinstance(value, Stage):
                value = value.value
            if key == "stage" and value is None:
                value = ""
            setattr(student, key, value)
        return student, await self._commit()

    async def delete(self, code: str) -> SyncResult:
        student = self.get(code)
        self._students = [s for s in self._students if s is not student]
        return await self._commit()

    async def mark_attendance(self, query: str, day: Optional[date] = None) -> AttendanceResult:
        student = self.find(query)
        day = day or self._clock().date()
        if day.isoformat() in {day_key(d) for d in student.attendance}:
            return AttendanceResult(student=student, day=day, already_marked=True)
        student.attendance.append(day.isoformat())
        return AttendanceResult(student=student, day=day, sync=await self._commit())

    def _entry_timestamp(self, day: Optional[date]) -> tuple[date, str]:
        # selected day combined with the current local time of day
        now = self._clock()
        day = day or now.date()
        return day, f"{day.isoformat()}T{now.time().isoformat(timespec='milliseconds')}"

    async def add_grade(self, data: GradeCreate) -> tuple[Student, SyncResult]:
        student = self.get(data.student_id)
        day, stamp = self._entry_timestamp(data.date)
        student.grades.append(GradeRecord(type=data.type, score=data.score, max=data.max, date=stamp))
        # a graded student was present that day
        if day.isoformat() not in {day_key(d) for d in student.attendance}:
            student.attendance.append(day.isoformat())
        return student, await self._commit()

    async def add_payment(self, data: PaymentCreate) -> tuple[Student, SyncResult]:
        student = self.get(data.student_id)
        _, stamp = self._entry_timestamp(data.date)
        student.payments.append(PaymentRecord(amount=data.amount, note=data.note, date=stamp))
        return student, await self._commit()

    async def record_report_sent(self, code: str, month: int) -> tuple[Student, SyncResult]:
        student = self.get(code)
        now = self._clock()
        student.report_log[f"{now.year}-{month}"] = now.isoformat()
        return student, await self._commit()

    # ---- roster-wide views ----

    def report_status(self, month: int, stage: str = "", year: Optional[int] = None) -> list[ReportStatusRow]:
        key = f"{year or self._clock().year}-{month}"
        rows = []
        for s in self._students:
            if stage and s.stage != stage:
                continue
            sent_at = s.report_log.get(key)
            rows.append(
                ReportStatusRow(
                    code=s.id,
                    name=s.name,
                    stage=s.stage,
                    guardian_phone=s.guardian_phone,
                    sent=bool(sent_at),
                    sent_at=sent_at,
                )
            )
        return rows

    def storage_usage(self) -> StorageUsage:
        payload = json.dumps(
            [s.model_dump(mode="json", by_alias=True) for s in self._students],
            ensure_ascii=False,
            separators=(",", ":"),
        )
        size_kb = len(payload.encode("utf-8")) / 1024
        limit_kb = settings.storage_limit_kb
        return StorageUsage(
            size_kb=round(size_kb, 2),
            limit_kb=limit_kb,
            percent=round(min(size_kb / limit_kb * 100, 100), 4),
            free_mb=round((limit_kb - size_kb) / 1024, 2),
        )
