"""Student record, its event history, and the request bodies that mutate it."""
import datetime as dt
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Stage(str, Enum):
    PREP1 = "prep1"
    PREP2 = "prep2"
    PREP3 = "prep3"
    SEC1 = "Sec1"
    SEC2 = "Sec2"
    SEC3 = "Sec3"


def _loose_number(v):
    # null, booleans and other non-scalars in stored history count as 0
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        return 0
    return v


class GradeRecord(BaseModel):
    """A graded assessment. score/max may arrive as strings from older records."""

    type: str = "quiz"  # quiz, monthly
    score: float | str = 0
    max: float | str = 0
    date: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def grade_type(cls, v):
        return v if isinstance(v, str) and v else "quiz"

    @field_validator("score", "max", mode="before")
    @classmethod
    def loose_number(cls, v):
        return _loose_number(v)

    @field_validator("date", mode="before")
    @classmethod
    def text_date(cls, v):
        return v if isinstance(v, str) else None


class PaymentRecord(BaseModel):
    amount: float | str = 0
    note: str = ""
    date: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def loose_number(cls, v):
        return _loose_number(v)

    @field_validator("date", mode="before")
    @classmethod
    def text_date(cls, v):
        return v if isinstance(v, str) else None

    @field_validator("note", mode="before")
    @classmethod
    def note_text(cls, v):
        return "" if v is None else str(v)


class Student(BaseModel):
    """Student record as mirrored to the remote store.

    Loading is lenient: historical records were written from form fields and
    may carry strings for numbers or null for empty lists.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)

    id: str
    name: str
    age: Optional[int] = None
    stage: str = ""  # one of Stage, or empty
    phone: str = ""
    guardian_phone: str = Field("", alias="guardianPhone")
    photo: Optional[str] = None
    note: Optional[str] = None
    created_at: str = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc).isoformat(), alias="createdAt")
    report_log: dict[str, str] = Field(default_factory=dict, alias="reportLog")

    attendance: list[str] = Field(default_factory=list)
    grades: list[GradeRecord] = Field(default_factory=list)
    payments: list[PaymentRecord] = Field(default_factory=list)

    @field_validator("id", "name", "phone", "guardian_phone", mode="before")
    @classmethod
    def as_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("stage", mode="before")
    @classmethod
    def stage_value(cls, v):
        if isinstance(v, Stage):
            return v.value
        return v or ""

    @field_validator("age", mode="before")
    @classmethod
    def lenient_age(cls, v):
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float):
            return int(v) if v.is_integer() else None
        try:
            return int(str(v).strip())
        except (TypeError, ValueError):
            return None

    @field_validator("report_log", mode="before")
    @classmethod
    def empty_report_log(cls, v):
        return v or {}

    @field_validator("attendance", mode="before")
    @classmethod
    def attendance_dates(cls, v):
        return [d for d in (v or []) if isinstance(d, str)]

    @field_validator("grades", "payments", mode="before")
    @classmethod
    def empty_history(cls, v):
        return [e for e in (v or []) if isinstance(e, (dict, BaseModel))]


class StudentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, pattern=r"^\d{3,4}$", description="Student code; generated when omitted")
    name: str = Field(..., min_length=1)
    age: int = Field(..., ge=0)
    stage: Stage | Literal[""] = ""
    phone: str = Field(..., pattern=r"^\d{11}$")
    guardian_phone: str = Field(..., pattern=r"^\d{11}$", alias="guardianPhone")
    photo: Optional[str] = None
    note: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class StudentUpdate(BaseModel):
    """All fields optional for PATCH; code and history are not updatable."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1)
    age: Optional[int] = Field(None, ge=0)
    stage: Optional[Stage | Literal[""]] = None
    phone: Optional[str] = Field(None, pattern=r"^\d{11}$")
    guardian_phone: Optional[str] = Field(None, pattern=r"^\d{11}$", alias="guardianPhone")
    photo: Optional[str] = None
    note: Optional[str] = None

    @field_validator("name", "phone", "guardian_phone")
    @classmethod
    def not_cleared(cls, v, info):
        # omit a field to leave it unchanged; null would blank a required value
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class AttendanceMark(BaseModel):
    query: str = Field(..., min_length=1, description="Student code or full name")
    date: Optional[dt.date] = None


class GradeCreate(BaseModel):
    student_id: str
    type: Literal["quiz", "monthly"]
    score: float = Field(..., ge=0)
    max: float = Field(..., ge=0)
    date: Optional[dt.date] = None


class PaymentCreate(BaseModel):
    student_id: str
    amount: float = Field(..., ge=0)
    note: str = ""
    date: Optional[dt.date] = None
