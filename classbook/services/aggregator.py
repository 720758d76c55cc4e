"""Per-day and per-month aggregation of a student's attendance, grades and payments.

Everything here is a pure read over the student record: no I/O, no mutation,
fresh structures on every call. Unparseable dates are dropped rather than
reported so a report over imperfect history still renders.
"""
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, tzinfo
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from classbook.config import settings
from classbook.models.student import GradeRecord, PaymentRecord

Order = Literal["asc", "desc"]


class DailyBucket(BaseModel):
    day_key: str
    date: datetime  # first local timestamp seen for this day
    attendance: bool = False
    grades: list[GradeRecord] = Field(default_factory=list)
    payments: list[PaymentRecord] = Field(default_factory=list)


class MonthSummary(BaseModel):
    month: Optional[int] = None
    attendance: int = 0
    average: int = 0  # percent
    payments: float = 0


class DashboardStats(BaseModel):
    stage: Optional[str] = None
    month: Optional[int] = None
    total_students: int = 0
    attended_students: int = 0  # students with at least one attendance in the month
    average: int = 0
    payments: float = 0


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse an ISO date or date-time into a naive local datetime, or None.

    Aware values are converted to the local zone first; naive values and bare
    dates are already local wall-clock time.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time())
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz or settings.tz).replace(tzinfo=None)
    return parsed


def day_key(value: Any, tz: Optional[tzinfo] = None) -> Optional[str]:
    """Local calendar day of a timestamp as YYYY-MM-DD."""
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return None
    return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"


def normalize_month(month: Any) -> Optional[int]:
    """None, "" and "all" mean no month filter; so does anything non-integral."""
    if month is None or isinstance(month, bool):
        return None
    if isinstance(month, str):
        month = month.strip()
        if month in ("", "all"):
            return None
    try:
        number = float(month)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def to_number(value: Any) -> float:
    """Lenient numeric coercion; anything that is not a finite number counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    return number if math.isfinite(number) else 0.0


def percentage(score: float, maximum: float) -> int:
    if maximum <= 0:
        return 0
    # half-up, not banker's rounding
    return int(math.floor(score / maximum * 100 + 0.5))


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _entries(record: Any, name: str) -> list:
    value = _field(record, name)
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return []


def _as_model(entry: Any, model: type[BaseModel]) -> Optional[BaseModel]:
    if isinstance(entry, model):
        return entry
    try:
        return model.model_validate(entry)
    except ValidationError:
        return None


def _in_window(parsed: Optional[datetime], month: Optional[int]) -> bool:
    return parsed is not None and (month is None or parsed.month == month)


def build_daily_buckets(
    student: Any,
    month: Any = None,
    order: Order = "desc",
    tz: Optional[tzinfo] = None,
) -> list[DailyBucket]:
    """Group a student's events by local calendar day.

    order="desc" is the newest-first history view, order="asc" the
    chronological report sequence. Days without qualifying events are omitted.
    """
    month = normalize_month(month)
    buckets: dict[str, DailyBucket] = {}

    def bucket_for(parsed: datetime) -> DailyBucket:
        key = f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"
        if key not in buckets:
            buckets[key] = DailyBucket(day_key=key, date=parsed)
        return buckets[key]

    for entry in _entries(student, "attendance"):
        parsed = parse_timestamp(entry, tz)
        if _in_window(parsed, month):
            bucket_for(parsed).attendance = True

    for entry in _entries(student, "grades"):
        parsed = parse_timestamp(_field(entry, "date"), tz)
        grade = _as_model(entry, GradeRecord)
        if grade is not None and _in_window(parsed, month):
            bucket_for(parsed).grades.append(grade)

    for entry in _entries(student, "payments"):
        parsed = parse_timestamp(_field(entry, "date"), tz)
        payment = _as_model(entry, PaymentRecord)
        if payment is not None and _in_window(parsed, month):
            bucket_for(parsed).payments.append(payment)

    return [buckets[k] for k in sorted(buckets, reverse=(order == "desc"))]


def _window_totals(student: Any, month: Optional[int], tz: Optional[tzinfo]) -> tuple[int, float, float, float]:
    attendance = sum(
        1 for d in _entries(student, "attendance") if _in_window(parse_timestamp(d, tz), month)
    )
    score = maximum = 0.0
    for g in _entries(student, "grades"):
        if _in_window(parse_timestamp(_field(g, "date"), tz), month):
            score += to_number(_field(g, "score"))
            maximum += to_number(_field(g, "max"))
    paid = sum(
        to_number(_field(p, "amount"))
        for p in _entries(student, "payments")
        if _in_window(parse_timestamp(_field(p, "date"), tz), month)
    )
    return attendance, score, maximum, paid


def summarize(student: Any, month: Any, tz: Optional[tzinfo] = None) -> MonthSummary:
    """Attendance count, score average and payment total for one student in the window.

    Attendance entries are counted as stored; duplicates are not collapsed.
    """
    month = normalize_month(month)
    attendance, score, maximum, paid = _window_totals(student, month, tz)
    return MonthSummary(
        month=month,
        attendance=attendance,
        average=percentage(score, maximum),
        payments=paid,
    )


def dashboard_stats(
    students: Iterable[Any],
    month: Any,
    stage: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> DashboardStats:
    """Aggregate over a set of students, optionally restricted to one stage."""
    month = normalize_month(month)
    selected = [s for s in students if not stage or _field(s, "stage") == stage]

    attended = 0
    score = maximum = paid = 0.0
    for s in selected:
        count, s_score, s_max, s_paid = _window_totals(s, month, tz)
        if count > 0:
            attended += 1
        score += s_score
        maximum += s_max
        paid += s_paid

    return DashboardStats(
        stage=stage or None,
        month=month,
        total_students=len(selected),
        attended_students=attended,
        average=percentage(score, maximum),
        payments=paid,
    )
