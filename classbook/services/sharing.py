"""Monthly report payload and the guardian WhatsApp hand-off."""
import calendar
import re
from datetime import date
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from classbook.config import settings
from classbook.models.student import Student
from classbook.services.aggregator import DailyBucket, MonthSummary, build_daily_buckets, summarize

ARABIC_MONTHS = [
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
]


class StudentReport(BaseModel):
    code: str
    name: str
    stage: str
    phone: str
    photo: Optional[str] = None
    month: int
    month_name: str
    month_name_ar: str
    report_date: date
    note: str = ""
    days: list[DailyBucket] = Field(default_factory=list)
    summary: MonthSummary


def build_report(student: Student, month: int, note: str = "", today: Optional[date] = None) -> StudentReport:
    """Report for one month: chronological day rows plus totals."""
    return StudentReport(
        code=student.id,
        name=student.name,
        stage=student.stage,
        phone=student.phone,
        photo=student.photo or None,
        month=month,
        month_name=calendar.month_name[month],
        month_name_ar=ARABIC_MONTHS[month - 1],
        report_date=today or date.today(),
        note=(note or "").strip(),
        days=build_daily_buckets(student, month, order="asc"),
        summary=summarize(student, month),
    )


def guardian_whatsapp_number(phone: str) -> str:
    """Digits only; local Egyptian mobile numbers (01...) get the 2 country prefix."""
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("01"):
        digits = "2" + digits
    return digits


def report_message(student: Student, month: int) -> str:
    return (
        f"مرحباً، تقرير أداء الطالب/ة {student.name} لشهر {ARABIC_MONTHS[month - 1]} "
        f"في مادة الـ {settings.report_subject}.\n"
        f"تحت إشراف \nالبشمهندس : {settings.tutor_name}"
    )


def whatsapp_link(student: Student, month: int) -> str:
    phone = guardian_whatsapp_number(student.guardian_phone)
    text = quote(report_message(student, month), safe="-_.!~*'()")
    return f"{settings.whatsapp_base_url}?phone={phone}&text={text}"
