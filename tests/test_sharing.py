from datetime import date
from urllib.parse import parse_qs, urlparse

import pytest

from classbook.models.student import Student
from classbook.services.aggregator import build_daily_buckets
from classbook.services.report_pdf import day_row, render_report_pdf, text_font
from classbook.services.sharing import build_report, guardian_whatsapp_number, report_message, whatsapp_link

from tests.conftest import make_student


@pytest.mark.parametrize(
    "phone, expected",
    [
        ("01198765432", "201198765432"),
        ("011-987 654 32", "201198765432"),
        ("201198765432", "201198765432"),
        ("", ""),
    ],
)
def test_guardian_whatsapp_number(phone, expected):
    assert guardian_whatsapp_number(phone) == expected


def test_whatsapp_link_carries_message():
    student = Student.model_validate(make_student(name="Mona Adel"))
    url = urlparse(whatsapp_link(student, 3))
    query = parse_qs(url.query)
    assert query["phone"] == ["201198765432"]
    assert query["text"] == [report_message(student, 3)]
    assert "Mona Adel" in query["text"][0]
    assert "مارس" in query["text"][0]


def test_day_row_labels():
    student = Student.model_validate(
        make_student(
            attendance=["2024-03-05"],
            grades=[
                {"type": "quiz", "score": 8, "max": 10, "date": "2024-03-05T10:00:00"},
                {"type": "monthly", "score": "18", "max": "20", "date": "2024-03-05T11:00:00"},
            ],
            payments=[{"amount": "150", "note": "March", "date": "2024-03-05T10:05:00"}],
        )
    )
    row = day_row(build_daily_buckets(student, 3)[0])
    assert row == ["05/03/2024", "Session + Quiz + Monthly exam", "8 / 10\n18 / 20", "150 EGP (March)"]


def test_empty_month_still_renders():
    student = Student.model_validate(make_student())
    report = build_report(student, 6, today=date(2024, 6, 30))
    assert report.days == []
    assert report.summary.attendance == 0
    pdf = render_report_pdf(report)
    assert pdf is not None and pdf.startswith(b"%PDF")


def test_arabic_name_and_note_render():
    student = Student.model_validate(
        make_student(
            name="منى عادل",
            attendance=["2024-03-05"],
            payments=[{"amount": 150, "note": "مصروفات مارس", "date": "2024-03-05T10:05:00"}],
        )
    )
    report = build_report(student, 3, note="مستوى ممتاز", today=date(2024, 3, 30))
    pdf = render_report_pdf(report)
    assert pdf is not None and pdf.startswith(b"%PDF")


def test_missing_font_path_falls_back():
    assert text_font("/nonexistent/font.ttf") in ("ReportText", "Helvetica")
