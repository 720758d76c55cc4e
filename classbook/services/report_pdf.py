"""Monthly performance report PDF (ReportLab); A5 portrait, one row per day."""
import io
import logging
import os
from functools import lru_cache
from typing import Optional

from classbook.config import settings
from classbook.services.aggregator import DailyBucket, to_number
from classbook.services.sharing import StudentReport

logger = logging.getLogger(__name__)

GRADE_LABELS = {"quiz": "Quiz", "monthly": "Monthly exam"}

TEXT_FONT = "ReportText"
FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/noto/NotoSansArabic-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "C:/Windows/Fonts/arial.ttf",
)


@lru_cache(maxsize=None)
def text_font(path: str = "") -> str:
    """Register a TTF that covers Arabic for user-supplied text.

    Falls back to Helvetica when no usable font is found.
    """
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.ttfonts import TTFError, TTFont

    for candidate in ((path,) if path else ()) + FONT_CANDIDATES:
        if not os.path.isfile(candidate):
            continue
        try:
            pdfmetrics.registerFont(TTFont(TEXT_FONT, candidate))
        except (TTFError, OSError) as e:
            logger.warning("Report font %s unusable: %s", candidate, e)
            continue
        return TEXT_FONT
    logger.warning("No TTF font with Arabic glyphs found; names and notes use Helvetica")
    return "Helvetica"


def _fmt_number(value) -> str:
    n = to_number(value)
    return f"{n:g}"


def day_row(day: DailyBucket) -> list[str]:
    """Date | activities | scores | payments, as shown in the report table."""
    activities = []
    if day.attendance:
        activities.append("Session")
    activities.extend(GRADE_LABELS.get(g.type, g.type) for g in day.grades)
    scores = "\n".join(f"{_fmt_number(g.score)} / {_fmt_number(g.max)}" for g in day.grades)
    payments = "\n".join(
        f"{_fmt_number(p.amount)} {settings.currency}" + (f" ({p.note})" if p.note else "")
        for p in day.payments
    )
    return [
        day.date.strftime("%d/%m/%Y"),
        " + ".join(activities) or "---",
        scores or "---",
        payments or "---",
    ]


def render_report_pdf(report: StudentReport) -> Optional[bytes]:
    """Build the report PDF. Returns None if ReportLab is unavailable or drawing fails."""
    try:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A5
        from reportlab.lib.units import mm
        from reportlab.pdfgen import canvas
        from reportlab.platypus import Table, TableStyle
    except ImportError:
        return None
    try:
        buf = io.BytesIO()
        body_font = text_font(settings.report_font_path)
        c = canvas.Canvas(buf, pagesize=A5)
        w, h = A5
        margin_x = 8 * mm
        margin_y = 8 * mm
        y = h - margin_y
        line_h = 6 * mm
        border_color = colors.HexColor("#707070")
        c.setStrokeColor(border_color)

        # === Header: school / title, optional photo on the right ===
        c.setFont(body_font, 14)
        c.drawString(margin_x, y - 4 * mm, (settings.school_name or settings.app_name)[:50])
        c.setFont("Helvetica", 9)
        c.drawString(margin_x, y - 9 * mm, f"Report date: {report.report_date.strftime('%d/%m/%Y')}")
        if report.photo:
            try:
                import urllib.request
                from reportlab.lib.utils import ImageReader

                with urllib.request.urlopen(report.photo, timeout=5) as resp:
                    img = ImageReader(io.BytesIO(resp.read()))
                iw, ih = img.getSize()
                side = 22 * mm
                scale = min(side / iw, side / ih)
                c.drawImage(
                    img,
                    w - margin_x - iw * scale,
                    y - ih * scale,
                    width=iw * scale,
                    height=ih * scale,
                    preserveAspectRatio=True,
                    mask="auto",
                )
            except Exception as e:
                logger.debug("Student photo load failed: %s", e)
        y -= 26 * mm

        # === Student block ===
        rows = [
            ("Student", report.name),
            ("Code", report.code),
            ("Stage", report.stage or "---"),
            ("Phone", report.phone),
            ("Month", report.month_name),
        ]
        c.setLineWidth(0.5)
        for label, value in rows:
            c.setFont("Helvetica-Bold", 10)
            c.drawString(margin_x + 2 * mm, y, f"{label}:")
            c.setFont(body_font, 10)
            c.drawString(margin_x + 25 * mm, y, str(value)[:60])
            y -= line_h
        y -= 2 * mm

        # === Title ===
        c.setFont("Helvetica-Bold", 14)
        title = "MONTHLY PERFORMANCE REPORT"
        c.drawString((w - c.stringWidth(title, "Helvetica-Bold", 14)) / 2, y, title)
        y -= line_h

        # === Day table ===
        data = [["Date", "Activity", "Score", "Payment"]]
        if report.days:
            data.extend(day_row(d) for d in report.days)
        else:
            data.append(["No records for this month", "", "", ""])
        table_width = w - 2 * margin_x
        table = Table(data, colWidths=[table_width * f for f in (0.2, 0.3, 0.2, 0.3)], repeatRows=1)
        style = [
            ("GRID", (0, 0), (-1, -1), 0.5, border_color),
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e0e0e0")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTNAME", (0, 1), (-1, -1), body_font),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        if not report.days:
            style.append(("SPAN", (0, 1), (-1, 1)))
        table.setStyle(TableStyle(style))
        _, th = table.wrapOn(c, table_width, h)
        if y - th < margin_y + 30 * mm:
            c.showPage()
            y = h - margin_y
        table.drawOn(c, margin_x, y - th)
        y -= th + 6 * mm

        # === Totals ===
        c.setFont("Helvetica-Bold", 10)
        c.drawString(margin_x, y, f"Sessions attended: {report.summary.attendance}")
        y -= line_h
        c.drawString(margin_x, y, f"Average score: {report.summary.average}%")
        y -= line_h
        c.drawString(margin_x, y, f"Payments: {report.summary.payments:g} {settings.currency}")
        y -= line_h

        # === Note ===
        if report.note:
            c.setFont("Helvetica-Bold", 9)
            c.drawString(margin_x, y, "Note:")
            c.setFont(body_font, 9)
            text = report.note.replace("\n", " ")
            for i in range(0, len(text), 70):
                y -= 4 * mm
                c.drawString(margin_x + 2 * mm, y, text[i : i + 70])

        c.save()
        return buf.getvalue()
    except Exception as e:
        logger.warning("ReportLab PDF failed: %s", e)
        return None
