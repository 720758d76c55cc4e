"""Monthly performance reports: payload, PDF, WhatsApp hand-off and sent-status tracking."""
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from classbook.api.deps import Repository, parse_month, sync_fields
from classbook.services.report_pdf import render_report_pdf
from classbook.services.sharing import build_report, whatsapp_link

router = APIRouter()


@router.get("/status")
async def report_status(
    repo: Repository,
    month: str = Query(..., description="1-12"),
    stage: str = "",
    year: int | None = None,
):
    """Which students already had this month's report sent."""
    m = parse_month(month, required=True)
    rows = repo.report_status(m, stage, year)
    return {
        "month": m,
        "stage": stage or "all",
        "sent": sum(1 for r in rows if r.sent),
        "rows": [r.model_dump() for r in rows],
    }


@router.get("/{code}")
async def get_report(code: str, repo: Repository, month: str = Query(...), note: str = ""):
    student = repo.get(code)
    report = build_report(student, parse_month(month, required=True), note)
    return report.model_dump(mode="json")


@router.get("/{code}/pdf")
async def download_report_pdf(code: str, repo: Repository, month: str = Query(...), note: str = ""):
    """Render the report PDF on the fly and return it as a download."""
    student = repo.get(code)
    report = build_report(student, parse_month(month, required=True), note)
    pdf_bytes = render_report_pdf(report)
    if not pdf_bytes:
        raise HTTPException(status_code=503, detail="Report generation failed")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="report_{student.id}_{report.month}.pdf"'},
    )


@router.post("/{code}/share")
async def share_report(code: str, repo: Repository, month: str = Query(...)):
    """Record the report as sent for this month and return the guardian WhatsApp link."""
    m = parse_month(month, required=True)
    student, result = await repo.record_report_sent(code, m)
    return {
        "id": student.id,
        "whatsapp_url": whatsapp_link(student, m),
        "report_log": student.report_log,
        **sync_fields(result),
    }
