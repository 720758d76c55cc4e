"""Student CRUD and per-student history."""
from typing import Literal

from fastapi import APIRouter, Query

from classbook.api.deps import Repository, parse_month, sync_fields
from classbook.models.student import Student, StudentCreate, StudentUpdate
from classbook.services.aggregator import build_daily_buckets

router = APIRouter()


def student_out(s: Student) -> dict:
    return s.model_dump(mode="json", by_alias=True)


@router.get("/")
async def list_students(
    repo: Repository,
    q: str = Query("", description="Search by name, code or phone"),
    stage: str = "",
):
    return [
        {
            "id": s.id,
            "name": s.name,
            "phone": s.phone,
            "stage": s.stage,
            "note": s.note,
        }
        for s in repo.list_students(q, stage)
    ]


@router.post("/", status_code=201)
async def create_student(data: StudentCreate, repo: Repository):
    student, result = await repo.register(data)
    return {"id": student.id, "name": student.name, **sync_fields(result)}


@router.get("/{code}")
async def get_student(code: str, repo: Repository):
    return student_out(repo.get(code))


@router.patch("/{code}")
async def update_student(code: str, data: StudentUpdate, repo: Repository):
    student, result = await repo.update(code, data)
    return {**student_out(student), **sync_fields(result)}


@router.delete("/{code}")
async def delete_student(code: str, repo: Repository):
    result = await repo.delete(code)
    return {"id": code, "deleted": True, **sync_fields(result)}


@router.get("/{code}/history")
async def student_history(
    code: str,
    repo: Repository,
    month: str | None = Query(None, description="1-12 or 'all'"),
    order: Literal["asc", "desc"] = "desc",
):
    """Day-by-day history, newest first unless order=asc."""
    student = repo.get(code)
    active_month = parse_month(month)
    days = build_daily_buckets(student, active_month, order=order)
    return {
        "id": student.id,
        "month": active_month,
        "days": [d.model_dump(mode="json") for d in days],
    }
