"""Attendance, grade and fee entry."""
from fastapi import APIRouter

from classbook.api.deps import Repository, sync_fields
from classbook.models.student import AttendanceMark, GradeCreate, PaymentCreate

router = APIRouter()


@router.post("/attendance")
async def mark_attendance(data: AttendanceMark, repo: Repository):
    """Mark a student present by code or full name. A day already marked is left as is."""
    result = await repo.mark_attendance(data.query, data.date)
    return {
        "id": result.student.id,
        "name": result.student.name,
        "date": result.day.isoformat(),
        "already_marked": result.already_marked,
        **sync_fields(result.sync),
    }


@router.post("/grades", status_code=201)
async def add_grade(data: GradeCreate, repo: Repository):
    student, result = await repo.add_grade(data)
    grade = student.grades[-1]
    return {"id": student.id, "name": student.name, "grade": grade.model_dump(), **sync_fields(result)}


@router.post("/payments", status_code=201)
async def add_payment(data: PaymentCreate, repo: Repository):
    student, result = await repo.add_payment(data)
    payment = student.payments[-1]
    return {"id": student.id, "name": student.name, "payment": payment.model_dump(), **sync_fields(result)}
