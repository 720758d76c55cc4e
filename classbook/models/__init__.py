"""Beanie document models and Pydantic schemas."""
from classbook.models.student import (
    Stage,
    Student,
    StudentCreate,
    StudentUpdate,
    GradeRecord,
    PaymentRecord,
    AttendanceMark,
    GradeCreate,
    PaymentCreate,
)
from classbook.models.roster import Roster

__all__ = [
    "Stage",
    "Student",
    "StudentCreate",
    "StudentUpdate",
    "GradeRecord",
    "PaymentRecord",
    "AttendanceMark",
    "GradeCreate",
    "PaymentCreate",
    "Roster",
]
