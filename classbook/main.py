"""Classbook - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import ServerSelectionTimeoutError

from classbook.config import settings
from classbook.db import db_shutdown, db_startup
from classbook.services.repository import DuplicateStudent, StudentNotFound, StudentRepository
from classbook.services.store import MongoRosterStore
from classbook.api import students, performance, reports, dashboard, storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await db_startup()
        repository = StudentRepository(MongoRosterStore(settings.roster_key))
        await repository.load()
    except ServerSelectionTimeoutError as e:
        logger.error(
            "MongoDB is not reachable at %s. Start a MongoDB server or set MONGODB_URL.", settings.mongodb_url
        )
        raise RuntimeError(
            "MongoDB connection failed. Check MONGODB_URL and that the server is running."
        ) from e
    app.state.repository = repository
    yield
    await db_shutdown()


app = FastAPI(
    title=settings.app_name,
    description="Student records: attendance, grades, fees and monthly reports",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.exception_handler(StudentNotFound)
async def student_not_found_handler(request: Request, exc: StudentNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(DuplicateStudent)
async def duplicate_student_handler(request: Request, exc: DuplicateStudent):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(students.router, prefix="/api/students", tags=["Students"])
app.include_router(performance.router, prefix="/api/performance", tags=["Attendance, Grades & Fees"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(storage.router, prefix="/api/storage", tags=["Storage"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
