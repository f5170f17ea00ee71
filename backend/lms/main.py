"""FastAPI application entrypoint.

This module builds the LMS administration API: it wires the resource
routers, request logging, CORS and the translation of domain errors to
HTTP responses. Controllers are intentionally thin: they check roles,
delegate to services, and return JSON responses.

Routers mounted:
- /api/auth      login, token refresh, current user
- /students      student CRUD and enrollment
- /courses       course CRUD and teacher assignment
- /teachers      teacher CRUD (plus /api/teachers/me for teachers)
- /payments      student payments and unpaid lookups
- /api/expenses  expenses and category breakdowns
- /api/admin     financial summary, salary payments, dashboard
"""

from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session
import json
import logging
import time
import uuid
from .config import settings
from .database import engine, create_db_and_tables
from .exceptions import BusinessRuleError, ResourceNotFoundError
from . import services
from .routers import admin, auth, courses, expenses, payments, students, teachers

app = FastAPI(title="LMS Administration API")
logger = logging.getLogger("lms.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def bootstrap():
    """Create tables, seed roles and make sure the admin account exists."""
    create_db_and_tables()
    with Session(engine) as session:
        services.AuthService(session).ensure_admin(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)


bootstrap()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


def _error_body(message: str, **extra) -> dict:
    return {"timestamp": datetime.now().isoformat(timespec="seconds"), "message": message, **extra}


@app.exception_handler(ResourceNotFoundError)
async def not_found_handler(request: Request, exc: ResourceNotFoundError):
    return JSONResponse(status_code=404, content=_error_body(str(exc)))


@app.exception_handler(BusinessRuleError)
async def business_rule_handler(request: Request, exc: BusinessRuleError):
    return JSONResponse(status_code=400, content=_error_body(str(exc)))


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors[".".join(loc) or "body"] = err.get("msg", "invalid value")
    return JSONResponse(status_code=400, content=_error_body("Validation failed", errors=errors))


@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Something went wrong"))


app.include_router(auth.router)
app.include_router(students.router)
app.include_router(courses.router)
app.include_router(teachers.router)
app.include_router(teachers.self_router)
app.include_router(payments.router)
app.include_router(expenses.router)
app.include_router(admin.router)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
