"""REST API module for the ambassador hub.

This module provides HTTP endpoints for:
- Creating, funding and starting tasks
- Applying to tasks and reviewing applications
- Submitting deliverables and reviewing submissions
- Recording payments
- User profiles
- Admin analytics
- System health monitoring

Every error response has the shape {"error": str} with an optional "details".
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings_conf
from database import close as db_close
from submissions.uploads import UPLOADS_URL_PREFIX

logger = logging.getLogger(__name__)

API_TITLE = "Ambassador Hub API"
API_VERSION = "1.0.0"

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    # The pool is created lazily by the first request (or by __main__)
    yield
    logger.info("Shutting down API...")
    await db_close()

app = FastAPI(
    title=API_TITLE,
    description="REST API for coordinating ambassador tasks, reviews and payouts",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings_conf['cors_origins'],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": ..., "details": ...}."""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors, reported as 400."""
    errors = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": errors}
    )

@app.get("/")
async def root():
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "status": "running"
    }

# Import and include all routers
from .tasks import router as tasks_router
from .applications import router as applications_router
from .submissions import router as submissions_router
from .payments import router as payments_router
from .profile import router as profile_router
from .builders import router as builders_router
from .admin import router as admin_router
from .system import router as system_router

app.include_router(tasks_router)
app.include_router(applications_router)
app.include_router(submissions_router)
app.include_router(payments_router)
app.include_router(profile_router)
app.include_router(builders_router)
app.include_router(admin_router)
app.include_router(system_router)

# Supporting files attached to submissions
app.mount(
    UPLOADS_URL_PREFIX,
    StaticFiles(directory=settings_conf['uploads_dir'], check_dir=False),
    name="uploads"
)

__all__ = ['app']
