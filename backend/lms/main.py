import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .database import check_database_connection, get_db
from .errors import ErrorKind, LMSError
from .routers import api_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

IMAGE_EXTENSIONS = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")

MAINTENANCE_PAGE = """<!DOCTYPE html>
<html lang="id">
<head><meta charset="utf-8"><title>Maintenance</title></head>
<body>
<h1>Sedang dalam perbaikan</h1>
<p>The LMS is undergoing maintenance. Please check back shortly.</p>
</body>
</html>
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler replacing deprecated startup/shutdown events."""
    logger.info("Starting up LMS API...")
    missing = settings.missing_auth_settings()
    if missing and not settings.jwt_secret:
        logger.warning(f"Auth service not configured, missing: {', '.join(missing)}")
    if not settings.ai_api_key:
        logger.warning("GEMINI_API_KEY not set; AI chat routes will fail")
    os.makedirs(settings.upload_dir, exist_ok=True)
    # Strict DB connectivity check in production; only skip during pytest
    if os.getenv("PYTEST_CURRENT_TEST") is not None:
        logger.info("Skipping DB connectivity check during tests")
    elif not check_database_connection():
        raise Exception("Cannot connect to database")
    yield
    logger.info("Shutting down LMS API...")


app = FastAPI(
    title="LMS API",
    description="Learning management API: classes, modules, quizzes, assignments and an AI tutor",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.exception_handler(LMSError)
async def lms_error_handler(request: Request, exc: LMSError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.unauthenticated else None
    if exc.kind == ErrorKind.unexpected:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: Exception):
    logger.debug(f"Validation error on {request.url.path}: {exc}")
    return _error(400, "Validation error")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(500, "Internal server error")


def is_maintenance_exempt(path: str, files_prefix: str) -> bool:
    """Paths still served while maintenance mode is on."""
    if path in ("/maintenance", "/favicon.ico", "/health"):
        return True
    for prefix in ("/api", "/health", files_prefix):
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return path.lower().endswith(IMAGE_EXTENSIONS)


@app.middleware("http")
async def maintenance_redirect(request: Request, call_next):
    current = get_settings()
    path = request.url.path
    if current.maintenance_mode:
        if not is_maintenance_exempt(path, current.public_files_url):
            return RedirectResponse("/maintenance", status_code=307)
    elif path == "/maintenance":
        return RedirectResponse("/", status_code=307)
    return await call_next(request)


# Routers
app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"data": {"message": "LMS API", "version": __version__}}


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint with database connectivity test."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"data": {"status": "unhealthy", "database": "disconnected", "version": __version__}},
        )
    return {"data": {"status": "healthy", "database": "connected", "version": __version__}}


@app.get("/maintenance", response_class=HTMLResponse)
async def maintenance_page():
    return MAINTENANCE_PAGE


app.mount(settings.public_files_url, StaticFiles(directory=settings.upload_dir, check_dir=False), name="files")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
