from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models
from .config import settings
from .database import engine
from .errors import AuthError, JobSyncError, ProviderError, StoreError
from .logging import configure_logging, get_logger
from .routes import applications, classify, sync

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging(settings.log_level, json_output=settings.log_json)
    # Create database tables
    models.Base.metadata.create_all(bind=engine)
    log.info("application_starting")
    yield
    log.info("application_stopped")


app = FastAPI(title="Job Application Tracker", version="2.0.0", lifespan=lifespan)

app.include_router(applications.router, prefix="/api/v1")
app.include_router(sync.router, prefix="/api/v1")
app.include_router(classify.router, prefix="/api/v1")

# Allow frontend to connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": str(exc)})


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    log.warning("auth_error", path=request.url.path, error=str(exc))
    return _error_response(401, exc)


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    log.error("provider_error", path=request.url.path, status_code=exc.status_code, error=str(exc))
    return _error_response(404 if exc.status_code == 404 else 502, exc)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    log.error("store_error", path=request.url.path, error=str(exc))
    return _error_response(500, exc)


@app.exception_handler(JobSyncError)
async def job_sync_error_handler(request: Request, exc: JobSyncError):
    log.error("job_sync_error", path=request.url.path, error=str(exc))
    return _error_response(500, exc)


@app.get("/")
async def root():
    return {"message": "Job Application Tracker API"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
