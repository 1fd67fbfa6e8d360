"""
EduConnect: School Management Backend
FastAPI entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.database import get_store
from app.core.errors import AppError
from app.core.logging_config import setup_logging
from app.core.middleware import RequestLoggingMiddleware
from app.core.security import get_password_hash, verify_password
from app.routers import auth, classes, assignments, dashboard, bulletins, users
from app.services.identity import IdentityStore
from app.services.seed import initialize_sample_data
from app.utils.response import app_error_response

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s starting (auth=%s, store=%s)", settings.APP_NAME, settings.AUTH_MODE, settings.STORE_BACKEND)
    if settings.SEED_SAMPLE_DATA:
        identity = IdentityStore(get_store(), get_password_hash, verify_password)
        initialize_sample_data(identity)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="School management backend: classes, assignments, grading and dashboards",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return app_error_response(exc)


# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(classes.router)
app.include_router(assignments.router)
app.include_router(dashboard.router)
app.include_router(bulletins.router)

# Uploaded submission files
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "status": "running",
        "auth_mode": settings.AUTH_MODE,
    }


@app.get("/api/health")
async def health():
    return {"status": "healthy", "auth_mode": settings.AUTH_MODE}
