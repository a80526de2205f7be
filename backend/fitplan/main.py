import warnings
# Suppress Pydantic V1 compatibility warnings
warnings.filterwarnings("ignore", category=UserWarning, module="langchain_core._api.deprecation")
warnings.filterwarnings("ignore", category=UserWarning, module="pydantic.v1")

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fitplan.config import LOG_LEVEL
from fitplan.database import engine, Base
import fitplan.models  # noqa: F401
from fitplan.api import plans, adjustments, streak
from fitplan.exceptions import CollaboratorFailure, PlanNotFound, RateLimited

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

ALEMBIC_INI = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "alembic.ini")


# Run Alembic migrations on startup
def run_migrations():
    """Run pending Alembic migrations, then make sure every table exists."""
    try:
        from alembic.config import Config
        from alembic import command
        alembic_cfg = Config(ALEMBIC_INI)
        command.upgrade(alembic_cfg, "head")
        logger.info("[Alembic] Migrations applied successfully")
    except Exception as e:
        logger.warning(f"[Alembic] Migration failed, falling back to create_all: {e}")

    Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[Startup] Database: {engine.url.render_as_string(hide_password=True)}")
    run_migrations()
    yield


app = FastAPI(title="FitPlan Engine", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlanNotFound)
def plan_not_found_handler(request: Request, exc: PlanNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(RateLimited)
def rate_limited_handler(request: Request, exc: RateLimited):
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc), "wait_seconds": exc.wait_seconds},
        headers={"Retry-After": str(exc.wait_seconds)},
    )


@app.exception_handler(CollaboratorFailure)
def collaborator_failure_handler(request: Request, exc: CollaboratorFailure):
    logger.error(f"[API] Customization service failed for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "AI customization is unavailable right now. Please try again.", "retryable": True},
    )


app.include_router(plans.router)
app.include_router(adjustments.router)
app.include_router(streak.router)


# Root endpoint
@app.get("/")
def root():
    return {
        "message": "Welcome to FitPlan Engine API",
        "docs": "/docs",
        "redoc": "/redoc"
    }


# Health check endpoint
@app.get("/health")
def health_check():
    return {"status": "healthy", "message": "API is running"}
