"""Cardflow - Card Issuance Request API."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.services.errors import CardflowError, InvalidTransition, StorageFailure, Unauthorized

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create tables
    from app.database import Base, engine

    # Import all models so they're registered with Base
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_name} started")

    yield
    # Shutdown: cleanup if needed


app = FastAPI(
    title=settings.app_name,
    description="Track card profiles and card issuance requests from branch to dispatch",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CardflowError)
async def cardflow_error_handler(request: Request, exc: CardflowError):
    """Render service errors as JSON responses."""
    if isinstance(exc, StorageFailure):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc.__cause__}")

    content = {"detail": exc.detail}
    if isinstance(exc, InvalidTransition):
        content["current_status"] = exc.current_status
        content["allowed_next"] = exc.allowed_next

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


# Import and include routers
from app.api import auth, card_profiles, card_requests  # noqa: E402

app.include_router(auth.router, prefix="/api")
app.include_router(card_profiles.router, prefix="/api")
app.include_router(card_requests.router, prefix="/api")
