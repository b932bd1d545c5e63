from fastapi import FastAPI, Depends, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.api.v1.api import api_router
from app.core.error_handler import setup_error_handlers
from app.core.logging import RequestLoggingMiddleware, setup_logging, db_logger
from app.db.database import dispose_db, get_db, init_db, ping_db

import logging

if not settings.TESTING:
    setup_logging()
logger = logging.getLogger(__name__)

class WelcomeResponse(BaseModel):
    message: str

class HealthResponse(BaseModel):
    status: str
    database: str
    version: str

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle startup and shutdown events.
    """
    logger.info("Starting up application...")
    await init_db()

    yield

    logger.info("Shutting down application...")
    await dispose_db()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    NavExpo Event Registration API.

    ## Features

    * **Authentication**
        * JWT-based authentication
        * Token refresh mechanism
        * Organizer and Guest self-registration

    * **Events**
        * Create, read, replace, delete and search events
        * Only the organizer (or an Admin) may change an event

    * **Registration**
        * Anonymous or authenticated registration
        * Capacity is never exceeded, even under concurrent registrations
        * One registration per email per event, letter case ignored
        * Organizers can withdraw attendees and inspect roster stats

    ## Authentication

    1. Get a token pair using the `/auth/login` endpoint
    2. Include the access token in the `Authorization` header:
       `Authorization: Bearer <token>`
    3. Use the refresh token to get new access tokens

    ## Error Handling

    Registration failures carry a machine-readable `reason`:
    * 404 `NotFound`
    * 409 `EventFull` or `DuplicateRegistration`
    * 503 `StoreUnavailable` or `Timeout` (safe to retry)
    """,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs" if settings.SHOW_DOCS else None,
    redoc_url=f"{settings.API_V1_STR}/redoc" if settings.SHOW_DOCS else None,
    lifespan=lifespan
)

# Add CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(RequestLoggingMiddleware)

setup_error_handlers(app)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get(
    "/",
    response_model=WelcomeResponse,
    status_code=status.HTTP_200_OK,
    summary="Root endpoint",
    description="Welcome endpoint for the API",
    responses={
        200: {
            "description": "Welcome message",
            "content": {
                "application/json": {
                    "example": {"message": "Welcome to NavExpo Event Registration API"}
                }
            }
        }
    }
)
async def root() -> WelcomeResponse:
    """Root endpoint returning a welcome message."""
    return WelcomeResponse(message="Welcome to NavExpo Event Registration API")

@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Database liveness probe. Returns 503 when the database cannot be reached.",
    responses={503: {"description": "Database unavailable"}}
)
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await ping_db(db)
    except Exception as e:
        db_logger.error("Health check failed", extra={"error": str(e)})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable", "version": settings.VERSION},
        )
    return HealthResponse(status="healthy", database="ok", version=settings.VERSION)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
