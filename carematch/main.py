import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Type

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.config import (
    APP_ADDR,
    APP_PORT,
    AUTO_CREATE_SCHEMA,
    COMMIT_HASH,
    ENV,
    LOG_LEVEL,
)
from carematch.database import close_db, get_db, init_db
from carematch.exceptions import (
    CapacityExceededError,
    CarematchError,
    ConflictError,
    FanoutError,
    NoCandidateError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from carematch.routers.admin import router as admin_router
from carematch.routers.assignments import router as assignments_router
from carematch.routers.conversations import router as conversations_router
from carematch.routers.counsellors import router as counsellors_router
from carematch.routers.matches import router as matches_router
from carematch.routers.notifications import router as notifications_router
from carematch.routers.profiles import router as profiles_router
from carematch.routers.sessions import router as sessions_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[Type[CarematchError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    NoCandidateError: 404,
    ConflictError: 409,
    CapacityExceededError: 409,
    PermissionDeniedError: 403,
    FanoutError: 502,
    PersistenceError: 503,
}


def status_for(error: CarematchError) -> int:
    for error_class in type(error).__mro__:
        if error_class in ERROR_STATUS:
            return ERROR_STATUS[error_class]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    # Startup
    await init_db(create_schema=AUTO_CREATE_SCHEMA)
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title="Counsellor Matching Service",
    description="Matches patients with counsellors and carries their conversations",
    version=COMMIT_HASH or "dev",
    lifespan=lifespan,
)


@app.exception_handler(CarematchError)
async def carematch_error_handler(request: Request, exc: CarematchError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message, "context": exc.details},
    )


# Include routers
app.include_router(profiles_router, prefix="/api/profiles", tags=["profiles"])
app.include_router(counsellors_router, prefix="/api/counsellors", tags=["counsellors"])
app.include_router(matches_router, prefix="/api/matches", tags=["matching"])
app.include_router(assignments_router, prefix="/api/assignments", tags=["assignments"])
app.include_router(sessions_router, prefix="/api/sessions", tags=["sessions"])
app.include_router(
    conversations_router, prefix="/api/conversations", tags=["conversations"]
)
app.include_router(
    notifications_router, prefix="/api/notifications", tags=["notifications"]
)
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, str]:
    """Health check endpoint with database connectivity."""
    try:
        # Test database connection
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": ENV or "",
        "version": COMMIT_HASH or "",
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=APP_ADDR, port=APP_PORT)
