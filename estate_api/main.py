import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from estate_api.core.config import settings
from estate_api.core.database import build_engine, build_session_factory, init_db
from estate_api.core.logging import setup_logging
from estate_api.models.base import utcnow
from estate_api.routers import admin, auth, properties, users

logger = logging.getLogger(__name__)


def create_app(session_factory: Optional[sessionmaker] = None) -> FastAPI:
    """
    Build the application. The database handle is created here (or passed in)
    and shared with request handlers through ``app.state``.
    """
    setup_logging()

    engine = None
    if session_factory is None:
        engine = build_engine(settings.DATABASE_URL)
        session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            init_db(engine)
        logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)
        yield
        if engine is not None:
            engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Property listing, search and moderation API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory

    # CORS middleware
    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "Accept"],
    )

    @app.middleware("http")
    async def request_deadline(request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Request %s %s exceeded %ss", request.method, request.url.path,
                           settings.REQUEST_TIMEOUT_SECONDS)
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": "Request timed out"},
            )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"detail": "Internal server error"}
        if settings.DEBUG:
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    # Include routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(properties.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1/admin")

    @app.get("/")
    def root():
        return {
            "message": "Estate Listings API",
            "version": "1.0.0",
            "status": "active",
            "documentation": "/docs",
        }

    @app.get("/health")
    def health_check():
        db = app.state.session_factory()
        try:
            db.execute(text("SELECT 1"))
            database = "connected"
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            database = "unreachable"
        finally:
            db.close()

        return {
            "status": "healthy" if database == "connected" else "degraded",
            "service": settings.APP_NAME,
            "database": database,
            "timestamp": utcnow(),
        }

    return app


app = create_app()
