"""Main FastAPI application for the learner tracking service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog
from prometheus_fastapi_instrumentator import Instrumentator

from learntrack.core.config import settings
from learntrack.core.logging import setup_logging
from learntrack.core.database import init_db, get_db
from learntrack.core.dependencies import get_cache
from learntrack.core.exceptions import AppError, app_error_handler
from learntrack.realtime.feed import get_change_feed
from learntrack.routers import admin, auth, chat, checkin, dashboard, lessons, profile, tasks

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager."""
    logger.info("Starting LearnTrack", version=settings.APP_VERSION, environment=settings.ENVIRONMENT)
    
    if settings.AUTO_CREATE_TABLES:
        await init_db()
    
    app.state.cache = await get_cache()
    
    logger.info("LearnTrack initialized successfully")
    
    yield
    
    logger.info("Shutting down LearnTrack")
    await get_change_feed().drain()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="LearnTrack",
        description="Learner progress, task review, daily checkins and classroom chat",
        version=settings.APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url="/redoc" if not settings.is_production() else None,
    )
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.add_exception_handler(AppError, app_error_handler)
    
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
    app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
    app.include_router(lessons.router, prefix="/api/lessons", tags=["lessons"])
    app.include_router(checkin.router, prefix="/api/checkin", tags=["checkin"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
    
    # Prometheus metrics
    if settings.ENABLE_METRICS:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")
    
    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint."""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "status": "operational"
        }
    
    @app.get("/health", tags=["health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        health_status = {
            "status": "healthy",
            "service": settings.SERVICE_NAME,
            "version": settings.APP_VERSION,
            "checks": {}
        }
        
        try:
            async for db in get_db():
                await db.execute(text("SELECT 1"))
                health_status["checks"]["database"] = "healthy"
        except Exception as e:
            health_status["checks"]["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "degraded"
        
        try:
            cache = await get_cache()
            await cache.exists("health_check")
            health_status["checks"]["cache"] = "healthy"
        except Exception as e:
            health_status["checks"]["cache"] = f"unhealthy: {str(e)}"
            health_status["status"] = "degraded"
        
        health_status["checks"]["chat_subscriptions"] = get_change_feed().subscription_count()
        
        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)
    
    @app.get("/config", tags=["debug"])
    async def get_config():
        """Get current configuration (development only)."""
        if settings.is_production():
            return JSONResponse(
                content={"error": "Not available in production"},
                status_code=403
            )
        
        return {
            "environment": settings.ENVIRONMENT,
            "gamification": {
                "points": {
                    "daily_checkin": settings.POINTS_DAILY_CHECKIN
                }
            },
            "views": {
                "dashboard_tasks": settings.DASHBOARD_TASK_LIMIT,
                "dashboard_lessons": settings.DASHBOARD_LESSON_LIMIT,
                "profile_history": settings.PROFILE_HISTORY_LIMIT
            },
            "password_min_length": settings.PASSWORD_MIN_LENGTH,
            "cache_ttl": settings.DASHBOARD_CACHE_TTL
        }
    
    return app


# Default app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "learntrack.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_config=None  # Use structlog instead
    )
