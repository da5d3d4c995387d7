# main.py - Signaling relay

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
from dotenv import load_dotenv
import logging
import uvicorn

# Import route modules
from routes.room_management import router as room_router
from routes.signaling import router as signaling_router
from config.settings import Settings, load_settings, validate_environment
from models.schemas import StatusResponse
from signaling import SignalingHub

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle app startup and shutdown"""
    # Startup
    logger.info("Starting up signaling relay")
    try:
        if app.state.config_error is not None:
            raise app.state.config_error
        app.state.settings = validate_environment(app.state.settings)
        logging.getLogger().setLevel(app.state.settings.log_level)
        logger.info("Environment validation passed")
    except Exception as e:
        logger.error(f"Environment validation failed: {e}")
        raise

    yield

    # Shutdown
    hub = app.state.hub
    logger.info(
        f"Shutting down signaling relay ({hub.connections.count()} connections, "
        f"{len(hub.rooms.list_rooms())} rooms)"
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    config_error = None
    if settings is None:
        try:
            settings = load_settings()
        except RuntimeError as e:
            # Reported by the lifespan so the module still imports
            config_error = e
            settings = Settings.model_construct()

    app = FastAPI(
        title="Signaling Relay",
        description="Room presence and WebRTC signaling relay",
        version="1.0.0",
        lifespan=lifespan,
        # Docs are disabled in production
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.settings = settings
    app.state.config_error = config_error
    app.state.hub = SignalingHub(
        strict=settings.strict,
        evict_superseded=settings.evict_superseded,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(signaling_router, tags=["Signaling"])
    app.include_router(room_router, prefix="/api", tags=["Room Management"])

    @app.get("/")
    async def root():
        return {
            "message": "Backend is Running!",
            "status": "running",
            "version": "1.0.0",
            "environment": settings.environment,
            "endpoints": {
                "signaling": "/ws",
                "status": "/status",
                "list_rooms": "/api/rooms",
                "room_info": "/api/room/{room_id}",
                "health": "/health"
            }
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "environment": settings.environment,
        }

    @app.get("/status", response_model=StatusResponse)
    async def status_check():
        return app.state.hub.status()

    @app.exception_handler(500)
    async def internal_server_error_handler(request, exc):
        logger.error(f"Internal server error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred"
            }
        )

    @app.exception_handler(404)
    async def not_found_handler(request, exc):
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not found",
                "message": getattr(exc, "detail", "The requested endpoint does not exist"),
                "available_endpoints": [
                    "/ws",
                    "/status",
                    "/api/rooms",
                    "/api/room/{room_id}",
                    "/health"
                ]
            }
        )

    return app


app = create_app()

if __name__ == "__main__":
    settings = app.state.settings
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        access_log=True,
        # State is process-local, so a single worker only
        workers=1,
    )
