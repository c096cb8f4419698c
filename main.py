"""
SGI Compliance Tracker - FastAPI Application Entry Point

This is the main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings, settings as default_settings
from app.database import close_db, create_engine, create_session_factory, init_db
from app.routers import dashboard, evidence, realtime, registries, requirements
from app.services.data_service import build_data_service
from app.services.evidence_storage import LOCAL_URL_PREFIX, EvidenceStorage, StorageProvider
from app.services.websocket_manager import WebSocketManager
from app.utils.error_handling import setup_exception_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO if not default_settings.debug else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def init_app_state(
    app: FastAPI,
    config: Settings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """Build the collaborators and keep them on ``app.state``."""
    data_service = build_data_service(config, session_factory)
    app.state.settings = config
    app.state.data_service = data_service
    app.state.evidence_storage = EvidenceStorage(config)
    app.state.ws_manager = WebSocketManager(data_service)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for FastAPI.
        Handles startup and shutdown events.
        """
        # Startup
        logger.info(f"Starting {config.app_name}...")
        logger.info(f"Environment: {config.app_env}")

        engine = None
        session_factory = None
        if not config.uses_local_store:
            engine = create_engine(config)
            session_factory = create_session_factory(engine)
            await init_db(engine)
            logger.info("Database tables initialized")

        init_app_state(app, config, session_factory)

        yield

        # Shutdown
        logger.info(f"Shutting down {config.app_name}...")
        if engine is not None:
            await close_db(engine)
            logger.info("Database connections closed")

    app = FastAPI(
        title=config.app_name,
        description="Management-system compliance tracker: requirements, monthly execution plans and evidence review",
        version="1.0.0",
        docs_url="/api/docs" if config.is_development else None,
        redoc_url="/api/redoc" if config.is_development else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    # Locally stored evidence files
    if config.storage_backend.lower() == StorageProvider.LOCAL.value:
        app.mount(
            LOCAL_URL_PREFIX,
            StaticFiles(directory=config.storage_local_path, check_dir=False),
            name="uploads",
        )

    app.include_router(requirements.router)
    app.include_router(evidence.router)
    app.include_router(dashboard.router)
    app.include_router(registries.router)
    app.include_router(realtime.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        data_service = getattr(app.state, "data_service", None)
        return {
            "status": "healthy",
            "persistence": data_service.backend if data_service else "not initialized",
        }

    @app.get("/api/v1")
    async def api_root():
        """API v1 root endpoint."""
        return {
            "message": f"Welcome to {config.app_name} API v1",
            "endpoints": {
                "requirements": "/api/v1/requirements",
                "evidence": "/api/v1/evidence",
                "dashboard": "/api/v1/dashboard",
                "areas": "/api/v1/areas",
                "plants": "/api/v1/plants",
                "standards": "/api/v1/standards",
                "users": "/api/v1/users",
                "settings": "/api/v1/settings",
                "websocket": "/ws/{requirements|users|standards|settings}",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.is_development,
    )
