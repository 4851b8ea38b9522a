from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import ClockProtocol, SystemClock
from database.engine import dispose_engine, get_session_factory
from predictive_maintenance import (
    MaintenanceEngineConfig,
    MaintenanceScanner,
    ReadCache,
    get_default_config,
)
from maintenance_api.router import router as maintenance_router


def create_app(
    session_factory: Optional[async_sessionmaker] = None,
    config: Optional[MaintenanceEngineConfig] = None,
    clock: Optional[ClockProtocol] = None,
    scanner: Optional[MaintenanceScanner] = None,
) -> FastAPI:
    """
    Build the API application.

    Without a session_factory the process-wide engine from
    DATABASE_URL is used and disposed on shutdown.
    """
    owns_engine = session_factory is None
    session_factory = session_factory or get_session_factory()
    config = config or get_default_config()
    clock = clock or SystemClock()
    cache = ReadCache(config.cache.ttl_seconds, clock=clock, enabled=config.cache.enabled)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_engine:
            await dispose_engine()

    app = FastAPI(
        title="Predictive Maintenance Alerts API",
        description="MTBF and stock based maintenance alerting.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS (Allow local frontend development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session_factory = session_factory
    app.state.config = config
    app.state.clock = clock
    app.state.cache = cache
    app.state.scanner = scanner or MaintenanceScanner(session_factory, config=config, clock=clock, cache=cache)

    app.include_router(maintenance_router)

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Predictive Maintenance API is running"}

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
