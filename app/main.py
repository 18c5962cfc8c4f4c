from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from .api import deploy, health, tokens, transactions, wallet_requirement, wallets
from .config import Settings, settings as default_settings
from .container import Services, build_services
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

logger = structlog.stdlib.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.secret_values)
        if app.state.services is None:
            app.state.services = build_services(settings)
        if settings.queue_worker_enabled:
            await app.state.services.queue.start()
        logger.info("token_launcher_started", network=settings.base_network)
        try:
            yield
        finally:
            await app.state.services.close()

    app = FastAPI(
        title="Token Launcher API",
        description="Token deployment pipeline for Base",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    # Added last runs first: request logging wraps the header middleware
    app.add_middleware(SecurityHeadersMiddleware, allow_origins=settings.allowed_origin_list)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, tags=["Health"])
    app.include_router(deploy.router, tags=["Deploy"])
    app.include_router(transactions.router, tags=["Transactions"])
    app.include_router(tokens.router, tags=["Tokens"])
    app.include_router(wallet_requirement.router, tags=["Config"])
    app.include_router(wallets.router, tags=["Wallets"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "Token Launcher API",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=True,
        log_level=default_settings.log_level.lower()
    )
