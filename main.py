"""
Account-link callback server — application entry point.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from api.middleware import register_middleware
from config.settings import Settings, config
from connectors.coordinator import AuthorizationCoordinator
from connectors.credential_store import CredentialStore
from connectors.encryption import CredentialCipher
from connectors.github import GitHubConnector
from connectors.pending_links import PendingLinkRegistry
from connectors.routes import router as link_router
from connectors.service import LinkService
from database.session import init_db

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "aiosqlite", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def build_link_service(settings: Settings = config) -> LinkService:
    """Wire registry, store, connector and coordinator from configuration."""
    registry = PendingLinkRegistry(ttl_seconds=settings.link_ttl_seconds)
    store = CredentialStore(cipher=CredentialCipher(settings.token_encryption_key))
    coordinator = AuthorizationCoordinator(registry, store, GitHubConnector(settings))
    return LinkService(coordinator, store)


def create_app(link_service: Optional[LinkService] = None) -> FastAPI:
    app = FastAPI(
        title="GitHub Account Link",
        version="1.0.0",
        description="OAuth2 callback server linking chat identities to GitHub accounts.",
    )

    register_middleware(app)
    app.include_router(link_router)

    app.state.link_service = link_service
    app.state.coordinator = link_service.coordinator if link_service else None
    app.state.sweeper = None

    @app.on_event("startup")
    async def on_startup():
        if app.state.link_service is None:
            config.require_oauth()
            await init_db()
            service = build_link_service(config)
            app.state.link_service = service
            app.state.coordinator = service.coordinator

        registry = app.state.coordinator.registry
        app.state.sweeper = asyncio.create_task(registry.run_sweeper())
        logger.info("Callback server ready at %s (link TTL %ss)", config.base_url, registry.ttl_seconds)

    @app.on_event("shutdown")
    async def on_shutdown():
        sweeper = app.state.sweeper
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
