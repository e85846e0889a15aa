# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI Application - Component Registry API
Serves installable component bundles and dependency resolutions
"""
# Load environment variables from .env file (local development)
from dotenv import load_dotenv
from pathlib import Path as _PathForEnv
_env_path = _PathForEnv(__file__).parent.parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace import __version__
from marketplace.api import registry
from marketplace.core.config import Config, get_config
from marketplace.core.errors import MarketplaceError, sanitize_error_for_user
from marketplace.core.logging import get_logger
from marketplace.services.registry import DetachedTaskRunner
from marketplace.services.registry_service import RegistryService, build_store

logger = get_logger("marketplace.main")

# Seconds to wait for in-flight usage writes at shutdown
SHUTDOWN_DRAIN_TIMEOUT = 5.0


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Configuration override (defaults to get_config())
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup/shutdown.

        Startup stores the shared HTTP client, the store and the registry
        service in app.state for dependency injection. Shutdown drains
        detached usage writes and closes the client.
        """
        client = httpx.AsyncClient(follow_redirects=True)
        runner = DetachedTaskRunner()
        store = build_store(config, client)
        app.state.http_client = client
        app.state.task_runner = runner
        app.state.registry_service = RegistryService(store, client, config, runner)
        logger.info(
            f"Registry service started (store backend: {config.store_backend})"
        )
        try:
            yield
        finally:
            await runner.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
            await client.aclose()
            logger.info("Registry service stopped")

    app = FastAPI(
        title="Component Registry",
        description="Resolves component dependency trees into installable bundles",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        body = exc.to_dict()
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            body["message"] = sanitize_error_for_user(exc, include_type=False)
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.get("/health")
    async def health():
        """Health check"""
        return {"status": "healthy", "service": "registry"}

    app.include_router(registry.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.service_host, port=config.service_port)
