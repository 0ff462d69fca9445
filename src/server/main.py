"""HTTP service entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from src.app import App, create_app
from src.config.logging import configure_logging
from src.config.settings import Settings, load_settings
from src.server.router import router

logger = logging.getLogger(__name__)


def create_api(settings: Settings | None = None, *, container: App | None = None) -> FastAPI:
    """Build the FastAPI application.

    The container is created eagerly so in-process test clients can use the app without running
    the lifespan; the lifespan only warms the models cache and closes the HTTP pool at shutdown.
    """

    if container is None:
        container = create_app(settings or load_settings())

    @asynccontextmanager
    async def lifespan(api: FastAPI) -> AsyncIterator[None]:
        if container.settings.has_api_key:
            client = container.llm_client(timeout_s=container.settings.models_fetch_timeout_s)
            container.models_cache.refresh_in_background(client.list_models)
        try:
            yield
        finally:
            logger.info("shutting down")
            await container.models_cache.stop_background()
            await container.aclose()

    api = FastAPI(title="AI-Native Development Environment", version="0.1.0", lifespan=lifespan)
    api.state.container = container
    api.include_router(router)

    web_dir = Path(container.settings.web_dir)
    if web_dir.is_dir():
        api.mount("/", StaticFiles(directory=web_dir, html=True), name="web")
    else:
        logger.warning("web directory %s not found, UI is not served", web_dir)

    return api


def main(host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP service with uvicorn."""

    import uvicorn

    settings = load_settings()
    configure_logging()

    api = create_api(settings)
    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("server starting on %s:%d", bind_host, bind_port)
    uvicorn.run(api, host=bind_host, port=bind_port, log_level="warning")


if __name__ == "__main__":
    main()
