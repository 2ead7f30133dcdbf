"""FastAPI application factory with lifespan management."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from ouroboros.api.errors import install_error_handlers
from ouroboros.callbacks import LoggingCallback
from ouroboros.config import OuroborosConfig
from ouroboros.config import config as _default_config
from ouroboros.core.workspace import Workspace
from ouroboros.llm.client import ProviderRouter
from ouroboros.settings import SettingsHandle
from ouroboros.version import __version__


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


logger = logging.getLogger(__name__)


def _lifespan(
    config: OuroborosConfig,
    settings: Optional[SettingsHandle],
    router: Optional[ProviderRouter],
    preset: Optional[str],
):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown."""
        # ── Startup ──
        logger.info(f"Ouroboros v{__version__} starting...")
        workspace = Workspace.create(
            settings=settings,
            router=router,
            config=config,
            callbacks=[LoggingCallback()],
            preset=preset,
        )
        app.state.workspace = workspace
        app.state.engine = workspace.engine
        logger.info(f"Ouroboros v{__version__} ready, {len(workspace.store)} widget(s) on canvas")

        yield

        # ── Shutdown ──
        logger.info("Ouroboros shutting down...")
        await workspace.bridge.runner.drain()

    return lifespan


def create_app(
    config: Optional[OuroborosConfig] = None,
    settings: Optional[SettingsHandle] = None,
    router: Optional[ProviderRouter] = None,
    preset: Optional[str] = "onboarding",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Tests pass an explicit config, settings handle and router; the server
    entry point uses the environment-driven defaults.
    """
    config = config or _default_config
    logging.basicConfig(level=config.log_level.upper())

    app = FastAPI(
        title="Ouroboros",
        description="A canvas of UI widgets planned, written and placed by language models.",
        version=__version__,
        lifespan=_lifespan(config, settings, router, preset),
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    install_error_handlers(app)

    # Routes
    from ouroboros.api.routes import health, requests, widgets, canvas, settings as settings_routes
    app.include_router(health.router, prefix="/v1")
    app.include_router(requests.router, prefix="/v1")
    app.include_router(widgets.router, prefix="/v1")
    app.include_router(canvas.router, prefix="/v1")
    app.include_router(settings_routes.router, prefix="/v1")

    return app
