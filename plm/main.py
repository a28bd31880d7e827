"""FastAPI application entry point.

Wiring only: lifespan, exception handlers, middleware, routers. See
plm.core.lifespan and plm.core.exception_handlers.

Settings are loaded inside create_app() so that tests can set env (and
clear the get_settings cache) before calling create_app().
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plm.api.v1 import api_router
from plm.core.config import get_settings
from plm.core.exception_handlers import register_exception_handlers
from plm.core.lifespan import create_lifespan
from plm.middleware import RequestIDMiddleware


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )

    register_exception_handlers(app)

    # First added = innermost. Request ID wraps CORS so every response carries it.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
