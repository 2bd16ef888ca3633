from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from tezeus.config import get_settings
from tezeus.shared.database.database import close_database_engine, create_database_engine
from tezeus.shared.exceptions import register_exception_handlers  # central mapping
from tezeus.shared.http.middleware.context_middleware import ContextMiddleware
from tezeus.shared.http.middleware.request_id_middleware import REQUEST_ID_HEADER, RequestIdMiddleware
from tezeus.shared.logging import get_logger, setup_logging
from tezeus.shared.request_context import CONTEXT_HEADERS

from tezeus.conversation.api.routes import router as conversation_router
from tezeus.crm.api.routes import router as tags_router
from tezeus.dashboard.api.routes import router as dashboard_router
from tezeus.messaging.api.routes import functions_router as messaging_functions_router
from tezeus.messaging.api.routes import router as reference_router
from tezeus.shared.health import router as health_router
from tezeus.workspace.api.routes import router as workspace_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_database_engine()
    logger.info("Application started", environment=get_settings().ENVIRONMENT)
    try:
        yield
    finally:
        await close_database_engine()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging()

    app = FastAPI(
        title="Tezeus CRM API",
        version=settings.PROJECT_VERSION,
        lifespan=lifespan,
    )

    # Identity headers → request.state.context + log context (runs inside RequestId)
    app.add_middleware(ContextMiddleware)
    app.add_middleware(RequestIdMiddleware, service=settings.PROJECT_NAME, version=settings.PROJECT_VERSION)

    # CORS (outermost, answers OPTIONS preflight)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "authorization",
            "x-client-info",
            "apikey",
            "content-type",
            REQUEST_ID_HEADER.lower(),
            *CONTEXT_HEADERS,
        ],
        expose_headers=[REQUEST_ID_HEADER],
        allow_credentials=True,
    )

    # Routers
    app.include_router(health_router)
    app.include_router(conversation_router)
    app.include_router(workspace_router)
    app.include_router(messaging_functions_router)
    app.include_router(reference_router)
    app.include_router(dashboard_router)
    app.include_router(tags_router)

    # Centralized error handling → {success:false, error, code, details?, correlation_id?}
    register_exception_handlers(app)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "message": "Tezeus CRM API",
            "docs": "/docs",
            "health": "/health",
        }

    # ---- Custom OpenAPI to document the header context ----
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            routes=app.routes,
        )
        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        for header in CONTEXT_HEADERS:
            schemes[header] = {"type": "apiKey", "in": "header", "name": header}
        schema["security"] = [{header: [] for header in CONTEXT_HEADERS}]
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi

    return app


app = create_app()
