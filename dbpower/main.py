from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dbpower.config.logging import get_logger, setup_logging
from dbpower.config.settings import settings
from dbpower.infra.database import close_database
from dbpower.site.routes import countdown_router, sitemap_router
from dbpower.v1.account.routes import router as account_router
from dbpower.v1.core.exceptions import (
    RequestContextMiddleware,
    register_exception_handlers,
)
from dbpower.v1.deletions.routes import router as deletions_router
from dbpower.v1.events.routes import router as events_router
from dbpower.v1.healthz import router as health_router
from dbpower.v1.hooks.routes import router as hooks_router
from dbpower.v1.proxy.routes import router as proxy_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting service", environment=settings.environment)
    yield
    await close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Edge handlers and deletion queue processing for DBPower",
        version=settings.version,
        debug=settings.debug,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "X-Client-Info",
            "Apikey",
            "X-API-Key",
        ],
    )

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(deletions_router, prefix="/v1")
    app.include_router(proxy_router, prefix="/v1")
    app.include_router(hooks_router, prefix="/v1")
    app.include_router(events_router, prefix="/v1")
    app.include_router(account_router, prefix="/v1")
    app.include_router(countdown_router, prefix="/v1")
    app.include_router(sitemap_router)

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dbpower.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
