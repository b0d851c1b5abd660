from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from migration_gateway.api.v1.router import api_router
from migration_gateway.core.config import Settings, get_settings
from migration_gateway.core.errors import GatewayError
from migration_gateway.core.logging import configure_logging, get_module_logger
from migration_gateway.services.legacy import LegacyDirectory, SqlLegacyDirectory
from migration_gateway.services.zitadel import ZitadelClient

logger = get_module_logger()


def create_app(
    settings: Optional[Settings] = None,
    zitadel: Optional[ZitadelClient] = None,
    legacy_directory: Optional[LegacyDirectory] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, settings.is_production)
        logger.info("gateway_started", zitadel_base_url=settings.zitadel_base_url(), env=settings.app_env)
        yield
        app.state.zitadel.close()
        logger.info("gateway_stopped")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.zitadel = zitadel or ZitadelClient.from_settings(settings)
    app.state.legacy_directory = legacy_directory or SqlLegacyDirectory.from_url(settings.legacy_database_url)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        logger.warning("action_request_failed", path=request.url.path, error=type(exc).__name__, status=exc.status_code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    app.include_router(api_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "migration_gateway.main:app",
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
        server_header=False,
    )
