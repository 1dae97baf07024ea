import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from buildersapi import containers
from buildersapi.config import settings
from buildersapi.core.exception_handlers import (
    handle_base_api_exception,
    handle_http_exception,
    handle_unexpected_error,
    handle_validation_error,
)
from buildersapi.core.exceptions import BaseAPIException
from buildersapi.core.logging_middleware import LoggingMiddleware
from buildersapi.logging_config import setup_logging
from buildersapi.routers import (
    ad_router,
    admin_router,
    cron_router,
    forecast_router,
    health_router,
    reward_router,
    service_listing_router,
    token_router,
)

logger = logging.getLogger("buildersapi")


def create_app() -> FastAPI:
    load_dotenv("buildersapi/.env")
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME)
    app.container = containers.Container()  # type: ignore

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    for module in (
        health_router,
        token_router,
        ad_router,
        service_listing_router,
        forecast_router,
        reward_router,
        admin_router,
        cron_router,
    ):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
