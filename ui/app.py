"""FastAPI application factory."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import load_config
from core.errors import ClassFormatError
from core.health import HealthChecker, check_event_loop, create_resource_check
from internal.logging import LogLevel, StructuredLogger, get_logger
from ui.routes import api, health
from utils.crash import create_async_handler

VERSION = "1.0.0"


def create_app(config=None):
    """Create and configure the FastAPI application."""
    config = config or load_config()

    StructuredLogger.configure(min_level=LogLevel.parse(config.logging.level))
    logger_instance = get_logger("http")
    health_checker = HealthChecker()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger_instance.info("Application starting", version=VERSION)
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(create_async_handler(logger_instance))
        yield
        logger_instance.info("Application shutdown complete")

    app = FastAPI(
        title="classlens",
        version=VERSION,
        description="class file and DEX inspector",
        lifespan=lifespan,
    )

    health_checker.register("event_loop", check_event_loop, critical=True)
    health_checker.register("resource", create_resource_check(config.inspector.default_path), critical=False)

    api.init(config.inspector)
    health.init(health_checker)

    app.include_router(api.router)
    app.include_router(health.router)

    @app.exception_handler(ClassFormatError)
    async def class_format_error(request: Request, exc: ClassFormatError):
        logger_instance.warn("Rejected input file", error=exc, path=request.url.path, context=exc.context)
        return JSONResponse(status_code=422, content=exc.to_dict())

    return app
