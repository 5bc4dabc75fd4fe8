import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.deps import get_settings
from src.api.routes import public_newsletter
from src.app_shell.config import validate_ops_rules
from src.app_shell.context import ServiceContext
from src.rules.loader import load_rules
from src.shell.http.health import (
    DatabaseCheck,
    HealthCheckRegistry,
    StartupCheck,
    create_health_router,
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
MSG_INVALID_REQUEST = "Invalid request format."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service context once at startup and close it at shutdown."""
    ctx: ServiceContext | None = getattr(app.state, "ctx", None)
    owns_context = ctx is None

    if ctx is None:
        settings = get_settings()
        # Fail fast on unusable configuration
        try:
            rules = load_rules(settings.rules_path)
            validate_ops_rules(rules, settings.data_dir)
            ctx = ServiceContext.create(settings, rules)
        except Exception as e:
            logger.critical("Startup failed: %s", e)
            raise
        logger.info("Rules loaded from %s", settings.rules_path)
        app.state.ctx = ctx

    registry: HealthCheckRegistry = app.state.health
    registry.register(DatabaseCheck(ctx.repo.ping))
    registry.mark_started()

    yield

    registry.clear()
    registry.register(StartupCheck(registry))
    if owns_context:
        ctx.close()
        app.state.ctx = None


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same ``{message}`` shape as every other error."""
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": MSG_INVALID_REQUEST},
    )


def create_app(ctx: ServiceContext | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Passing ``ctx`` skips config loading and reuses the given collaborators.
    """
    app = FastAPI(
        title="Newsletter Opt-In API",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.ctx = ctx

    registry = HealthCheckRegistry()
    registry.register(StartupCheck(registry))
    app.state.health = registry

    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]

    app.include_router(public_newsletter.router, tags=["Newsletter"])
    app.include_router(create_health_router(version=VERSION))

    # CORS (Allow Frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[get_settings().public_site_url],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    return app


app = create_app()
