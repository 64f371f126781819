# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import database
from app.config import AUTOMIGRATE, CORS_ALLOWED_ORIGINS, TRUSTED_PROXY_HEADERS, TRUSTED_PROXY_USE_LEFTMOST_IP, logger
from app.ip_allowlist import AllowedHomeIP
from app.middleware.ip_filter_middleware import IPFilterMiddleware
from app.middleware.rate_limit_middleware import RateLimitMiddleware
from app.migrations import MigrationError
from app.migrations.runner import MigrationRunner
from app.responses import error_response
from app.routes.health_routes import router as health_router
from app.security_config import MiddlewarePriority


def register_middlewares(app: FastAPI, entries) -> None:
    """
    Adds middlewares to the app ordered by priority.

    Args:
        app (FastAPI): The application to configure.
        entries: Iterable of (MiddlewarePriority, middleware class, options dict).
                 The lowest priority handles the request first.
    """
    # Starlette wraps each newly added middleware around the ones added before it
    for priority, middleware_class, options in sorted(entries, key=lambda entry: entry[0], reverse=True):
        app.add_middleware(middleware_class, **options)
        logger.debug(f"{middleware_class.__name__} registered with priority {int(priority)}.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Server start: connect to the database and bring the schema up to date
    if database.initialize_db():
        if AUTOMIGRATE:
            try:
                MigrationRunner(database.db).up()
            except MigrationError as e:
                logger.critical(f"Automigrate failed: {e}")
                database.close_db()
                raise
    else:
        logger.critical("Database initialization failed. Application may not function correctly.")
    yield
    database.close_db()


def create_app(allowed_home_ip=None, trusted_headers=None, use_leftmost_ip=None,
               rate_limit_options=None, cors_origins=None, lifespan=lifespan) -> FastAPI:
    """
    Builds the FastAPI application.

    Every argument defaults to the environment configuration from app/config.py;
    tests pass explicit values instead of mutating the environment.
    """
    logger.info("Starting FastAPI application setup.")
    app = FastAPI(lifespan=lifespan)

    if allowed_home_ip is None:
        allowed_home_ip = AllowedHomeIP.from_env()
    if allowed_home_ip.error:
        logger.error(f"ALLOWED_HOME_IP is not a valid CIDR range ({allowed_home_ip.error}), external access is disabled.")
    elif not allowed_home_ip.raw:
        logger.info("ALLOWED_HOME_IP not set, only private network traffic is allowed.")

    trusted_headers = list(trusted_headers) if trusted_headers is not None else list(TRUSTED_PROXY_HEADERS)
    if use_leftmost_ip is None:
        use_leftmost_ip = TRUSTED_PROXY_USE_LEFTMOST_IP
    proxy_options = {"trusted_headers": trusted_headers, "use_leftmost_ip": use_leftmost_ip}

    # --- Request pipeline ---
    register_middlewares(app, [
        (MiddlewarePriority.IP_FILTER, IPFilterMiddleware, dict(allowed_home_ip=allowed_home_ip, **proxy_options)),
        (MiddlewarePriority.RATE_LIMIT, RateLimitMiddleware, dict(rate_limit_options or {}, **proxy_options)),
        (MiddlewarePriority.CORS, CORSMiddleware, {
            "allow_origins": list(cors_origins) if cors_origins is not None else list(CORS_ALLOWED_ORIGINS),
            "allow_methods": ["*"],
            "allow_headers": ["*"],
        }),
    ])

    # --- Include Routers ---
    app.include_router(health_router)

    # --- Global Error Handlers ---
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP Exception caught: {exc.status_code} - {exc.detail} for path: {request.url.path}")
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    logger.info("FastAPI application setup complete.")
    return app


app = create_app()
