"""
AI Study Helper API

Account registration/login, an AI completion proxy with a per-account daily
limit, and a per-account history of study results.
"""
from dotenv import load_dotenv
load_dotenv()

import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from study_helper.api.routes import ai, auth, history, users
from study_helper.core.clock import Clock, as_aware_utc, utcnow
from study_helper.core.config import Settings
from study_helper.core.errors import AppError
from study_helper.core.throttle import RequestThrottle, throttle
from study_helper.db.base import Base
from study_helper.db.session import build_engine, build_session_factory
from study_helper.services.completion_client import CompletionClient
from study_helper.utils.auth import PasswordHasher, TokenService
import study_helper.models  # noqa: F401 register all models with Base

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,  # Override any existing configuration (uvicorn installs its own)
    )


def run_migrations(database_url: str) -> None:
    """Run Alembic migrations. Fails startup if they fail, so the DB is never left out of sync."""
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found, skipping Alembic migrations")
        return
    try:
        alembic_cfg = Config(str(alembic_ini))
        alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)
        command.upgrade(alembic_cfg, "head")
        logger.info("Alembic migrations completed successfully")
    except Exception as e:
        logger.exception("Alembic migration failed: %s", e)
        raise


def _error_response(status_code: int, message: str, extra: Optional[dict] = None) -> JSONResponse:
    body = {"success": False, "error": message}
    if extra:
        body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _error_response(exc.status_code, exc.message, exc.extra)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        else:
            message = "Invalid request"
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal server error")


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    completion_client: Optional[CompletionClient] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="AI Study Helper API")

    engine = build_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.clock = clock or utcnow
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.token_service = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(days=settings.token_lifetime_days),
        clock=lambda: as_aware_utc(app.state.clock()),
    )
    app.state.completion_client = completion_client or CompletionClient(
        settings.groq_api_key,
        base_url=settings.groq_base_url,
        model=settings.groq_model,
        temperature=settings.groq_temperature,
        max_tokens=settings.groq_max_tokens,
        timeout=settings.groq_timeout_seconds,
    )
    app.state.throttle = RequestThrottle(
        {
            "auth": settings.throttle_auth,
            "ai": settings.throttle_ai,
            "api": settings.throttle_api,
        },
        enabled=settings.throttle_enabled,
    )

    @app.on_event("startup")
    def startup_event():
        """Create tables, then optionally run Alembic migrations."""
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        if settings.run_migrations:
            run_migrations(settings.database_url)
        if not settings.groq_api_key:
            logger.warning("GROQ_API_KEY is not set; /api/ai/request will fail until it is configured")

    @app.on_event("shutdown")
    def shutdown_event():
        engine.dispose()

    install_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        # Browsers reject credentialed requests to a wildcard origin
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "AI Study Helper API is running..."

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    api_throttle = [Depends(throttle("api"))]
    app.include_router(auth.router, prefix="/api/user", tags=["Auth"], dependencies=api_throttle)
    app.include_router(users.router, prefix="/api/user", tags=["Users"], dependencies=api_throttle)
    app.include_router(ai.router, prefix="/api/ai", tags=["AI"], dependencies=api_throttle)
    app.include_router(history.router, prefix="/api/history", tags=["History"], dependencies=api_throttle)

    return app
