"""Application factory.

Serve with `uvicorn --factory lms.main:create_app`; settings come from the
environment unless a `Settings` instance is passed in.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms.core.errors import ApiError, ErrorCode, register_exception_handlers
from lms.core.logging import RequestLoggingMiddleware, configure_logging
from lms.core.observability import PrometheusMiddleware, metrics_endpoint
from lms.core.settings import Settings, get_settings
from lms.db.session import build_engine, build_session_factory, get_db
from lms.modules.router_registry import include_all_routers

logger = logging.getLogger("lms.app")


def _check_production_settings(settings: Settings) -> None:
    if any(origin.strip() == "*" for origin in settings.allow_origins):
        raise RuntimeError("ALLOW_ORIGINS cannot include '*' in production")
    if settings.jwt_secret.startswith("change_me"):
        raise RuntimeError("JWT_SECRET must be set in production")
    if "change_me" in settings.database_url:
        raise RuntimeError("DATABASE_URL password must be set in production")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(level=settings.log_level)

    allow_origin_regex = None
    if settings.is_production:
        _check_production_settings(settings)
    else:
        # Always allow localhost during development.
        allow_origin_regex = r"^http://(localhost|127\.0\.0\.1)(:\d+)?$"

    app = FastAPI(title=settings.project_name, version=settings.project_version)
    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id", "Accept"],
    )

    # Observability middleware
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["observability"], include_in_schema=False)

    register_exception_handlers(app)
    include_all_routers(app)
    _add_health_routes(app)

    logger.info("app_configured environment=%s", settings.environment)
    return app


def _add_health_routes(app: FastAPI) -> None:
    @app.get("/healthz", tags=["health"])
    def healthcheck(db: Session = Depends(get_db)) -> dict[str, str]:
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("healthcheck_failed", exc_info=exc)
            raise ApiError(503, ErrorCode.INTERNAL_SERVER_ERROR, "Service unavailable") from exc
        return {"status": "ok", "database": "ok"}

    @app.get("/readyz", tags=["health"])
    def readiness(db: Session = Depends(get_db)) -> dict[str, str]:
        try:
            db.execute(text("SELECT 1"))
            result = db.execute(text("SELECT version_num FROM alembic_version")).scalar()
        except SQLAlchemyError as exc:
            raise ApiError(503, ErrorCode.INTERNAL_SERVER_ERROR, "Migrations not applied") from exc
        return {"status": "ok", "alembic_revision": str(result)}

    @app.get("/version", tags=["health"])
    def version(settings: Settings = Depends(get_settings)) -> dict[str, str]:
        return {
            "version": settings.project_version,
            "environment": settings.environment,
        }
