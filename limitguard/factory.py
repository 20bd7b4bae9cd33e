import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .db.dal import Database
from .db.schema import init_db
from .routers import health, limits, rates, transactions
from .services.evaluator import LimitEvaluator
from .services.limits import LimitService
from .services.rates.base import RateSource
from .services.rates.cache_service import build_rate_service


def create_app(
    settings_override: Optional[Settings] = None,
    rate_source: Optional[RateSource] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    rate_source: replaces the source chosen by settings.rate_source.
    """
    settings = settings_override or get_settings()
    init_logging(debug=settings.debug)

    # Schema creation is idempotent so test-injected fresh DBs get their tables
    try:
        init_db(settings.db_path)  # type: ignore[arg-type]
    except Exception:
        logging.getLogger("limitguard").exception("failed to initialize database")
        raise

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )

    # Engine singletons shared by every request
    db = Database(settings.db_path)  # type: ignore[arg-type]
    rate_service = build_rate_service(db, settings, rate_source)
    app.state.settings = settings
    app.state.db = db
    app.state.rate_service = rate_service
    app.state.limit_service = LimitService(db, settings.reference_currency)
    app.state.evaluator = LimitEvaluator(
        db,
        rate_service,
        settings.default_limit,
        serialize=settings.serialize_by_category,
    )

    app.middleware("http")(request_context_middleware)

    app.add_exception_handler(errors.LimitGuardError, errors.domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    app.include_router(health.router)
    app.include_router(transactions.router)
    app.include_router(limits.router)
    app.include_router(rates.router)

    @app.get("/")
    async def root():
        return {"message": "Expense Limit Tracker API", "version": settings.version}

    return app

