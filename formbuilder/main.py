from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from formbuilder.config.database_config import build_engine, build_session_factory, init_database
from formbuilder.config.env_config import Settings, settings
from formbuilder.config.logger_config import setup_logging
from formbuilder.exceptions import CustomException, custom_exception_handler, http_exception_handler, validation_exception_handler
from formbuilder.middleware.cors_middleware import CorsMiddleware
from formbuilder.middleware.error_middleware import ErrorHandlerMiddleware
from formbuilder.middleware.rate_limit_middleware import RateLimitMiddleware
from formbuilder.middleware.security_middleware import SecurityHeadersMiddleware
from formbuilder.routes.admin_router import admin_controller
from formbuilder.routes.auth_router import auth_controller
from formbuilder.routes.bkash_router import bkash_controller
from formbuilder.routes.export_router import export_controller
from formbuilder.routes.form_router import form_controller
from formbuilder.routes.health_router import health_controller
from formbuilder.routes.payment_router import payment_controller
from formbuilder.routes.settings_router import settings_controller
from formbuilder.routes.submission_router import submission_controller
from formbuilder.routes.upload_router import upload_controller
from formbuilder.services.settings_service import seed_default_settings
from formbuilder.utils.logger_utils import log_info
from formbuilder.utils.rate_limiter import RateLimiter


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_info(context="APP_STARTUP", message=f"Form builder API started ({app.state.settings.APP_ENV})")
    yield
    app.state.engine.dispose()
    log_info(context="APP_SHUTDOWN", message="Database engine disposed")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    # Initialize logging
    setup_logging(app_settings)

    app = FastAPI(
        title="Form Builder API",
        version=app_settings.APP_VERSION,
        docs_url="/api/docs",
        openapi_url="/api/docs/json",
        lifespan=lifespan,
        swagger_ui_parameters={
            "persistAuthorization": True
        }
    )

    engine = build_engine(app_settings)
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.rate_limiter = RateLimiter(app_settings.RATE_LIMIT_REQUESTS, app_settings.RATE_LIMIT_WINDOW)

    init_database(engine)
    db = app.state.session_factory()
    try:
        seed_default_settings(db)
    finally:
        db.close()

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CustomException, custom_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.include_router(health_controller, prefix="/api", tags=["Health"])
    app.include_router(auth_controller, prefix="/api/auth", tags=["Auth"])
    app.include_router(form_controller, prefix="/api/forms", tags=["Forms"])
    app.include_router(submission_controller, prefix="/api/submissions", tags=["Submissions"])
    app.include_router(payment_controller, prefix="/api/payment", tags=["Payments"])
    app.include_router(bkash_controller, prefix="/api/bkash", tags=["bKash"])
    app.include_router(admin_controller, prefix="/api/admin", tags=["Admin"])
    app.include_router(export_controller, prefix="/api/export", tags=["Export"])
    app.include_router(upload_controller, prefix="/api/upload", tags=["Upload"])
    app.include_router(settings_controller, prefix="/api/settings", tags=["Settings"])

    # Last added runs first: error -> security -> CORS -> rate limit -> routes
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter, app_settings=app_settings)
    app.add_middleware(CorsMiddleware, allowed_origins=app_settings.allowed_origins)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ErrorHandlerMiddleware, app_settings=app_settings)

    return app


app = create_app()
