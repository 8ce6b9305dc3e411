from fastapi import APIRouter, Request
from formbuilder.middleware.rate_limit_middleware import client_id
from formbuilder.utils.date_utils import utc_now

health_controller = APIRouter()


@health_controller.get("/health", response_model=dict)
def server_life_check(request: Request):
    app_settings = request.app.state.settings
    return {
        "success": True,
        "message": "Server is running",
        "data": {
            "status": "OK",
            "timestamp": utc_now().strftime("%Y-%m-%d %H:%M:%S"),
            "version": app_settings.APP_VERSION,
            "environment": app_settings.APP_ENV,
        },
    }


@health_controller.get("/test-cors", response_model=dict)
def test_cors():
    return {
        "success": True,
        "message": "CORS is working!",
        "data": {"timestamp": utc_now().strftime("%Y-%m-%d %H:%M:%S")},
    }


@health_controller.get("/rate-limit-status", response_model=dict)
def rate_limit_status(request: Request):
    app_settings = request.app.state.settings
    return {
        "success": True,
        "message": "Rate limit status",
        "data": {
            "client": client_id(request),
            "limit": app_settings.RATE_LIMIT_REQUESTS,
            "window": f"{app_settings.RATE_LIMIT_WINDOW} seconds",
            "environment": app_settings.APP_ENV,
        },
    }
