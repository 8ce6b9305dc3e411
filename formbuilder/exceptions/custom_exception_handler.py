from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from formbuilder.constants.error import ERROR
from formbuilder.exceptions.custom_exception import CustomException


def error_body(message: str, errors=None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def custom_exception_handler(request, exc: CustomException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors)
    )


def http_exception_handler(request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message = ERROR.ROUTE_NOT_FOUND if exc.detail == "Not Found" else str(exc.detail)
    elif exc.status_code == 405:
        message = ERROR.METHOD_NOT_ALLOWED
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None)
    )
