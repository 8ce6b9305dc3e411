from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi import status
from formbuilder.constants.error import ERROR
from formbuilder.exceptions.custom_exception_handler import error_body


def validation_exception_handler(request, exc: RequestValidationError):

    errors = {}

    for err in exc.errors():
        location = [str(part) for part in err["loc"] if part != "body"]
        field = ".".join(location) or "body"

        default_msg = err["msg"]
        if err["type"] == "missing":
            default_msg = f"Field '{field}' is required"

        # First message per field wins
        errors.setdefault(field, default_msg)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ERROR.VALIDATION_FAILED, errors)
    )
