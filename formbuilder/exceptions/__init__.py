from formbuilder.exceptions.custom_exception import (
    CustomException,
    ValidationException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    RateLimitException,
)
from formbuilder.exceptions.custom_exception_handler import custom_exception_handler, http_exception_handler, error_body
from formbuilder.exceptions.validation_exception_handler import validation_exception_handler

__all__ = [
    "CustomException",
    "ValidationException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "RateLimitException",
    "custom_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "error_body",
]
