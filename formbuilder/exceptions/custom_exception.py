from typing import Dict, Optional


class CustomException(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors


class ValidationException(CustomException):
    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(status_code=400, message=message, errors=errors)


class UnauthorizedException(CustomException):
    def __init__(self, message: str):
        super().__init__(status_code=401, message=message)


class ForbiddenException(CustomException):
    def __init__(self, message: str):
        super().__init__(status_code=403, message=message)


class NotFoundException(CustomException):
    def __init__(self, message: str):
        super().__init__(status_code=404, message=message)


class ConflictException(CustomException):
    def __init__(self, message: str):
        super().__init__(status_code=409, message=message)


class RateLimitException(CustomException):
    def __init__(self, message: str):
        super().__init__(status_code=429, message=message)
