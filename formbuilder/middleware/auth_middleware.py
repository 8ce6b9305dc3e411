from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import CAPABILITIES
from formbuilder.exceptions.custom_exception import CustomException, ForbiddenException, UnauthorizedException
from formbuilder.models.user_model import User
from formbuilder.services import user_service
from formbuilder.utils.logger_utils import handle_middleware_error
from formbuilder.utils.permission_utils import has_capability, is_admin


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        return None
    return header[7:].strip() or None


def auth_middleware(request: Request, db: Session = Depends(get_db)) -> User:
    token = _bearer_token(request)
    if token is None:
        raise UnauthorizedException(ERROR.TOKEN_REQUIRED)

    try:
        user = user_service.validate_token(db, token)
    except CustomException:
        raise
    except Exception as e:
        handle_middleware_error(
            error=e,
            context="auth_middleware",
            custom_exception=UnauthorizedException(ERROR.INVALID_TOKEN)
        )

    request.state.user = user
    return user


def optional_auth(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Caller identity when a valid bearer token is sent, otherwise None."""
    token = _bearer_token(request)
    if token is None:
        return None

    try:
        user = user_service.validate_token(db, token)
    except UnauthorizedException:
        return None

    request.state.user = user
    return user


def require_capability(capability: CAPABILITIES, message: str = ERROR.ACCESS_DENIED):
    def dependency(user: User = Depends(auth_middleware)) -> User:
        if not has_capability(user, capability):
            raise ForbiddenException(message)
        return user
    return dependency


def require_admin(user: User = Depends(auth_middleware)) -> User:
    if not is_admin(user):
        raise ForbiddenException(ERROR.ADMIN_REQUIRED)
    return user
