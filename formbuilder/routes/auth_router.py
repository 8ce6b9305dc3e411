from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.middleware.auth_middleware import auth_middleware, optional_auth
from formbuilder.models.user_model import User
from formbuilder.schema.user_schema import RegisterRequest, SignInRequest, ChangePasswordRequest
from formbuilder.services import user_service
from formbuilder.utils.logger_utils import handle_route_error

auth_controller = APIRouter()


@auth_controller.post("/register", response_model=dict, status_code=201)
def register(data: RegisterRequest, db: Session = Depends(get_db), caller: Optional[User] = Depends(optional_auth)):
    """Anonymous callers may only register the plain user role."""
    try:
        response = user_service.register_user(db, data, caller)
        return {"success": True, "message": MESSAGE.USER_REGISTERED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/auth/register")


@auth_controller.post("/login", response_model=dict)
def login(data: SignInRequest, db: Session = Depends(get_db)):
    try:
        response = user_service.sign_in_user(db, data)
        return {"success": True, "message": MESSAGE.AUTH_SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/auth/login")


@auth_controller.get("/profile", response_model=dict)
def profile(user: User = Depends(auth_middleware)):
    return {"success": True, "message": MESSAGE.SUCCESS, "data": {"user": user_service.format_user(user)}}


@auth_controller.post("/refresh", response_model=dict, dependencies=[Depends(auth_middleware)])
def refresh(request: Request, db: Session = Depends(get_db)):
    try:
        token = request.headers.get("Authorization", "")[7:].strip()
        response = user_service.refresh_token(db, token)
        return {"success": True, "message": MESSAGE.TOKEN_REFRESHED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/auth/refresh")


@auth_controller.post("/change-password", response_model=dict)
def change_password(data: ChangePasswordRequest, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        user_service.change_password(db, user, data)
        return {"success": True, "message": MESSAGE.PASSWORD_CHANGED}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/auth/change-password")


@auth_controller.post("/logout", response_model=dict, dependencies=[Depends(auth_middleware)])
def logout():
    # Tokens are stateless; the client discards its copy
    return {"success": True, "message": MESSAGE.LOGOUT_SUCCESS}
