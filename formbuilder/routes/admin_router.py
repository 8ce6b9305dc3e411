from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.constants.utils import CAPABILITIES
from formbuilder.middleware.auth_middleware import require_admin, require_capability
from formbuilder.models.user_model import User
from formbuilder.schema.user_schema import CreateUserRequest, UpdateUserRequest, ResetPasswordRequest
from formbuilder.services import admin_service, settings_service
from formbuilder.utils.logger_utils import handle_route_error

admin_controller = APIRouter()

user_manager = require_capability(CAPABILITIES.MANAGE_USERS)
settings_manager = require_capability(CAPABILITIES.MANAGE_SETTINGS)


@admin_controller.get("/users", response_model=dict, dependencies=[Depends(user_manager)])
def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = None,
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        response = admin_service.list_users(db, page, limit, role, status, search)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/admin/users")


@admin_controller.post("/users", response_model=dict, status_code=201)
def create_user(data: CreateUserRequest, db: Session = Depends(get_db), actor: User = Depends(user_manager)):
    try:
        response = admin_service.create_user(db, data, actor)
        return {"success": True, "message": MESSAGE.USER_CREATED, "data": {"user": response}}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/admin/users")


@admin_controller.get("/users/{user_id}", response_model=dict, dependencies=[Depends(user_manager)])
def get_user(user_id: int, db: Session = Depends(get_db)):
    try:
        response = admin_service.get_user(db, user_id)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"user": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/admin/users/{user_id}")


@admin_controller.put("/users/{user_id}", response_model=dict)
def update_user(user_id: int, data: UpdateUserRequest, db: Session = Depends(get_db), actor: User = Depends(user_manager)):
    try:
        response = admin_service.update_user(db, user_id, data, actor)
        return {"success": True, "message": MESSAGE.USER_UPDATED, "data": {"user": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"PUT /api/admin/users/{user_id}")


@admin_controller.delete("/users/{user_id}", response_model=dict)
def delete_user(user_id: int, db: Session = Depends(get_db), actor: User = Depends(user_manager)):
    try:
        admin_service.delete_user(db, user_id, actor)
        return {"success": True, "message": MESSAGE.USER_DELETED}
    except Exception as e:
        handle_route_error(error=e, context=f"DELETE /api/admin/users/{user_id}")


@admin_controller.patch("/users/{user_id}/toggle-status", response_model=dict)
def toggle_user_status(user_id: int, db: Session = Depends(get_db), actor: User = Depends(user_manager)):
    try:
        response = admin_service.toggle_user_status(db, user_id, actor)
        return {"success": True, "message": MESSAGE.USER_STATUS_TOGGLED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context=f"PATCH /api/admin/users/{user_id}/toggle-status")


@admin_controller.post("/users/{user_id}/reset-password", response_model=dict)
def reset_user_password(
    user_id: int,
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(user_manager),
):
    try:
        admin_service.reset_user_password(db, user_id, data, actor)
        return {"success": True, "message": MESSAGE.PASSWORD_RESET}
    except Exception as e:
        handle_route_error(error=e, context=f"POST /api/admin/users/{user_id}/reset-password")


@admin_controller.get("/settings", response_model=dict, dependencies=[Depends(settings_manager)])
def get_settings(db: Session = Depends(get_db)):
    try:
        response = settings_service.get_all_settings(db)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"settings": response}}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/admin/settings")


@admin_controller.put("/settings", response_model=dict, dependencies=[Depends(settings_manager)])
def update_settings(updates: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    try:
        response = settings_service.update_settings(db, updates)
        return {"success": True, "message": MESSAGE.SETTINGS_UPDATED, "data": {"settings": response}}
    except Exception as e:
        handle_route_error(error=e, context="PUT /api/admin/settings")


@admin_controller.get("/stats", response_model=dict, dependencies=[Depends(require_admin)])
def get_system_stats(db: Session = Depends(get_db)):
    try:
        response = admin_service.get_system_stats(db)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/admin/stats")


@admin_controller.get("/dashboard", response_model=dict, dependencies=[Depends(require_admin)])
def get_dashboard(db: Session = Depends(get_db)):
    try:
        response = admin_service.get_dashboard(db)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/admin/dashboard")
