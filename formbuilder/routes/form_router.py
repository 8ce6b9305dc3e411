from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.middleware.auth_middleware import auth_middleware
from formbuilder.models.user_model import User
from formbuilder.schema.form_schema import FormCreate, FormUpdate
from formbuilder.services import form_service
from formbuilder.utils.logger_utils import handle_route_error

form_controller = APIRouter()


# Literal paths are registered before /{form_id} so they are matched first

@form_controller.get("/public/{custom_url}", response_model=dict)
def get_public_form(custom_url: str, db: Session = Depends(get_db)):
    try:
        response = form_service.get_public_form(db, custom_url)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"form": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/forms/public/{custom_url}")


@form_controller.get("/my", response_model=dict)
def get_my_forms(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = form_service.get_my_forms(db, user, page, limit)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/forms/my")


@form_controller.get("", response_model=dict)
def get_forms(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    isActive: Optional[bool] = None,
    createdBy: Optional[int] = None,
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = form_service.get_form_list(db, user, page, limit, search, isActive, createdBy)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/forms")


@form_controller.post("", response_model=dict, status_code=201)
def create_form(data: FormCreate, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = form_service.create_form(db, data, user)
        return {"success": True, "message": MESSAGE.FORM_CREATED, "data": {"form": response}}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/forms")


@form_controller.get("/{form_id}", response_model=dict)
def get_form(form_id: int, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = form_service.get_form(db, form_id, user)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"form": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/forms/{form_id}")


@form_controller.put("/{form_id}", response_model=dict)
def update_form(form_id: int, data: FormUpdate, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = form_service.update_form(db, form_id, data, user)
        return {"success": True, "message": MESSAGE.FORM_UPDATED, "data": {"form": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"PUT /api/forms/{form_id}")


@form_controller.delete("/{form_id}", response_model=dict)
def delete_form(form_id: int, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        form_service.delete_form(db, form_id, user)
        return {"success": True, "message": MESSAGE.FORM_DELETED}
    except Exception as e:
        handle_route_error(error=e, context=f"DELETE /api/forms/{form_id}")


@form_controller.post("/{form_id}/duplicate", response_model=dict, status_code=201)
def duplicate_form(form_id: int, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = form_service.duplicate_form(db, form_id, user)
        return {"success": True, "message": MESSAGE.FORM_DUPLICATED, "data": {"form": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"POST /api/forms/{form_id}/duplicate")


@form_controller.get("/{form_id}/analytics", response_model=dict)
def get_form_analytics(form_id: int, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = form_service.get_form_analytics(db, form_id, user)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/forms/{form_id}/analytics")


@form_controller.patch("/{form_id}/toggle-status", response_model=dict)
def toggle_form_status(form_id: int, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = form_service.toggle_form_status(db, form_id, user)
        return {"success": True, "message": MESSAGE.FORM_UPDATED, "data": {"form": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"PATCH /api/forms/{form_id}/toggle-status")
