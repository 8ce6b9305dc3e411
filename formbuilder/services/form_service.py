import logging
import math
import re
from datetime import timedelta
from typing import Dict, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.models.form_model import Form
from formbuilder.models.submission_model import Submission
from formbuilder.models.user_model import User
from formbuilder.schema.form_schema import FormCreate, FormUpdate
from formbuilder.exceptions import CustomException, ConflictException, ForbiddenException, NotFoundException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import CAPABILITIES, SUBMISSION_STATUS
from formbuilder.utils.date_utils import iso, utc_now
from formbuilder.utils.field_validator import field_key, is_empty, length_bound
from formbuilder.utils.permission_utils import can_access_form, can_delete_form, can_edit_form, has_capability, is_admin

logger = logging.getLogger(__name__)

CUSTOM_URL_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,50}$")


def format_form(form: Form) -> dict:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "fields": form.fields,
        "isActive": form.is_active,
        "allowEditing": form.allow_editing,
        "settings": form.settings or {},
        "submissionCount": form.submission_count,
        "customUrl": form.custom_url,
        "createdBy": form.created_by,
        "createdAt": iso(form.created_at),
        "updatedAt": iso(form.updated_at),
        "creator": {
            "id": form.creator.id,
            "username": form.creator.username,
            "email": form.creator.email,
        } if form.creator else None,
    }


def _valid_length_rules(validation: dict) -> bool:
    return all(
        validation.get(key) is None or length_bound(validation[key]) is not None
        for key in ("minLength", "maxLength")
    )


def validate_form_data(data: dict, partial: bool = False) -> Dict[str, str]:
    """Field-level problems with a create/update payload; on update only supplied keys are checked."""
    errors = {}

    if not partial or "title" in data:
        title = data.get("title")
        if not title or not title.strip():
            errors["title"] = "Form title is required"
        elif len(title) > 255:
            errors["title"] = "Title must not exceed 255 characters"

    if not partial or "fields" in data:
        fields = data.get("fields")
        if not fields:
            errors["fields"] = "Form fields are required"
        elif any(not field.get("type") or not field.get("label") for field in fields):
            errors["fields"] = "Each field must have a type and label"
        elif any(not _valid_length_rules(field.get("validation") or {}) for field in fields):
            errors["fields"] = "Field length limits must be non-negative integers"

    description = data.get("description")
    if description and len(description) > 1000:
        errors["description"] = "Description must not exceed 1000 characters"

    custom_url = data.get("customUrl")
    if custom_url and not CUSTOM_URL_PATTERN.match(custom_url):
        errors["customUrl"] = "Custom URL must be 3-50 characters: letters, numbers, hyphens and underscores"

    return errors


def _payload(data, partial: bool) -> dict:
    payload = data.model_dump(exclude_unset=partial)
    if data.fields is not None:
        payload["fields"] = [field.model_dump(exclude_none=True) for field in data.fields]
    return payload


def _ensure_custom_url_free(db: Session, custom_url: str, form_id: Optional[int] = None):
    query = db.query(Form.id).filter(Form.custom_url == custom_url)
    if form_id is not None:
        query = query.filter(Form.id != form_id)
    if query.first():
        raise ConflictException(ERROR.CUSTOM_URL_EXISTS)


def _get_form_or_404(db: Session, form_id: int) -> Form:
    form = db.query(Form).filter(Form.id == form_id).first()
    if not form:
        raise NotFoundException(ERROR.FORM_NOT_FOUND)
    return form


def get_form_list(db: Session, user: User, page: int = 1, limit: int = 20, search: Optional[str] = None,
                  is_active: Optional[bool] = None, created_by: Optional[int] = None):
    try:
        query = db.query(Form)

        # Without form management rights a user only ever sees their own forms
        if not (is_admin(user) or has_capability(user, CAPABILITIES.MANAGE_FORMS)):
            created_by = user.id

        if created_by is not None:
            query = query.filter(Form.created_by == created_by)
        if is_active is not None:
            query = query.filter(Form.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Form.title.like(pattern), Form.description.like(pattern)))

        total = query.count()
        forms = (
            query.order_by(Form.created_at.desc(), Form.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "forms": [format_form(form) for form in forms],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit) if limit else 0,
            },
        }

    except SQLAlchemyError as e:
        logger.error(f"Database error in get_form_list: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def get_my_forms(db: Session, user: User, page: int = 1, limit: int = 20):
    return get_form_list(db, user, page=page, limit=limit, created_by=user.id)


def get_form(db: Session, form_id: int, user: User) -> dict:
    form = _get_form_or_404(db, form_id)
    if not can_access_form(user, form):
        raise ForbiddenException(ERROR.FORM_ACCESS_DENIED)
    return format_form(form)


def get_public_form(db: Session, custom_url: str) -> dict:
    form = db.query(Form).filter(Form.custom_url == custom_url, Form.is_active.is_(True)).first()
    if not form:
        raise NotFoundException(ERROR.FORM_NOT_FOUND)

    public = format_form(form)
    public.pop("creator")
    public.pop("createdBy")
    return public


def create_form(db: Session, data: FormCreate, user: User) -> dict:
    try:
        payload = _payload(data, partial=False)
        errors = validate_form_data(payload)
        if errors:
            raise ValidationException(ERROR.VALIDATION_FAILED, errors)

        custom_url = payload.get("customUrl") or None
        if custom_url:
            _ensure_custom_url_free(db, custom_url)

        form = Form(
            created_by=user.id,
            title=payload["title"].strip(),
            description=payload.get("description"),
            fields=payload["fields"],
            is_active=payload["isActive"],
            allow_editing=payload["allowEditing"],
            custom_url=custom_url,
            submission_count=0,
            settings=payload.get("settings") or {},
            analytics={},
        )
        db.add(form)
        db.commit()
        db.refresh(form)

        logger.info(f"Form {form.id} created by user {user.id}")
        return format_form(form)

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.CUSTOM_URL_EXISTS)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in create_form: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def update_form(db: Session, form_id: int, data: FormUpdate, user: User) -> dict:
    try:
        form = _get_form_or_404(db, form_id)
        if not can_edit_form(user, form):
            raise ForbiddenException(ERROR.FORM_EDIT_DENIED)

        payload = _payload(data, partial=True)
        errors = validate_form_data(payload, partial=True)
        if errors:
            raise ValidationException(ERROR.VALIDATION_FAILED, errors)

        if "customUrl" in payload:
            custom_url = payload["customUrl"] or None
            if custom_url and custom_url != form.custom_url:
                _ensure_custom_url_free(db, custom_url, form.id)
            form.custom_url = custom_url

        if "title" in payload:
            form.title = payload["title"].strip()
        if "description" in payload:
            form.description = payload["description"]
        if "fields" in payload:
            form.fields = payload["fields"]
        if payload.get("isActive") is not None:
            form.is_active = payload["isActive"]
        if payload.get("allowEditing") is not None:
            form.allow_editing = payload["allowEditing"]
        if payload.get("settings") is not None:
            form.settings = payload["settings"]

        db.commit()
        db.refresh(form)
        return format_form(form)

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.CUSTOM_URL_EXISTS)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in update_form: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def delete_form(db: Session, form_id: int, user: User):
    try:
        form = _get_form_or_404(db, form_id)
        if not can_delete_form(user, form):
            raise ForbiddenException(ERROR.FORM_DELETE_DENIED)

        # Submissions are never cascaded away with their form
        has_submissions = db.query(Submission.id).filter(Submission.form_id == form.id).first()
        if has_submissions:
            raise ConflictException(ERROR.FORM_HAS_SUBMISSIONS)

        db.delete(form)
        db.commit()
        logger.info(f"Form {form_id} deleted by user {user.id}")

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in delete_form: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def duplicate_form(db: Session, form_id: int, user: User) -> dict:
    try:
        original = _get_form_or_404(db, form_id)
        if not can_access_form(user, original):
            raise ForbiddenException(ERROR.FORM_ACCESS_DENIED)

        copy = Form(
            created_by=user.id,
            title=f"{original.title} (Copy)",
            description=original.description,
            fields=list(original.fields or []),
            is_active=False,
            allow_editing=original.allow_editing,
            custom_url=None,
            submission_count=0,
            settings=dict(original.settings or {}),
            analytics={},
        )
        db.add(copy)
        db.commit()
        db.refresh(copy)
        return format_form(copy)

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in duplicate_form: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def toggle_form_status(db: Session, form_id: int, user: User) -> dict:
    try:
        form = _get_form_or_404(db, form_id)
        if not can_edit_form(user, form):
            raise ForbiddenException(ERROR.FORM_EDIT_DENIED)

        form.is_active = not form.is_active
        db.commit()
        db.refresh(form)
        return format_form(form)

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in toggle_form_status: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def get_form_analytics(db: Session, form_id: int, user: User) -> dict:
    form = _get_form_or_404(db, form_id)
    if not can_access_form(user, form):
        raise ForbiddenException(ERROR.FORM_ACCESS_DENIED)

    now = utc_now()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_week = start_of_day - timedelta(days=start_of_day.weekday())
    start_of_month = start_of_day.replace(day=1)

    base = db.query(Submission).filter(Submission.form_id == form.id)

    def count_status(status: SUBMISSION_STATUS) -> int:
        return base.filter(Submission.status == status.value).count()

    total = base.count()
    days_since_creation = (now - form.created_at).days + 1 if form.created_at else 1

    rows = db.query(Submission.data).filter(Submission.form_id == form.id).all()
    field_usage = {}
    for field in form.fields or []:
        key = field_key(field)
        field_usage[field.get("label") or key] = {
            "type": field.get("type"),
            "required": bool(field.get("required", False)),
            "usage_count": sum(1 for (data,) in rows if not is_empty((data or {}).get(key))),
        }

    return {
        "totalSubmissions": total,
        "pendingSubmissions": count_status(SUBMISSION_STATUS.PENDING),
        "completedSubmissions": count_status(SUBMISSION_STATUS.COMPLETED),
        "failedSubmissions": count_status(SUBMISSION_STATUS.FAILED),
        "submissionsToday": base.filter(Submission.created_at >= start_of_day).count(),
        "submissionsThisWeek": base.filter(Submission.created_at >= start_of_week).count(),
        "submissionsThisMonth": base.filter(Submission.created_at >= start_of_month).count(),
        "averageSubmissionsPerDay": round(form.submission_count / max(days_since_creation, 1), 2),
        "fieldUsage": field_usage,
    }
