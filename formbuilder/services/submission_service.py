import logging
import math
import re
import secrets
import string
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.models.form_model import Form
from formbuilder.models.submission_model import Submission
from formbuilder.models.user_model import User
from formbuilder.schema.submission_schema import (
    SubmissionCreate, PublicSubmissionUpdate, VerifyEditCodeRequest, SubmissionStatusUpdate, SubmissionUpdate
)
from formbuilder.exceptions import CustomException, ConflictException, ForbiddenException, NotFoundException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import CAPABILITIES, PAYMENT_STATUS, SUBMISSION_STATUS
from formbuilder.utils.date_utils import iso, utc_now
from formbuilder.utils.field_validator import validate_submission_data
from formbuilder.utils.permission_utils import can_view_submission, has_capability
from formbuilder.utils.logger_utils import log_transition

logger = logging.getLogger(__name__)

EDIT_CODE_ALPHABET = string.ascii_uppercase + string.digits
EDIT_CODE_LENGTH = 8


def _amount(value) -> Optional[float]:
    return float(value) if value is not None else None


def format_submission(submission: Submission, public: bool = False) -> dict:
    result = {
        "id": submission.id,
        "uniqueId": submission.unique_id,
        "editCode": submission.edit_code,
        "formId": submission.form_id,
        "formTitle": submission.form.title if submission.form else None,
        "data": submission.data,
        "status": submission.status,
        "payment": {
            "method": submission.payment_method,
            "status": submission.payment_status,
            "amount": _amount(submission.payment_amount),
            "currency": submission.payment_currency,
            "reference": submission.payment_reference,
            "transactionId": submission.payment_transaction_id,
            "receipt": submission.payment_receipt,
            "notes": submission.payment_notes,
            "rejectionReason": submission.payment_rejection_reason,
            "completedAt": iso(submission.payment_completed_at),
            "refundAmount": _amount(submission.refund_amount),
            "refundedAt": iso(submission.refunded_at),
        },
        "adminNotes": submission.admin_notes,
        "metadata": submission.extra_metadata,
        "ipAddress": submission.ip_address,
        "userAgent": submission.user_agent,
        "editHistory": submission.edit_history or [],
        "createdAt": iso(submission.created_at),
        "updatedAt": iso(submission.updated_at),
    }

    if public:
        for key in ("editCode", "ipAddress", "userAgent"):
            result.pop(key)

    return result


def append_history(submission: Submission, actor: str, field: str, old, new, note: Optional[str] = None):
    entry = {
        "timestamp": utc_now().isoformat(),
        "actor": actor,
        "field": field,
        "from": old,
        "to": new,
        "note": note,
    }
    # Assign a new list so SQLAlchemy sees the JSON column change
    submission.edit_history = list(submission.edit_history or []) + [entry]


def transition_status(submission: Submission, new_status: str, actor: str, note: Optional[str] = None) -> bool:
    """Set the business status; re-applying the current value changes nothing."""
    if submission.status == new_status:
        return False
    log_transition(submission.unique_id, "status", submission.status, new_status, actor)
    append_history(submission, actor, "status", submission.status, new_status, note)
    submission.status = new_status
    return True


def transition_payment_status(submission: Submission, new_status: str, actor: str, note: Optional[str] = None) -> bool:
    if submission.payment_status == new_status:
        return False
    log_transition(submission.unique_id, "payment_status", submission.payment_status, new_status, actor)
    append_history(submission, actor, "payment_status", submission.payment_status, new_status, note)
    submission.payment_status = new_status
    return True


def generate_unique_id(db: Session, form_title: str) -> str:
    prefix = re.sub(r"[^A-Za-z]", "", form_title or "").upper()[:4] or "SUB"
    year = utc_now().year

    while True:
        candidate = f"{prefix}{year}-{secrets.randbelow(1_000_000):06d}"
        if not db.query(Submission.id).filter(Submission.unique_id == candidate).first():
            return candidate


def generate_edit_code() -> str:
    return "".join(secrets.choice(EDIT_CODE_ALPHABET) for _ in range(EDIT_CODE_LENGTH))


def find_submission(db: Session, identifier) -> Submission:
    """Look a submission up by its public unique id, or by numeric id."""
    identifier = str(identifier)
    submission = db.query(Submission).filter(Submission.unique_id == identifier).first()
    if not submission and identifier.isdigit():
        submission = db.query(Submission).filter(Submission.id == int(identifier)).first()
    if not submission:
        raise NotFoundException(ERROR.SUBMISSION_NOT_FOUND)
    return submission


def form_fields(db: Session, form_id: int) -> list:
    form = db.query(Form).filter(Form.id == form_id).first()
    return (form.fields or []) if form else []


def _require_edit_rights(user: User):
    if not has_capability(user, CAPABILITIES.EDIT_SUBMISSIONS):
        raise ForbiddenException(ERROR.ACCESS_DENIED)


def store_submission(db: Session, data: SubmissionCreate, ip_address: Optional[str] = None,
                     user_agent: Optional[str] = None) -> dict:
    try:
        form = db.query(Form).filter(Form.id == data.formId).first()
        if not form:
            raise NotFoundException(ERROR.FORM_NOT_FOUND)
        if not form.is_active:
            raise ValidationException(ERROR.FORM_NOT_ACTIVE)

        errors = validate_submission_data(form.fields, data.data)
        if errors:
            raise ValidationException(ERROR.VALIDATION_FAILED, errors)

        submission = Submission(
            unique_id=generate_unique_id(db, form.title),
            edit_code=generate_edit_code(),
            form_id=form.id,
            data=data.data,
            status=SUBMISSION_STATUS.PENDING.value,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:512] or None,
            extra_metadata=data.metadata,
            edit_history=[],
        )

        if data.payment:
            submission.payment_method = data.payment.method.value if data.payment.method else None
            submission.payment_amount = data.payment.amount
            submission.payment_currency = data.payment.currency.upper()
            submission.payment_status = PAYMENT_STATUS.PENDING.value

        form.submission_count = (form.submission_count or 0) + 1

        db.add(submission)
        db.commit()
        db.refresh(submission)

        logger.info(f"Submission {submission.unique_id} stored for form {form.id}")
        return {
            "submissionId": submission.unique_id,
            "uniqueId": submission.unique_id,
            "editCode": submission.edit_code,
            "status": submission.status,
            "payment": format_submission(submission)["payment"] if data.payment else None,
        }

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.SUBMISSION_CONFLICT)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in store_submission: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def show_public(db: Session, unique_id: str, code: Optional[str] = None) -> dict:
    submission = db.query(Submission).filter(Submission.unique_id == unique_id).first()
    if not submission:
        raise NotFoundException(ERROR.SUBMISSION_NOT_FOUND)

    if code and submission.edit_code != code:
        raise ForbiddenException(ERROR.INVALID_EDIT_CODE)

    return format_submission(submission, public=True)


def update_public(db: Session, unique_id: str, data: PublicSubmissionUpdate) -> dict:
    """
    Self-service edit gated by the edit code. The code is compared as a plain
    string and the form must still allow editing.
    """
    try:
        if not data.editCode:
            raise ValidationException(ERROR.EDIT_CODE_REQUIRED)

        submission = db.query(Submission).filter(Submission.unique_id == unique_id).first()
        if not submission:
            raise NotFoundException(ERROR.SUBMISSION_NOT_FOUND)

        if submission.edit_code != data.editCode:
            raise ForbiddenException(ERROR.INVALID_EDIT_CODE)

        if not submission.form or not submission.form.allow_editing:
            raise ForbiddenException(ERROR.EDITING_NOT_ALLOWED)

        if data.data is not None:
            errors = validate_submission_data(submission.form.fields, data.data)
            if errors:
                raise ValidationException(ERROR.VALIDATION_FAILED, errors)

            append_history(submission, "submitter", "data", submission.data, data.data)
            submission.data = data.data

        db.commit()
        db.refresh(submission)
        return format_submission(submission, public=True)

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in update_public: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def verify_edit_code(db: Session, unique_id: str, data: VerifyEditCodeRequest) -> dict:
    if not data.editCode:
        raise ValidationException(ERROR.EDIT_CODE_REQUIRED)

    submission = db.query(Submission).filter(Submission.unique_id == unique_id).first()
    if not submission:
        raise NotFoundException(ERROR.SUBMISSION_NOT_FOUND)

    is_valid = submission.edit_code == data.editCode
    return {
        "valid": is_valid,
        "canEdit": bool(is_valid and submission.form and submission.form.allow_editing),
    }


def _summary(db: Session) -> dict:
    completed = db.query(Submission).filter(Submission.payment_status == PAYMENT_STATUS.COMPLETED.value)
    revenue = (
        db.query(func.coalesce(func.sum(Submission.payment_amount), 0))
        .filter(Submission.payment_status == PAYMENT_STATUS.COMPLETED.value)
        .scalar()
    )
    return {
        "completedPayments": completed.count(),
        "pendingPayments": db.query(Submission).filter(Submission.payment_status == PAYMENT_STATUS.PENDING.value).count(),
        "totalRevenue": float(revenue or 0),
    }


def list_submissions(db: Session, user: User, page: int = 1, limit: int = 20, form_id: Optional[int] = None,
                     status: Optional[str] = None, start_date: Optional[datetime] = None,
                     end_date: Optional[datetime] = None) -> dict:
    try:
        query = db.query(Submission)

        # Form owners without the viewing capability only see their own forms' submissions
        if not has_capability(user, CAPABILITIES.VIEW_SUBMISSIONS):
            query = query.join(Form, Submission.form_id == Form.id).filter(Form.created_by == user.id)

        if form_id is not None:
            query = query.filter(Submission.form_id == form_id)
        if status:
            query = query.filter(Submission.status == status)
        if start_date:
            query = query.filter(Submission.created_at >= start_date)
        if end_date:
            query = query.filter(Submission.created_at <= end_date)

        total = query.count()
        submissions = (
            query.order_by(Submission.created_at.desc(), Submission.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        summary = {"totalSubmissions": total}
        summary.update(_summary(db))

        return {
            "submissions": [format_submission(s) for s in submissions],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if limit else 0,
            },
            "summary": summary,
        }

    except SQLAlchemyError as e:
        logger.error(f"Database error in list_submissions: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def list_by_form(db: Session, user: User, form_id: int, page: int = 1, limit: int = 20) -> dict:
    form = db.query(Form).filter(Form.id == form_id).first()
    if not form:
        raise NotFoundException(ERROR.FORM_NOT_FOUND)

    if not (has_capability(user, CAPABILITIES.VIEW_SUBMISSIONS) or form.created_by == user.id):
        raise ForbiddenException(ERROR.ACCESS_DENIED)

    query = db.query(Submission).filter(Submission.form_id == form_id)
    total = query.count()
    submissions = (
        query.order_by(Submission.created_at.desc(), Submission.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "submissions": [format_submission(s) for s in submissions],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


def get_submission(db: Session, user: User, identifier: str) -> dict:
    submission = find_submission(db, identifier)
    if not can_view_submission(user, submission):
        raise ForbiddenException(ERROR.ACCESS_DENIED)
    return format_submission(submission)


def update_status(db: Session, user: User, identifier: str, data: SubmissionStatusUpdate) -> dict:
    """Admin overlay: any status may follow any other."""
    try:
        _require_edit_rights(user)

        if data.status not in {s.value for s in SUBMISSION_STATUS}:
            raise ValidationException(ERROR.INVALID_STATUS)

        submission = find_submission(db, identifier)
        transition_status(submission, data.status, user.username, data.adminNotes)
        if data.adminNotes is not None:
            submission.admin_notes = data.adminNotes

        db.commit()
        db.refresh(submission)
        return format_submission(submission)

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in update_status: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def update_submission(db: Session, user: User, identifier: str, data: SubmissionUpdate) -> dict:
    try:
        _require_edit_rights(user)

        if data.status is not None and data.status not in {s.value for s in SUBMISSION_STATUS}:
            raise ValidationException(ERROR.INVALID_STATUS)
        if data.paymentStatus is not None and data.paymentStatus not in {s.value for s in PAYMENT_STATUS}:
            raise ValidationException(ERROR.INVALID_PAYMENT_STATUS)

        submission = find_submission(db, identifier)

        if data.status is not None:
            transition_status(submission, data.status, user.username, data.adminNotes)
        if data.paymentStatus is not None:
            transition_payment_status(submission, data.paymentStatus, user.username, data.adminNotes)
        if data.adminNotes is not None:
            submission.admin_notes = data.adminNotes

        db.commit()
        db.refresh(submission)
        return format_submission(submission)

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in update_submission: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def delete_submission(db: Session, user: User, identifier: str):
    try:
        _require_edit_rights(user)

        submission = find_submission(db, identifier)
        form = submission.form
        if form and form.submission_count:
            form.submission_count -= 1

        db.delete(submission)
        db.commit()
        logger.info(f"Submission {identifier} deleted by user {user.id}")

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in delete_submission: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)
