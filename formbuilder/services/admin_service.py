import logging
import math
from typing import Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.models.form_model import Form
from formbuilder.models.submission_model import Submission
from formbuilder.models.user_model import User
from formbuilder.schema.user_schema import CreateUserRequest, UpdateUserRequest, ResetPasswordRequest
from formbuilder.exceptions import CustomException, ConflictException, ForbiddenException, NotFoundException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import PAYMENT_STATUS, ROLES, SUBMISSION_STATUS
from formbuilder.services.form_service import format_form
from formbuilder.services.submission_service import format_submission
from formbuilder.services.user_service import format_user
from formbuilder.utils.auth_utils import hash_password
from formbuilder.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundException(ERROR.USER_NOT_FOUND)
    return user


def _guard_super_admin_role(actor: User, role) -> None:
    if role == ROLES.SUPER_ADMIN and actor.role != ROLES.SUPER_ADMIN.value:
        raise ForbiddenException(ERROR.SUPER_ADMIN_ROLE_DENIED)


def _guard_super_admin_target(actor: User, user: User) -> None:
    if user.role == ROLES.SUPER_ADMIN.value and actor.role != ROLES.SUPER_ADMIN.value:
        raise ForbiddenException(ERROR.SUPER_ADMIN_MANAGED_BY_SUPER_ADMIN)


def list_users(db: Session, page: int = 1, limit: int = 20, role: Optional[str] = None,
               status: Optional[str] = None, search: Optional[str] = None) -> dict:
    query = db.query(User)

    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.is_active.is_(status == "active"))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.username.like(pattern), User.email.like(pattern)))

    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "users": [format_user(user) for user in users],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


def get_user(db: Session, user_id: int) -> dict:
    return format_user(_get_user_or_404(db, user_id))


def create_user(db: Session, data: CreateUserRequest, actor: User) -> dict:
    try:
        _guard_super_admin_role(actor, data.role)

        if db.query(User.id).filter(User.email == data.email).first():
            raise ConflictException(ERROR.EMAIL_ALREADY_EXISTS)
        if db.query(User.id).filter(User.username == data.username).first():
            raise ConflictException(ERROR.USERNAME_ALREADY_EXISTS)

        user = User(
            username=data.username,
            email=data.email,
            password=hash_password(data.password),
            role=data.role.value,
            permissions=[p.value for p in data.permissions],
            is_active=data.isActive,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"User {user.id} created by admin {actor.id}")
        return format_user(user)

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.USER_ALREADY_EXISTS)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in create_user: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def update_user(db: Session, user_id: int, data: UpdateUserRequest, actor: User) -> dict:
    try:
        user = _get_user_or_404(db, user_id)
        _guard_super_admin_target(actor, user)

        if data.email is not None and data.email != user.email:
            if db.query(User.id).filter(User.email == data.email, User.id != user.id).first():
                raise ConflictException(ERROR.EMAIL_ALREADY_EXISTS)
            user.email = data.email

        if data.username is not None and data.username != user.username:
            if db.query(User.id).filter(User.username == data.username, User.id != user.id).first():
                raise ConflictException(ERROR.USERNAME_ALREADY_EXISTS)
            user.username = data.username

        if data.role is not None:
            _guard_super_admin_role(actor, data.role)
            user.role = data.role.value
        if data.permissions is not None:
            user.permissions = [p.value for p in data.permissions]
        if data.isActive is not None:
            user.is_active = data.isActive

        db.commit()
        db.refresh(user)
        return format_user(user)

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.USER_ALREADY_EXISTS)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in update_user: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def delete_user(db: Session, user_id: int, actor: User):
    try:
        user = _get_user_or_404(db, user_id)

        if user.role == ROLES.SUPER_ADMIN.value:
            raise ForbiddenException(ERROR.CANNOT_DELETE_SUPER_ADMIN)

        if db.query(Form.id).filter(Form.created_by == user.id).first():
            raise ConflictException(ERROR.USER_HAS_FORMS)

        db.delete(user)
        db.commit()
        logger.info(f"User {user_id} deleted by admin {actor.id}")

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in delete_user: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def toggle_user_status(db: Session, user_id: int, actor: User) -> dict:
    try:
        user = _get_user_or_404(db, user_id)
        _guard_super_admin_target(actor, user)
        user.is_active = not user.is_active
        db.commit()
        return {"id": user.id, "isActive": user.is_active}

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in toggle_user_status: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def reset_user_password(db: Session, user_id: int, data: ResetPasswordRequest, actor: User):
    try:
        user = _get_user_or_404(db, user_id)
        _guard_super_admin_target(actor, user)
        user.password = hash_password(data.newPassword)
        db.commit()
        logger.info(f"Password of user {user_id} reset by admin {actor.id}")

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in reset_user_password: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def get_system_stats(db: Session) -> dict:
    now = utc_now()
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

    def submissions(*criteria) -> int:
        return db.query(Submission).filter(*criteria).count()

    def revenue(*criteria) -> float:
        total = (
            db.query(func.coalesce(func.sum(Submission.payment_amount), 0))
            .filter(Submission.payment_status == PAYMENT_STATUS.COMPLETED.value, *criteria)
            .scalar()
        )
        return float(total or 0)

    return {
        "users": {
            "total": db.query(User).count(),
            "active": db.query(User).filter(User.is_active.is_(True)).count(),
            "admins": db.query(User).filter(User.role == ROLES.ADMIN.value).count(),
            "superAdmins": db.query(User).filter(User.role == ROLES.SUPER_ADMIN.value).count(),
            "newThisMonth": db.query(User).filter(User.created_at >= start_of_month).count(),
        },
        "forms": {
            "total": db.query(Form).count(),
            "active": db.query(Form).filter(Form.is_active.is_(True)).count(),
            "inactive": db.query(Form).filter(Form.is_active.is_(False)).count(),
            "newThisMonth": db.query(Form).filter(Form.created_at >= start_of_month).count(),
        },
        "submissions": {
            "total": submissions(),
            "pending": submissions(Submission.status == SUBMISSION_STATUS.PENDING.value),
            "completed": submissions(Submission.status == SUBMISSION_STATUS.COMPLETED.value),
            "approved": submissions(Submission.status == SUBMISSION_STATUS.APPROVED.value),
            "thisMonth": submissions(Submission.created_at >= start_of_month),
            "today": submissions(Submission.created_at >= start_of_day),
        },
        "payments": {
            "totalRevenue": revenue(),
            "completedPayments": submissions(Submission.payment_status == PAYMENT_STATUS.COMPLETED.value),
            "pendingPayments": submissions(Submission.payment_status == PAYMENT_STATUS.PENDING.value),
            "awaitingApproval": submissions(Submission.payment_status == PAYMENT_STATUS.PENDING_APPROVAL.value),
            "monthlyRevenue": revenue(Submission.created_at >= start_of_month),
        },
    }


def get_dashboard(db: Session) -> dict:
    recent_submissions = db.query(Submission).order_by(Submission.created_at.desc(), Submission.id.desc()).limit(10).all()
    recent_users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(5).all()
    recent_forms = db.query(Form).order_by(Form.created_at.desc(), Form.id.desc()).limit(5).all()

    return {
        "stats": get_system_stats(db),
        "recent": {
            "submissions": [format_submission(s) for s in recent_submissions],
            "users": [format_user(u) for u in recent_users],
            "forms": [format_form(f) for f in recent_forms],
        },
    }
