from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.schema.user_schema import RegisterRequest, SignInRequest, ChangePasswordRequest
from formbuilder.models.user_model import User
from formbuilder.exceptions import CustomException, ConflictException, ForbiddenException, UnauthorizedException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import CAPABILITIES, ROLES
from formbuilder.utils.auth_utils import verify_password, hash_password, generate_jwt, verify_jwt, parse_expiration
from formbuilder.utils.date_utils import iso
from formbuilder.utils.permission_utils import has_capability, user_capabilities
from formbuilder.config.env_config import settings
import logging

logger = logging.getLogger(__name__)


def format_user(user: User) -> dict:
    """Public view of a user, never includes the password hash."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "permissions": sorted(c.value for c in user_capabilities(user)),
        "isActive": user.is_active,
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }


def issue_token(user: User) -> str:
    return generate_jwt(
        data={"userId": user.id, "username": user.username, "role": user.role},
        expire_seconds=parse_expiration(settings.JWT_EXPIRATION),
        secret_key=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM
    )


def register_user(db: Session, data: RegisterRequest, caller: User = None):
    try:
        role = data.role.value if data.role else ROLES.USER.value

        # Anyone may sign up as a plain user; other roles are handed out by user managers
        if role != ROLES.USER.value and (caller is None or not has_capability(caller, CAPABILITIES.MANAGE_USERS)):
            raise ForbiddenException(ERROR.ACCESS_DENIED)

        existing = db.query(User).filter(
            or_(User.username == data.username, User.email == data.email)
        ).first()
        if existing:
            raise ConflictException(ERROR.USER_ALREADY_EXISTS)

        user = User(
            username=data.username,
            email=data.email,
            password=hash_password(data.password),
            role=role,
            permissions=[],
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"User registered: {user.username} ({user.role})")
        return {"user": format_user(user), "token": issue_token(user)}

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.USER_ALREADY_EXISTS)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in register_user: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def sign_in_user(db: Session, data: SignInRequest):
    """
    Login by username or email. Unknown user, inactive user and a wrong
    password all produce the same 401 message.
    """
    try:
        user = db.query(User).filter(
            or_(User.username == data.identifier, User.email == data.identifier)
        ).first()

        if not user or not user.is_active or not verify_password(data.password, user.password):
            raise UnauthorizedException(ERROR.INVALID_CREDENTIALS)

        return {"user": format_user(user), "token": issue_token(user)}

    except CustomException:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error in sign_in_user: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def validate_token(db: Session, token: str) -> User:
    payload = verify_jwt(token=token, secret_key=settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    if not payload or "userId" not in payload:
        raise UnauthorizedException(ERROR.INVALID_TOKEN)

    user = db.query(User).filter(User.id == payload["userId"]).first()
    if not user or not user.is_active:
        raise UnauthorizedException(ERROR.INVALID_TOKEN)

    return user


def refresh_token(db: Session, token: str):
    # The old token is not revoked; it stays valid until its own expiry
    user = validate_token(db, token)
    return {"user": format_user(user), "token": issue_token(user)}


def change_password(db: Session, user: User, data: ChangePasswordRequest):
    try:
        if not verify_password(data.currentPassword, user.password):
            raise ValidationException(ERROR.CURRENT_PASSWORD_INCORRECT)

        user.password = hash_password(data.newPassword)
        db.commit()
        logger.info(f"Password changed for user {user.id}")

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in change_password: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)
