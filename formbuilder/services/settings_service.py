import json
import logging
from typing import Any, Dict
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from formbuilder.models.settings_model import Setting
from formbuilder.exceptions import CustomException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import PAYMENT_METHODS, SETTING_CATEGORIES, SETTING_TYPES
from formbuilder.config.env_config import settings as app_settings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "site_name": ("Form Builder System", SETTING_TYPES.STRING, "The name of the website", SETTING_CATEGORIES.GENERAL, True),
    "site_description": ("Dynamic form builder and submission management system", SETTING_TYPES.STRING,
                         "Description of the website", SETTING_CATEGORIES.GENERAL, True),
    "maintenance_mode": (False, SETTING_TYPES.BOOLEAN, "Enable maintenance mode", SETTING_CATEGORIES.GENERAL, False),
    "stripe_enabled": (True, SETTING_TYPES.BOOLEAN, "Enable Stripe payments", SETTING_CATEGORIES.PAYMENT, True),
    "bkash_enabled": (True, SETTING_TYPES.BOOLEAN, "Enable bKash payments", SETTING_CATEGORIES.PAYMENT, True),
    "bank_transfer_enabled": (True, SETTING_TYPES.BOOLEAN, "Enable bank transfer payments", SETTING_CATEGORIES.PAYMENT, True),
    "default_currency": ("USD", SETTING_TYPES.STRING, "Default currency for payments", SETTING_CATEGORIES.PAYMENT, True),
    "jwt_expiry": (3600, SETTING_TYPES.INTEGER, "JWT token expiry time in seconds", SETTING_CATEGORIES.SECURITY, False),
    "max_login_attempts": (5, SETTING_TYPES.INTEGER, "Maximum login attempts before lockout", SETTING_CATEGORIES.SECURITY, False),
    "password_min_length": (8, SETTING_TYPES.INTEGER, "Minimum password length", SETTING_CATEGORIES.SECURITY, True),
    "email_notifications": (True, SETTING_TYPES.BOOLEAN, "Enable email notifications", SETTING_CATEGORIES.EMAIL, False),
    "admin_email": ("admin@example.com", SETTING_TYPES.STRING, "Administrator email address", SETTING_CATEGORIES.EMAIL, False),
    "theme": ("default", SETTING_TYPES.STRING, "UI theme", SETTING_CATEGORIES.UI, True),
    "items_per_page": (25, SETTING_TYPES.INTEGER, "Default items per page for listings", SETTING_CATEGORIES.UI, True),
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def cast_value(value, setting_type: str):
    if value is None:
        return None
    if setting_type == SETTING_TYPES.BOOLEAN.value:
        return str(value).strip().lower() in _TRUE_STRINGS
    if setting_type == SETTING_TYPES.INTEGER.value:
        return int(value)
    if setting_type == SETTING_TYPES.FLOAT.value:
        return float(value)
    if setting_type == SETTING_TYPES.JSON.value:
        return json.loads(value)
    return value


def serialize_value(value, setting_type: str) -> str:
    if setting_type == SETTING_TYPES.JSON.value:
        return json.dumps(value)
    if setting_type == SETTING_TYPES.BOOLEAN.value:
        return "true" if value else "false"
    return str(value)


def infer_type(value) -> SETTING_TYPES:
    if isinstance(value, bool):
        return SETTING_TYPES.BOOLEAN
    if isinstance(value, int):
        return SETTING_TYPES.INTEGER
    if isinstance(value, float):
        return SETTING_TYPES.FLOAT
    if isinstance(value, (dict, list)):
        return SETTING_TYPES.JSON
    return SETTING_TYPES.STRING


def seed_default_settings(db: Session) -> int:
    """Insert any default setting that is missing. Returns how many were added."""
    existing = {key for (key,) in db.query(Setting.key).all()}
    added = 0

    for key, (value, setting_type, description, category, is_public) in DEFAULT_SETTINGS.items():
        if key in existing:
            continue
        db.add(Setting(
            key=key,
            value=serialize_value(value, setting_type.value),
            type=setting_type.value,
            description=description,
            category=category.value,
            is_public=is_public,
        ))
        added += 1

    if added:
        db.commit()
        logger.info(f"Seeded {added} default settings")
    return added


def get_setting(db: Session, key: str, default=None):
    setting = db.query(Setting).filter(Setting.key == key).first()
    if not setting:
        return default
    return cast_value(setting.value, setting.type)


def get_all_settings(db: Session) -> Dict[str, Dict[str, Any]]:
    grouped: Dict[str, Dict[str, Any]] = {}
    for setting in db.query(Setting).order_by(Setting.category, Setting.key).all():
        grouped.setdefault(setting.category, {})[setting.key] = {
            "value": cast_value(setting.value, setting.type),
            "type": setting.type,
            "description": setting.description,
            "isPublic": setting.is_public,
        }
    return grouped


def get_public_settings(db: Session) -> Dict[str, Any]:
    return {
        setting.key: cast_value(setting.value, setting.type)
        for setting in db.query(Setting).filter(Setting.is_public.is_(True)).order_by(Setting.key).all()
    }


def update_settings(db: Session, updates: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    try:
        if not updates:
            raise ValidationException(ERROR.VALIDATION_FAILED, {"settings": "No settings to update"})

        errors = {}
        for key, value in updates.items():
            setting = db.query(Setting).filter(Setting.key == key).first()
            if setting is None:
                setting = Setting(key=key, type=infer_type(value).value, category=SETTING_CATEGORIES.GENERAL.value)
                db.add(setting)

            try:
                serialized = serialize_value(value, setting.type)
                cast_value(serialized, setting.type)
            except (TypeError, ValueError):
                errors[key] = f"Expected a value of type {setting.type}"
                continue
            setting.value = serialized

        if errors:
            db.rollback()
            raise ValidationException(ERROR.VALIDATION_FAILED, errors)

        db.commit()
        return get_all_settings(db)

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in update_settings: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def get_payment_methods(db: Session) -> dict:
    return {
        PAYMENT_METHODS.STRIPE.value: {
            "enabled": bool(get_setting(db, "stripe_enabled", True) and app_settings.STRIPE_PUBLIC_KEY),
            "name": "Credit/Debit Card",
            "description": "Pay securely with your credit or debit card",
            "publishableKey": app_settings.STRIPE_PUBLIC_KEY,
            "fees": "2.9% + $0.30 per transaction",
        },
        PAYMENT_METHODS.BKASH.value: {
            "enabled": bool(get_setting(db, "bkash_enabled", True) and app_settings.BKASH_APP_KEY),
            "name": "bKash",
            "description": "Pay with bKash mobile wallet",
            "fees": "1.5% per transaction",
        },
        PAYMENT_METHODS.BANK_TRANSFER.value: {
            "enabled": bool(get_setting(db, "bank_transfer_enabled", True)),
            "name": "Bank Transfer",
            "description": "Direct bank transfer with receipt upload",
            "fees": "No processing fees",
        },
    }
