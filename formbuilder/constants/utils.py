from enum import Enum


class ROLES(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    FORM_MANAGER = "form_manager"
    PAYMENT_APPROVER = "payment_approver"
    SUBMISSION_VIEWER = "submission_viewer"
    SUBMISSION_EDITOR = "submission_editor"
    NOTIFICATION_MANAGER = "notification_manager"


class CAPABILITIES(str, Enum):
    MANAGE_FORMS = "manage_forms"
    DELETE_ANY_FORM = "delete_any_form"
    VIEW_SUBMISSIONS = "view_submissions"
    EDIT_SUBMISSIONS = "edit_submissions"
    APPROVE_PAYMENTS = "approve_payments"
    MANAGE_USERS = "manage_users"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_NOTIFICATIONS = "manage_notifications"


# super_admin is not listed: it implicitly holds every capability
ROLE_CAPABILITIES = {
    ROLES.USER: frozenset(),
    ROLES.ADMIN: frozenset(CAPABILITIES),
    ROLES.FORM_MANAGER: frozenset({CAPABILITIES.MANAGE_FORMS, CAPABILITIES.VIEW_SUBMISSIONS}),
    ROLES.PAYMENT_APPROVER: frozenset({CAPABILITIES.APPROVE_PAYMENTS}),
    ROLES.SUBMISSION_VIEWER: frozenset({CAPABILITIES.VIEW_SUBMISSIONS}),
    ROLES.SUBMISSION_EDITOR: frozenset({CAPABILITIES.VIEW_SUBMISSIONS, CAPABILITIES.EDIT_SUBMISSIONS}),
    ROLES.NOTIFICATION_MANAGER: frozenset({CAPABILITIES.MANAGE_NOTIFICATIONS}),
}

ADMIN_ROLES = frozenset({ROLES.ADMIN, ROLES.SUPER_ADMIN})


class SUBMISSION_STATUS(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    APPROVED = "approved"
    REJECTED = "rejected"


class PAYMENT_STATUS(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PENDING_APPROVAL = "pending_approval"
    REJECTED = "rejected"


class PAYMENT_METHODS(str, Enum):
    STRIPE = "stripe"
    BKASH = "bkash"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"


class SETTING_TYPES(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    JSON = "json"


class SETTING_CATEGORIES(str, Enum):
    GENERAL = "general"
    PAYMENT = "payment"
    EMAIL = "email"
    SECURITY = "security"
    UI = "ui"
