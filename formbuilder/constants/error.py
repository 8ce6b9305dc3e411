# constants/errors.py
class ERROR:
    USER_NOT_FOUND = "User not found"
    INVALID_CREDENTIALS = "Invalid credentials"
    USER_ALREADY_EXISTS = "User already exists with this email or username"
    EMAIL_ALREADY_EXISTS = "Email already exists"
    USERNAME_ALREADY_EXISTS = "Username already exists"
    CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"
    CANNOT_DELETE_SUPER_ADMIN = "Cannot delete super admin"
    SUPER_ADMIN_ROLE_DENIED = "Only a super admin can grant the super admin role"
    SUPER_ADMIN_MANAGED_BY_SUPER_ADMIN = "Only a super admin can modify a super admin account"
    USER_HAS_FORMS = "Cannot delete a user who still owns forms"
    ACCESS_DENIED = "Access denied"
    ADMIN_REQUIRED = "Admin access required"
    INTERNAL_ERROR = "An error occurred while processing your request"
    TOKEN_REQUIRED = "Token required"
    INVALID_TOKEN = "Invalid token"
    VALIDATION_FAILED = "Validation failed"
    ROUTE_NOT_FOUND = "Route not found"
    METHOD_NOT_ALLOWED = "Method not allowed"
    TOO_MANY_REQUESTS = "Too many requests. Please try again later."

    FORM_NOT_FOUND = "Form not found"
    FORM_NOT_ACTIVE = "Form is not active"
    FORM_ACCESS_DENIED = "Unauthorized access to form"
    FORM_EDIT_DENIED = "Unauthorized to edit this form"
    FORM_DELETE_DENIED = "Unauthorized to delete this form"
    FORM_HAS_SUBMISSIONS = "Cannot delete form with existing submissions"
    CUSTOM_URL_EXISTS = "Custom URL already exists"

    SUBMISSION_NOT_FOUND = "Submission not found"
    EDIT_CODE_REQUIRED = "Edit code is required"
    INVALID_EDIT_CODE = "Invalid edit code"
    EDITING_NOT_ALLOWED = "Editing is not allowed for this form"
    INVALID_STATUS = "Invalid status"
    INVALID_PAYMENT_STATUS = "Invalid payment status"
    SUBMISSION_CONFLICT = "Submission could not be stored, please try again"

    PAYMENT_NOT_FOUND = "Payment not found"
    PAYMENT_NOT_FOUND_FOR_INTENT = "Submission not found for this payment"
    PAYMENT_METHOD_CONFLICT = "A payment for this submission was already started with another method"
    PAYMENT_NOT_AWAITING_APPROVAL = "Payment is not awaiting approval"
    PAYMENT_NOT_REFUNDABLE = "Only completed payments can be refunded"
    PAYMENT_ALREADY_REFUNDED = "Payment has already been refunded"
    INVALID_REFUND_AMOUNT = "Refund amount must be positive and must not exceed the paid amount"
    STRIPE_NOT_CONFIGURED = "Stripe is not configured"
    WEBHOOK_SECRET_NOT_CONFIGURED = "Webhook secret not configured"
    INVALID_WEBHOOK_PAYLOAD = "Invalid payload"
    INVALID_WEBHOOK_SIGNATURE = "Invalid signature"

    INVALID_FILENAME = "Invalid filename"
    FILE_NOT_FOUND = "File not found"
    NO_FILE_UPLOADED = "No file uploaded"
    INVALID_FILE_TYPE = "Invalid file type. Only JPEG, PNG, and PDF files are allowed."
    FILE_TOO_LARGE = "File too large. Maximum size is 10MB."
