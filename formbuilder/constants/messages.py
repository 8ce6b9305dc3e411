# constants/messages.py

class MESSAGE:
    SUCCESS = "Success"
    USER_REGISTERED = "User registered successfully"
    USER_CREATED = "User created successfully"
    USER_UPDATED = "User updated successfully"
    USER_DELETED = "User deleted successfully"
    USER_STATUS_TOGGLED = "User status toggled successfully"
    PASSWORD_CHANGED = "Password changed successfully"
    PASSWORD_RESET = "Password reset successfully"
    AUTH_SUCCESS = "Login successful"
    TOKEN_REFRESHED = "Token refreshed successfully"
    LOGOUT_SUCCESS = "Logout successful"

    FORM_CREATED = "Form created successfully"
    FORM_UPDATED = "Form updated successfully"
    FORM_DELETED = "Form deleted successfully"
    FORM_DUPLICATED = "Form duplicated successfully"

    SUBMISSION_CREATED = "Form submitted successfully"
    SUBMISSION_UPDATED = "Submission updated successfully"
    SUBMISSION_STATUS_UPDATED = "Submission status updated successfully"
    SUBMISSION_DELETED = "Submission deleted successfully"

    PAYMENT_CONFIRMED = "Payment confirmed successfully"
    WEBHOOK_PROCESSED = "Webhook processed successfully"
    BANK_TRANSFER_RECORDED = "Bank transfer payment recorded. Pending admin approval."
    PAYMENT_APPROVED = "Payment approved successfully"
    PAYMENT_REJECTED = "Payment rejected"
    PAYMENT_REFUNDED = "Payment refunded successfully"
    FILE_UPLOADED = "File uploaded successfully"

    SETTINGS_UPDATED = "Settings updated successfully"
    CSV_EXPORTED = "CSV export generated successfully"
    PDF_EXPORTED = "PDF export generated successfully"
