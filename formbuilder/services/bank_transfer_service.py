import logging
import secrets
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.models.submission_model import Submission
from formbuilder.models.user_model import User
from formbuilder.schema.payment_schema import BankTransferRequest, BankTransferDecision
from formbuilder.exceptions import CustomException, ConflictException, ForbiddenException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import CAPABILITIES, PAYMENT_METHODS, PAYMENT_STATUS, SUBMISSION_STATUS
from formbuilder.services.payment_service import find_by_reference, find_for_new_payment, payment_summary, record_payment
from formbuilder.services.submission_service import transition_payment_status, transition_status
from formbuilder.utils.date_utils import utc_now
from formbuilder.utils.permission_utils import has_capability

logger = logging.getLogger(__name__)


def receipt_url(filename):
    return f"/api/upload/files/{filename}" if filename else None


def _require_approver(user: User):
    if not has_capability(user, CAPABILITIES.APPROVE_PAYMENTS):
        raise ForbiddenException(ERROR.ADMIN_REQUIRED)


def _awaiting_approval(db: Session, payment_id: str) -> Submission:
    submission = find_by_reference(db, payment_id, PAYMENT_METHODS.BANK_TRANSFER)
    if submission.payment_status != PAYMENT_STATUS.PENDING_APPROVAL.value:
        raise ValidationException(ERROR.PAYMENT_NOT_AWAITING_APPROVAL)
    return submission


def record_transfer(db: Session, data: BankTransferRequest) -> dict:
    try:
        submission = find_for_new_payment(db, data.submissionId, PAYMENT_METHODS.BANK_TRANSFER)

        payment_id = f"pay_bank_{secrets.token_hex(8)}"

        submission.payment_method = PAYMENT_METHODS.BANK_TRANSFER.value
        submission.payment_reference = payment_id
        submission.payment_amount = data.amount
        submission.payment_currency = data.currency.upper()
        submission.payment_details = data.bankDetails
        submission.payment_receipt = data.receiptFile
        submission.payment_notes = data.notes
        transition_payment_status(submission, PAYMENT_STATUS.PENDING_APPROVAL.value, "bank_transfer", data.notes)

        record_payment(
            db, submission, PAYMENT_METHODS.BANK_TRANSFER, payment_id, PAYMENT_STATUS.PENDING_APPROVAL.value,
            amount=data.amount, currency=submission.payment_currency,
            payment_metadata={"bankDetails": data.bankDetails, "notes": data.notes},
            receipt_url=receipt_url(data.receiptFile),
        )
        db.commit()
        db.refresh(submission)

        logger.info(f"Bank transfer {payment_id} recorded for submission {submission.unique_id}")
        return payment_summary(submission, {
            "paymentId": payment_id,
            "status": submission.payment_status,
            "receiptUrl": receipt_url(data.receiptFile),
        })

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.PAYMENT_METHOD_CONFLICT)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in record_transfer: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def approve_transfer(db: Session, payment_id: str, data: BankTransferDecision, user: User) -> dict:
    try:
        _require_approver(user)
        submission = _awaiting_approval(db, payment_id)

        transition_payment_status(submission, PAYMENT_STATUS.COMPLETED.value, user.username, data.adminNotes)
        transition_status(submission, SUBMISSION_STATUS.COMPLETED.value, user.username, data.adminNotes)
        submission.payment_completed_at = utc_now()
        if data.adminNotes is not None:
            submission.admin_notes = data.adminNotes

        record_payment(db, submission, PAYMENT_METHODS.BANK_TRANSFER, payment_id, PAYMENT_STATUS.COMPLETED.value,
                       processed_at=submission.payment_completed_at)
        db.commit()
        db.refresh(submission)

        logger.info(f"Bank transfer {payment_id} approved by user {user.id}")
        return payment_summary(submission, {"paymentId": payment_id, "status": submission.payment_status})

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in approve_transfer: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def reject_transfer(db: Session, payment_id: str, data: BankTransferDecision, user: User) -> dict:
    try:
        _require_approver(user)
        submission = _awaiting_approval(db, payment_id)

        transition_payment_status(submission, PAYMENT_STATUS.REJECTED.value, user.username, data.reason)
        transition_status(submission, SUBMISSION_STATUS.FAILED.value, user.username, data.reason)
        submission.payment_rejection_reason = data.reason
        if data.adminNotes is not None:
            submission.admin_notes = data.adminNotes

        record_payment(db, submission, PAYMENT_METHODS.BANK_TRANSFER, payment_id, PAYMENT_STATUS.REJECTED.value,
                       failure_reason=data.reason)
        db.commit()
        db.refresh(submission)

        logger.info(f"Bank transfer {payment_id} rejected by user {user.id}")
        return payment_summary(submission, {
            "paymentId": payment_id,
            "status": submission.payment_status,
            "reason": submission.payment_rejection_reason,
        })

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in reject_transfer: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)
