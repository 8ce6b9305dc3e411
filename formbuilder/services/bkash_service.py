"""
Simulated bKash checkout.

The gateway is mocked: references and transaction ids are minted locally and
there is no signature verification. A real integration has to add both.
"""
import logging
import secrets
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.models.submission_model import Submission
from formbuilder.models.user_model import User
from formbuilder.schema.payment_schema import BkashCreateRequest, BkashPaymentRequest, BkashRefundRequest
from formbuilder.exceptions import CustomException, ConflictException, ForbiddenException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import CAPABILITIES, PAYMENT_METHODS, PAYMENT_STATUS, SUBMISSION_STATUS
from formbuilder.config.env_config import settings
from formbuilder.services.payment_service import find_by_reference, find_for_new_payment, record_payment
from formbuilder.services.submission_service import append_history, transition_payment_status, transition_status
from formbuilder.utils.date_utils import utc_now
from formbuilder.utils.permission_utils import has_capability

logger = logging.getLogger(__name__)


def _payment_id() -> str:
    return "TR" + f"{secrets.randbelow(10 ** 18):018d}"


def _transaction_id(prefix: str) -> str:
    return prefix + secrets.token_hex(6).upper()


def _find(db: Session, payment_id: str) -> Submission:
    return find_by_reference(db, payment_id, PAYMENT_METHODS.BKASH)


def create_payment(db: Session, data: BkashCreateRequest) -> dict:
    try:
        submission = find_for_new_payment(db, data.submissionId, PAYMENT_METHODS.BKASH)

        payment_id = _payment_id()
        while db.query(Submission.id).filter(Submission.payment_reference == payment_id).first():
            payment_id = _payment_id()

        submission.payment_method = PAYMENT_METHODS.BKASH.value
        submission.payment_reference = payment_id
        submission.payment_amount = data.amount
        submission.payment_currency = data.currency.upper()
        transition_payment_status(submission, PAYMENT_STATUS.PENDING.value, "bkash")

        record_payment(db, submission, PAYMENT_METHODS.BKASH, payment_id, PAYMENT_STATUS.PENDING.value,
                       amount=data.amount, currency=submission.payment_currency)
        db.commit()

        logger.info(f"bKash payment {payment_id} created for submission {submission.unique_id}")
        return {
            "paymentID": payment_id,
            "createTime": utc_now().isoformat(),
            "orgName": "Form Builder App",
            "transactionStatus": "Initiated",
            "amount": float(data.amount),
            "currency": submission.payment_currency,
            "bkashURL": f"{settings.BKASH_CHECKOUT_URL.rstrip('/')}/{payment_id}",
        }

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.PAYMENT_METHOD_CONFLICT)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in bkash create_payment: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def execute_payment(db: Session, data: BkashPaymentRequest) -> dict:
    try:
        submission = _find(db, data.paymentID)

        if submission.payment_status == PAYMENT_STATUS.REFUNDED.value:
            raise ConflictException(ERROR.PAYMENT_ALREADY_REFUNDED)

        changed = transition_payment_status(submission, PAYMENT_STATUS.COMPLETED.value, "bkash")
        if changed or submission.payment_completed_at is None:
            submission.payment_completed_at = utc_now()
        if changed or not submission.payment_transaction_id:
            submission.payment_transaction_id = _transaction_id("TXN")
        transition_status(submission, SUBMISSION_STATUS.COMPLETED.value, "bkash")

        record_payment(db, submission, PAYMENT_METHODS.BKASH, data.paymentID, PAYMENT_STATUS.COMPLETED.value,
                       processed_at=submission.payment_completed_at)
        db.commit()

        return {
            "paymentID": data.paymentID,
            "paymentExecuteTime": submission.payment_completed_at.isoformat(),
            "transactionStatus": "Completed",
            "trxID": submission.payment_transaction_id,
        }

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in bkash execute_payment: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def query_payment(db: Session, data: BkashPaymentRequest) -> dict:
    submission = _find(db, data.paymentID)

    transaction_status = {
        PAYMENT_STATUS.COMPLETED.value: "Completed",
        PAYMENT_STATUS.REFUNDED.value: "Refunded",
        PAYMENT_STATUS.FAILED.value: "Failed",
    }.get(submission.payment_status, "Initiated")

    return {
        "paymentID": data.paymentID,
        "transactionStatus": transaction_status,
        "trxID": submission.payment_transaction_id,
        "amount": float(submission.payment_amount) if submission.payment_amount is not None else None,
        "currency": submission.payment_currency,
        "intent": "sale",
    }


def refund_payment(db: Session, data: BkashRefundRequest, user: User) -> dict:
    try:
        if not has_capability(user, CAPABILITIES.APPROVE_PAYMENTS):
            raise ForbiddenException(ERROR.ADMIN_REQUIRED)

        submission = _find(db, data.paymentID)

        if submission.payment_status != PAYMENT_STATUS.COMPLETED.value:
            raise ValidationException(ERROR.PAYMENT_NOT_REFUNDABLE)

        paid = Decimal(submission.payment_amount or 0)
        amount = data.amount if data.amount is not None else paid
        if amount <= 0 or amount > paid:
            raise ValidationException(ERROR.INVALID_REFUND_AMOUNT)

        refund_id = _transaction_id("REF")
        submission.refund_amount = amount
        submission.refund_transaction_id = refund_id
        submission.refunded_at = utc_now()
        transition_payment_status(submission, PAYMENT_STATUS.REFUNDED.value, user.username, data.reason)
        append_history(submission, user.username, "refund_amount", None, str(amount), data.reason)

        record_payment(db, submission, PAYMENT_METHODS.BKASH, data.paymentID, PAYMENT_STATUS.REFUNDED.value,
                       refunded_amount=amount, refunded_at=submission.refunded_at)
        db.commit()

        logger.info(f"bKash payment {data.paymentID} refunded by user {user.id}")
        return {
            "originalTrxID": submission.payment_transaction_id,
            "refundTrxID": refund_id,
            "transactionStatus": "Completed",
            "amount": float(amount),
            "currency": submission.payment_currency,
            "charge": "0",
        }

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in bkash refund_payment: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)
