"""
State contract shared by the payment adapters.

Every adapter stores the external id it minted in ``Submission.payment_reference``
and stamps ``payment_method``. Lookups always filter on both columns, so one
adapter can never move a payment that another adapter started.
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session
from formbuilder.models.payment_model import Payment
from formbuilder.models.submission_model import Submission
from formbuilder.exceptions import ConflictException, NotFoundException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import PAYMENT_METHODS
from formbuilder.services.submission_service import find_submission
from formbuilder.utils.date_utils import iso

logger = logging.getLogger(__name__)


def find_by_reference(db: Session, reference: str, method: PAYMENT_METHODS,
                      message: str = ERROR.PAYMENT_NOT_FOUND) -> Submission:
    submission = (
        db.query(Submission)
        .filter(Submission.payment_reference == reference, Submission.payment_method == method.value)
        .first()
    )
    if not submission:
        raise NotFoundException(message)
    return submission


def find_for_new_payment(db: Session, submission_id: str, method: PAYMENT_METHODS) -> Submission:
    """Submission about to get a payment from ``method``; 409 when another adapter already owns it."""
    submission = find_submission(db, submission_id)

    if submission.payment_reference and submission.payment_method != method.value:
        raise ConflictException(ERROR.PAYMENT_METHOD_CONFLICT)

    return submission


def record_payment(db: Session, submission: Submission, method: PAYMENT_METHODS, reference: str,
                   status: str, **fields) -> Payment:
    """Create or update the audit row for one external payment. Caller commits."""
    payment = (
        db.query(Payment)
        .filter(Payment.payment_method == method.value, Payment.payment_id == reference)
        .first()
    )
    if payment is None:
        payment = Payment(
            submission_id=submission.id,
            payment_method=method.value,
            payment_id=reference,
            amount=submission.payment_amount,
            currency=submission.payment_currency,
        )
        db.add(payment)

    payment.status = status
    for key, value in fields.items():
        setattr(payment, key, value)

    return payment


def payment_summary(submission: Submission, extra: Optional[dict] = None) -> dict:
    summary = {
        "submissionId": submission.unique_id,
        "paymentMethod": submission.payment_method,
        "paymentReference": submission.payment_reference,
        "paymentStatus": submission.payment_status,
        "submissionStatus": submission.status,
        "amount": float(submission.payment_amount) if submission.payment_amount is not None else None,
        "currency": submission.payment_currency,
        "transactionId": submission.payment_transaction_id,
        "completedAt": iso(submission.payment_completed_at),
    }
    if extra:
        summary.update(extra)
    return summary
