import json
import logging
from decimal import Decimal
from typing import Optional
import stripe
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from formbuilder.models.submission_model import Submission
from formbuilder.schema.payment_schema import StripeIntentRequest, StripeConfirmRequest
from formbuilder.exceptions import CustomException, ConflictException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.constants.utils import PAYMENT_METHODS, PAYMENT_STATUS, SUBMISSION_STATUS
from formbuilder.config.env_config import settings
from formbuilder.services.payment_service import find_by_reference, find_for_new_payment, payment_summary, record_payment
from formbuilder.services.submission_service import transition_payment_status, transition_status
from formbuilder.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

SUCCEEDED_EVENT = "payment_intent.succeeded"
FAILED_EVENT = "payment_intent.payment_failed"


def _secret_key() -> str:
    if not settings.STRIPE_SECRET_KEY:
        raise CustomException(status_code=500, message=ERROR.STRIPE_NOT_CONFIGURED)
    return settings.STRIPE_SECRET_KEY


def _stripe_error(error: stripe.StripeError) -> CustomException:
    logger.warning(f"Stripe request failed: {error}")
    return CustomException(status_code=400, message=f"Stripe error: {error.user_message or str(error)}")


def mark_succeeded(db: Session, submission: Submission, actor: str, transaction_id: Optional[str] = None):
    """Completed payment and completed submission. Applying it twice is a no-op."""
    changed = transition_payment_status(submission, PAYMENT_STATUS.COMPLETED.value, actor)
    transition_status(submission, SUBMISSION_STATUS.COMPLETED.value, actor)

    if changed or submission.payment_completed_at is None:
        submission.payment_completed_at = utc_now()
    if transaction_id:
        submission.payment_transaction_id = transaction_id

    record_payment(
        db, submission, PAYMENT_METHODS.STRIPE, submission.payment_reference,
        PAYMENT_STATUS.COMPLETED.value, processed_at=submission.payment_completed_at
    )


def mark_failed(db: Session, submission: Submission, actor: str, reason: Optional[str] = None):
    transition_payment_status(submission, PAYMENT_STATUS.FAILED.value, actor, reason)
    transition_status(submission, SUBMISSION_STATUS.FAILED.value, actor, reason)

    record_payment(
        db, submission, PAYMENT_METHODS.STRIPE, submission.payment_reference,
        PAYMENT_STATUS.FAILED.value, failure_reason=reason
    )


def create_payment_intent(db: Session, data: StripeIntentRequest) -> dict:
    api_key = _secret_key()

    try:
        submission = find_for_new_payment(db, data.submissionId, PAYMENT_METHODS.STRIPE)

        metadata = dict(data.metadata or {})
        metadata["submission_id"] = submission.unique_id

        try:
            intent = stripe.PaymentIntent.create(
                amount=data.amount,
                currency=data.currency.lower(),
                description=data.description or f"Payment for submission {submission.unique_id}",
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                api_key=api_key,
            )
        except stripe.StripeError as e:
            raise _stripe_error(e)

        submission.payment_method = PAYMENT_METHODS.STRIPE.value
        submission.payment_reference = intent.id
        submission.payment_amount = Decimal(data.amount) / 100
        submission.payment_currency = data.currency.upper()
        transition_payment_status(submission, PAYMENT_STATUS.PENDING.value, "stripe")

        record_payment(
            db, submission, PAYMENT_METHODS.STRIPE, intent.id, PAYMENT_STATUS.PENDING.value,
            amount=submission.payment_amount, currency=submission.payment_currency, payment_metadata=metadata
        )
        db.commit()
        db.refresh(submission)

        logger.info(f"Stripe intent {intent.id} created for submission {submission.unique_id}")
        return payment_summary(submission, {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "publishableKey": settings.STRIPE_PUBLIC_KEY,
        })

    except CustomException:
        raise
    except IntegrityError:
        db.rollback()
        raise ConflictException(ERROR.PAYMENT_METHOD_CONFLICT)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in create_payment_intent: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def confirm_payment(db: Session, data: StripeConfirmRequest) -> dict:
    """
    Client-side shortcut that polls Stripe for the intent status. The webhook
    stays the source of truth; both converge on the same terminal state.
    """
    api_key = _secret_key()

    try:
        submission = find_by_reference(db, data.paymentIntentId, PAYMENT_METHODS.STRIPE)

        try:
            intent = stripe.PaymentIntent.retrieve(data.paymentIntentId, api_key=api_key)
        except stripe.StripeError as e:
            raise _stripe_error(e)

        if intent.status == "succeeded":
            mark_succeeded(db, submission, "stripe_confirm", getattr(intent, "latest_charge", None))
        else:
            mark_failed(db, submission, "stripe_confirm", f"Payment intent status: {intent.status}")

        db.commit()
        db.refresh(submission)
        return payment_summary(submission, {"intentStatus": intent.status})

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in confirm_payment: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)


def handle_webhook(db: Session, payload: bytes, signature: Optional[str]) -> dict:
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise CustomException(status_code=500, message=ERROR.WEBHOOK_SECRET_NOT_CONFIGURED)

    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(body, signature or "", settings.STRIPE_WEBHOOK_SECRET)
        event = json.loads(body)
    except stripe.SignatureVerificationError:
        raise ValidationException(ERROR.INVALID_WEBHOOK_SIGNATURE)
    except ValueError:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise ValidationException(ERROR.INVALID_WEBHOOK_PAYLOAD)

    if not isinstance(event, dict):
        raise ValidationException(ERROR.INVALID_WEBHOOK_PAYLOAD)

    event_type = event.get("type")
    data = event.get("data")
    intent = data.get("object") if isinstance(data, dict) else None
    if not isinstance(intent, dict):
        intent = {}
    logger.info(f"Stripe webhook received: {event_type} ({event.get('id')})")

    if event_type not in (SUCCEEDED_EVENT, FAILED_EVENT):
        return {"received": True, "handled": False, "type": event_type}

    try:
        submission = find_by_reference(
            db, intent.get("id") or "", PAYMENT_METHODS.STRIPE, ERROR.PAYMENT_NOT_FOUND_FOR_INTENT
        )

        if event_type == SUCCEEDED_EVENT:
            mark_succeeded(db, submission, "stripe_webhook", intent.get("latest_charge"))
        else:
            last_error = intent.get("last_payment_error") or {}
            mark_failed(db, submission, "stripe_webhook", last_error.get("message") or "Payment failed")

        db.commit()
        return {
            "received": True,
            "handled": True,
            "type": event_type,
            "submissionId": submission.unique_id,
            "paymentStatus": submission.payment_status,
        }

    except CustomException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error in handle_webhook: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)
