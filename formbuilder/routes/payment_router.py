from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.middleware.auth_middleware import auth_middleware
from formbuilder.models.user_model import User
from formbuilder.schema.payment_schema import StripeIntentRequest, StripeConfirmRequest, BankTransferRequest, BankTransferDecision
from formbuilder.services import bank_transfer_service, stripe_service
from formbuilder.utils.logger_utils import handle_route_error

payment_controller = APIRouter()


@payment_controller.post("/stripe/create-intent", response_model=dict)
def create_stripe_intent(data: StripeIntentRequest, db: Session = Depends(get_db)):
    try:
        response = stripe_service.create_payment_intent(db, data)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/payment/stripe/create-intent")


@payment_controller.post("/stripe/confirm", response_model=dict)
def confirm_stripe_payment(data: StripeConfirmRequest, db: Session = Depends(get_db)):
    try:
        response = stripe_service.confirm_payment(db, data)
        return {"success": True, "message": MESSAGE.PAYMENT_CONFIRMED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/payment/stripe/confirm")


@payment_controller.post("/stripe/webhook", response_model=dict)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
):
    """Signature is checked against the raw body, so it is read before any parsing"""
    try:
        payload = await request.body()
        response = await run_in_threadpool(stripe_service.handle_webhook, db, payload, stripe_signature)
        return {"success": True, "message": MESSAGE.WEBHOOK_PROCESSED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/payment/stripe/webhook")


@payment_controller.post("/bank-transfer", response_model=dict, status_code=201)
def record_bank_transfer(data: BankTransferRequest, db: Session = Depends(get_db)):
    try:
        response = bank_transfer_service.record_transfer(db, data)
        return {"success": True, "message": MESSAGE.BANK_TRANSFER_RECORDED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/payment/bank-transfer")


@payment_controller.patch("/bank-transfer/{payment_id}/approve", response_model=dict)
def approve_bank_transfer(
    payment_id: str,
    data: Optional[BankTransferDecision] = None,
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = bank_transfer_service.approve_transfer(db, payment_id, data or BankTransferDecision(), user)
        return {"success": True, "message": MESSAGE.PAYMENT_APPROVED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context=f"PATCH /api/payment/bank-transfer/{payment_id}/approve")


@payment_controller.patch("/bank-transfer/{payment_id}/reject", response_model=dict)
def reject_bank_transfer(
    payment_id: str,
    data: Optional[BankTransferDecision] = None,
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = bank_transfer_service.reject_transfer(db, payment_id, data or BankTransferDecision(), user)
        return {"success": True, "message": MESSAGE.PAYMENT_REJECTED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context=f"PATCH /api/payment/bank-transfer/{payment_id}/reject")
