from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.middleware.auth_middleware import auth_middleware
from formbuilder.models.user_model import User
from formbuilder.schema.payment_schema import BkashCreateRequest, BkashPaymentRequest, BkashRefundRequest
from formbuilder.services import bkash_service
from formbuilder.utils.logger_utils import handle_route_error

bkash_controller = APIRouter()


@bkash_controller.post("/create", response_model=dict)
def create_bkash_payment(data: BkashCreateRequest, db: Session = Depends(get_db)):
    try:
        response = bkash_service.create_payment(db, data)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/bkash/create")


@bkash_controller.post("/execute", response_model=dict)
def execute_bkash_payment(data: BkashPaymentRequest, db: Session = Depends(get_db)):
    try:
        response = bkash_service.execute_payment(db, data)
        return {"success": True, "message": MESSAGE.PAYMENT_CONFIRMED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/bkash/execute")


@bkash_controller.post("/query", response_model=dict)
def query_bkash_payment(data: BkashPaymentRequest, db: Session = Depends(get_db)):
    try:
        response = bkash_service.query_payment(db, data)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/bkash/query")


@bkash_controller.post("/refund", response_model=dict)
def refund_bkash_payment(data: BkashRefundRequest, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = bkash_service.refund_payment(db, data, user)
        return {"success": True, "message": MESSAGE.PAYMENT_REFUNDED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/bkash/refund")
