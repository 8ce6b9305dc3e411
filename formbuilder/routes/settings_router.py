from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.services import settings_service
from formbuilder.utils.logger_utils import handle_route_error

settings_controller = APIRouter()


@settings_controller.get("", response_model=dict)
def get_public_settings(db: Session = Depends(get_db)):
    try:
        response = settings_service.get_public_settings(db)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"settings": response}}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/settings")


@settings_controller.get("/payment-methods", response_model=dict)
def get_payment_methods(db: Session = Depends(get_db)):
    try:
        response = settings_service.get_payment_methods(db)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"paymentMethods": response}}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/settings/payment-methods")
