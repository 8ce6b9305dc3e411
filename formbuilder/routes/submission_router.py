import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.middleware.auth_middleware import auth_middleware
from formbuilder.models.user_model import User
from formbuilder.schema.submission_schema import (
    SubmissionCreate, PublicSubmissionUpdate, VerifyEditCodeRequest, SubmissionStatusUpdate, SubmissionUpdate
)
from formbuilder.services import submission_service
from formbuilder.services.notification_service import send_status_notification
from formbuilder.utils.logger_utils import handle_route_error

logger = logging.getLogger(__name__)

submission_controller = APIRouter()


@submission_controller.post("", response_model=dict, status_code=201)
def create_submission(data: SubmissionCreate, request: Request, db: Session = Depends(get_db)):
    try:
        ip_address = request.client.host if request.client else None
        response = submission_service.store_submission(db, data, ip_address, request.headers.get("user-agent"))
        return {"success": True, "message": MESSAGE.SUBMISSION_CREATED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/submissions")


@submission_controller.get("/public/{unique_id}", response_model=dict)
def show_public_submission(unique_id: str, code: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        response = submission_service.show_public(db, unique_id, code)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"submission": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/submissions/public/{unique_id}")


@submission_controller.put("/public/{unique_id}", response_model=dict)
def update_public_submission(unique_id: str, data: PublicSubmissionUpdate, db: Session = Depends(get_db)):
    try:
        response = submission_service.update_public(db, unique_id, data)
        return {"success": True, "message": MESSAGE.SUBMISSION_UPDATED, "data": {"submission": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"PUT /api/submissions/public/{unique_id}")


@submission_controller.post("/public/{unique_id}/verify-edit-code", response_model=dict)
def verify_edit_code(unique_id: str, data: VerifyEditCodeRequest, db: Session = Depends(get_db)):
    try:
        response = submission_service.verify_edit_code(db, unique_id, data)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context=f"POST /api/submissions/public/{unique_id}/verify-edit-code")


@submission_controller.get("", response_model=dict)
def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    formId: Optional[int] = None,
    status: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = submission_service.list_submissions(db, user, page, limit, formId, status, startDate, endDate)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="GET /api/submissions")


@submission_controller.get("/form/{form_id}", response_model=dict)
def list_form_submissions(
    form_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = submission_service.list_by_form(db, user, form_id, page, limit)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": response}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/submissions/form/{form_id}")


@submission_controller.get("/{submission_id}", response_model=dict)
def get_submission(submission_id: str, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = submission_service.get_submission(db, user, submission_id)
        return {"success": True, "message": MESSAGE.SUCCESS, "data": {"submission": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/submissions/{submission_id}")


@submission_controller.put("/{submission_id}", response_model=dict)
def update_submission(
    submission_id: str,
    data: SubmissionUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    try:
        response = submission_service.update_submission(db, user, submission_id, data)
        return {"success": True, "message": MESSAGE.SUBMISSION_UPDATED, "data": {"submission": response}}
    except Exception as e:
        handle_route_error(error=e, context=f"PUT /api/submissions/{submission_id}")


@submission_controller.patch("/{submission_id}/status", response_model=dict)
async def update_submission_status(
    submission_id: str,
    data: SubmissionStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(auth_middleware),
):
    """
    Set the administrative status of a submission.
    Posts to the notification webhook when notifyUser is set
    """
    try:
        response = await run_in_threadpool(submission_service.update_status, db, user, submission_id, data)

        notified = False
        if data.notifyUser:
            fields = await run_in_threadpool(submission_service.form_fields, db, response["formId"])
            notified = await send_status_notification(response, fields)
            if not notified:
                logger.warning(f"Status notification not delivered for {response['uniqueId']}")

        return {
            "success": True,
            "message": MESSAGE.SUBMISSION_STATUS_UPDATED,
            "data": {"submission": response, "notificationSent": notified},
        }
    except Exception as e:
        handle_route_error(error=e, context=f"PATCH /api/submissions/{submission_id}/status")


@submission_controller.delete("/{submission_id}", response_model=dict)
def delete_submission(submission_id: str, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        submission_service.delete_submission(db, user, submission_id)
        return {"success": True, "message": MESSAGE.SUBMISSION_DELETED}
    except Exception as e:
        handle_route_error(error=e, context=f"DELETE /api/submissions/{submission_id}")
