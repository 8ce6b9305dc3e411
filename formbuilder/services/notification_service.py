import httpx
from typing import Optional
from formbuilder.config.env_config import settings
import logging

logger = logging.getLogger(__name__)


def find_recipient(fields, data) -> Optional[str]:
    """First value submitted for an email-type field, if any."""
    for field in fields or []:
        if field.get("type") == "email":
            value = (data or {}).get(field.get("id") or field.get("name") or field.get("label"))
            if value:
                return value
    return None


async def send_status_notification(submission: dict, fields=None):
    """
    POST a submission status change to the notification webhook

    Args:
        submission: formatted submission (see submission_service.format_submission)
        fields: field definitions of the submission's form, used to find the submitter's email
    """
    webhook_url = settings.NOTIFICATION_WEBHOOK_URL
    if not webhook_url:
        logger.debug("Notification webhook not configured, skipping status notification")
        return False

    payload = {
        "event": "submission.status_updated",
        "submissionId": submission["uniqueId"],
        "formId": submission["formId"],
        "formTitle": submission.get("formTitle"),
        "status": submission["status"],
        "paymentStatus": submission["payment"]["status"],
        "adminNotes": submission.get("adminNotes"),
        "recipient": find_recipient(fields, submission.get("data")),
        "viewUrl": f"{settings.FRONTEND_URL.rstrip('/')}/submissions/{submission['uniqueId']}",
    }

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(webhook_url, json=payload)
            response.raise_for_status()
            logger.info(f"Status notification sent for submission {submission['uniqueId']}")
            return True
    except httpx.HTTPError as e:
        logger.error(f"Failed to send status notification for {submission['uniqueId']}: {str(e)}")
        return False
