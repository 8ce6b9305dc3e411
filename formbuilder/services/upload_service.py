import logging
import secrets
import time
from fastapi import UploadFile
from formbuilder.exceptions import CustomException, ValidationException
from formbuilder.constants.error import ERROR
from formbuilder.config.env_config import settings
from formbuilder.utils.file_utils import ensure_directory, media_type_for, resolve_safe_path

logger = logging.getLogger(__name__)

ALLOWED_RECEIPT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
}


def save_payment_receipt(receipt: UploadFile) -> dict:
    if receipt is None or not receipt.filename:
        raise ValidationException(ERROR.NO_FILE_UPLOADED)

    extension = ALLOWED_RECEIPT_TYPES.get(receipt.content_type)
    if extension is None:
        raise ValidationException(ERROR.INVALID_FILE_TYPE)

    # Read one byte past the limit so oversized files are detected without loading them whole
    content = receipt.file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValidationException(ERROR.FILE_TOO_LARGE)

    filename = f"payment_receipt-{int(time.time())}-{secrets.randbelow(900_000_000) + 100_000_000}.{extension}"
    path = ensure_directory(settings.UPLOAD_DIR) / filename

    try:
        path.write_bytes(content)
    except OSError as e:
        logger.error(f"Failed to store receipt {filename}: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)

    logger.info(f"Payment receipt stored as {filename} ({len(content)} bytes)")
    return {
        "filename": filename,
        "url": f"/api/upload/files/{filename}",
        "size": len(content),
        "type": receipt.content_type,
    }


def get_uploaded_file(filename: str):
    path = resolve_safe_path(settings.UPLOAD_DIR, filename)
    return path, media_type_for(path)
