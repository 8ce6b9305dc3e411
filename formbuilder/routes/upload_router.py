from fastapi import APIRouter, File, UploadFile
from fastapi.responses import FileResponse
from formbuilder.constants.messages import MESSAGE
from formbuilder.services import upload_service
from formbuilder.utils.logger_utils import handle_route_error

upload_controller = APIRouter()


@upload_controller.post("/payment-receipt", response_model=dict, status_code=201)
def upload_payment_receipt(receipt: UploadFile = File(...)):
    try:
        response = upload_service.save_payment_receipt(receipt)
        return {"success": True, "message": MESSAGE.FILE_UPLOADED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/upload/payment-receipt")


@upload_controller.get("/files/{filename}")
def get_uploaded_file(filename: str):
    try:
        path, media_type = upload_service.get_uploaded_file(filename)
        return FileResponse(path, media_type=media_type, headers={"Cache-Control": "public, max-age=31536000"})
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/upload/files/{filename}")
