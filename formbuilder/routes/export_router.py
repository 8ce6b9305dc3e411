from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from formbuilder.config.database_config import get_db
from formbuilder.constants.messages import MESSAGE
from formbuilder.middleware.auth_middleware import auth_middleware
from formbuilder.models.user_model import User
from formbuilder.schema.export_schema import ExportRequest
from formbuilder.services import export_service
from formbuilder.utils.logger_utils import handle_route_error

export_controller = APIRouter()


@export_controller.post("/csv", response_model=dict)
def export_csv(data: ExportRequest, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = export_service.export_csv(db, user, data)
        return {"success": True, "message": MESSAGE.CSV_EXPORTED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/export/csv")


@export_controller.post("/pdf", response_model=dict)
def export_pdf(data: ExportRequest, db: Session = Depends(get_db), user: User = Depends(auth_middleware)):
    try:
        response = export_service.export_pdf(db, user, data)
        return {"success": True, "message": MESSAGE.PDF_EXPORTED, "data": response}
    except Exception as e:
        handle_route_error(error=e, context="POST /api/export/pdf")


@export_controller.get("/download/{filename}", dependencies=[Depends(auth_middleware)])
def download_export(filename: str):
    try:
        path, media_type = export_service.get_export_file(filename)
        return FileResponse(path, media_type=media_type, filename=path.name)
    except Exception as e:
        handle_route_error(error=e, context=f"GET /api/export/download/{filename}")
