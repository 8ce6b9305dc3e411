import csv
import json
import logging
import secrets
from typing import List
from xml.sax.saxutils import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from sqlalchemy.orm import Session
from formbuilder.models.form_model import Form
from formbuilder.models.submission_model import Submission
from formbuilder.models.user_model import User
from formbuilder.schema.export_schema import ExportRequest
from formbuilder.exceptions import CustomException, ForbiddenException, NotFoundException
from formbuilder.constants.error import ERROR
from formbuilder.config.env_config import settings
from formbuilder.utils.date_utils import iso, utc_now
from formbuilder.utils.field_validator import field_key
from formbuilder.utils.file_utils import ensure_directory, media_type_for, resolve_safe_path
from formbuilder.utils.permission_utils import can_access_form

logger = logging.getLogger(__name__)

PDF_VALUE_LIMIT = 100


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(_cell(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _filename(form_id: int, extension: str) -> str:
    stamp = utc_now().strftime("%Y%m%d_%H%M%S")
    return f"submissions_{form_id}_{stamp}_{secrets.token_hex(3)}.{extension}"


def _load(db: Session, user: User, data: ExportRequest):
    form = db.query(Form).filter(Form.id == data.formId).first()
    if not form:
        raise NotFoundException(ERROR.FORM_NOT_FOUND)
    if not can_access_form(user, form):
        raise ForbiddenException(ERROR.FORM_ACCESS_DENIED)

    query = db.query(Submission).filter(Submission.form_id == form.id)
    if data.status:
        query = query.filter(Submission.status == data.status)
    if data.startDate:
        query = query.filter(Submission.created_at >= data.startDate)
    if data.endDate:
        query = query.filter(Submission.created_at <= data.endDate)

    return form, query.order_by(Submission.created_at.asc(), Submission.id.asc()).all()


def _columns(form: Form) -> List[tuple]:
    return [(field_key(field), field.get("label") or field_key(field)) for field in form.fields or [] if field_key(field)]


def _result(filename: str, count: int) -> dict:
    return {
        "filename": filename,
        "downloadUrl": f"/api/export/download/{filename}",
        "recordCount": count,
    }


def export_csv(db: Session, user: User, data: ExportRequest) -> dict:
    form, submissions = _load(db, user, data)
    columns = _columns(form)

    headers = ["Submission ID", "Status", "Created At", "Updated At"] + [label for _, label in columns]
    if data.includePaymentInfo:
        headers += ["Payment Method", "Payment Status", "Payment Amount", "Payment Currency", "Payment Reference"]

    filename = _filename(form.id, "csv")
    path = ensure_directory(settings.EXPORT_DIR) / filename

    try:
        with open(path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(headers)
            for submission in submissions:
                values = submission.data or {}
                row = [submission.unique_id, submission.status, iso(submission.created_at), iso(submission.updated_at)]
                row += [_cell(values.get(key)) for key, _ in columns]
                if data.includePaymentInfo:
                    row += [
                        submission.payment_method or "",
                        submission.payment_status or "",
                        _cell(submission.payment_amount),
                        submission.payment_currency or "",
                        submission.payment_reference or "",
                    ]
                writer.writerow(row)
    except OSError as e:
        logger.error(f"Failed to write CSV export {path}: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)

    logger.info(f"CSV export {filename} written with {len(submissions)} rows")
    return _result(filename, len(submissions))


def export_pdf(db: Session, user: User, data: ExportRequest) -> dict:
    form, submissions = _load(db, user, data)
    columns = _columns(form)

    filename = _filename(form.id, "pdf")
    path = ensure_directory(settings.EXPORT_DIR) / filename

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ExportTitle",
        parent=styles["Heading1"],
        fontSize=18,
        textColor=colors.HexColor("#1a1a1a"),
        spaceAfter=12,
    )

    elements = [
        Paragraph(escape(form.title), title_style),
        Paragraph(f"Total Submissions: {len(submissions)}", styles["Normal"]),
        Paragraph(f"Generated: {utc_now().strftime('%Y-%m-%d %H:%M:%S')} UTC", styles["Normal"]),
        Spacer(1, 0.3 * inch),
    ]

    for submission in submissions:
        values = submission.data or {}
        rows = [
            ["Field", "Value"],
            ["Submission ID", submission.unique_id],
            ["Status", submission.status],
            ["Submitted At", iso(submission.created_at) or ""],
        ]
        for key, label in columns:
            text = _cell(values.get(key))
            if len(text) > PDF_VALUE_LIMIT:
                text = text[:PDF_VALUE_LIMIT] + "..."
            rows.append([label, text])
        if data.includePaymentInfo:
            rows.append(["Payment Method", submission.payment_method or ""])
            rows.append(["Payment Status", submission.payment_status or ""])
            rows.append(["Payment Amount", f"{_cell(submission.payment_amount)} {submission.payment_currency or ''}".strip()])

        table = Table(rows, colWidths=[2.5 * inch, 4 * inch])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 1, colors.black),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
        ]))
        elements.append(table)
        elements.append(Spacer(1, 0.25 * inch))

    try:
        doc = SimpleDocTemplate(
            str(path),
            pagesize=letter,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"{form.title} - Submissions",
        )
        doc.build(elements)
    except OSError as e:
        logger.error(f"Failed to write PDF export {path}: {e}", exc_info=True)
        raise CustomException(status_code=500, message=ERROR.INTERNAL_ERROR)

    logger.info(f"PDF export {filename} written with {len(submissions)} submissions")
    return _result(filename, len(submissions))


def get_export_file(filename: str):
    path = resolve_safe_path(settings.EXPORT_DIR, filename)
    return path, media_type_for(path)
