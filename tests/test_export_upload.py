import csv
import io
import pytest
from formbuilder.config.env_config import settings
from formbuilder.exceptions import CustomException
from formbuilder.utils.file_utils import resolve_safe_path


def test_csv_export_and_download(client, user_token, auth, create_form, submit):
    form = create_form(user_token)
    submit(form["id"])
    submit(form["id"], {"name": "John Roe", "email": "john@example.com"}, payment={"method": "card", "amount": "5"})

    response = client.post("/api/export/csv", json={"formId": form["id"], "includePaymentInfo": True}, headers=auth(user_token))
    assert response.status_code == 200
    result = response.json()["data"]
    assert result["recordCount"] == 2
    assert result["filename"].startswith(f"submissions_{form['id']}_")
    assert result["downloadUrl"] == f"/api/export/download/{result['filename']}"

    download = client.get(result["downloadUrl"], headers=auth(user_token))
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/csv")

    rows = list(csv.reader(io.StringIO(download.text)))
    assert rows[0][:6] == ["Submission ID", "Status", "Created At", "Updated At", "Full name", "Email"]
    assert "Payment Method" in rows[0]
    assert {row[4] for row in rows[1:]} == {"Jane Doe", "John Roe"}


def test_csv_export_status_filter(client, user_token, auth, create_form, submit):
    form = create_form(user_token)
    submit(form["id"])
    response = client.post("/api/export/csv", json={"formId": form["id"], "status": "completed"}, headers=auth(user_token))
    assert response.json()["data"]["recordCount"] == 0


def test_pdf_export(client, user_token, auth, create_form, submit):
    form = create_form(user_token, title="Tickets & <Passes>")
    submit(form["id"])

    response = client.post("/api/export/pdf", json={"formId": form["id"]}, headers=auth(user_token))
    assert response.status_code == 200
    filename = response.json()["data"]["filename"]
    assert filename.endswith(".pdf")

    download = client.get(f"/api/export/download/{filename}", headers=auth(user_token))
    assert download.status_code == 200
    assert download.content.startswith(b"%PDF")


def test_export_of_foreign_form_is_forbidden(client, make_user, auth, create_form):
    _, owner = make_user("owner")
    _, other = make_user("other")
    form = create_form(owner)

    assert client.post("/api/export/csv", json={"formId": form["id"]}, headers=auth(other)).status_code == 403
    assert client.post("/api/export/csv", json={"formId": 999}, headers=auth(owner)).status_code == 404


def test_download_filename_guard(client, user_token, auth):
    assert client.get("/api/export/download/evil$name.csv", headers=auth(user_token)).status_code == 403
    assert client.get("/api/export/download/missing.csv", headers=auth(user_token)).status_code == 404


def test_resolve_safe_path_blocks_traversal(tmp_path):
    (tmp_path / "inside.csv").write_text("ok")

    assert resolve_safe_path(str(tmp_path), "inside.csv").name == "inside.csv"

    for name, status in (("..", 403), ("../secret.csv", 403), ("a/b.csv", 403), ("nope.csv", 404)):
        with pytest.raises(CustomException) as exc:
            resolve_safe_path(str(tmp_path), name)
        assert exc.value.status_code == status


def test_upload_receipt_and_fetch(client):
    response = client.post(
        "/api/upload/payment-receipt",
        files={"receipt": ("receipt.png", b"\x89PNG\r\n\x1a\nfake-image", "image/png")},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["filename"].startswith("payment_receipt-")
    assert data["filename"].endswith(".png")
    assert data["type"] == "image/png"

    fetched = client.get(data["url"])
    assert fetched.status_code == 200
    assert fetched.content == b"\x89PNG\r\n\x1a\nfake-image"


def test_upload_rejects_bad_type_and_size(client, monkeypatch):
    bad_type = client.post(
        "/api/upload/payment-receipt",
        files={"receipt": ("script.sh", b"echo hi", "text/x-shellscript")},
    )
    assert bad_type.status_code == 400

    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    too_big = client.post(
        "/api/upload/payment-receipt",
        files={"receipt": ("big.pdf", b"%PDF-" + b"0" * 100, "application/pdf")},
    )
    assert too_big.status_code == 400
