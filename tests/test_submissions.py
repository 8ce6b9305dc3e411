import asyncio
import re
import pytest
from formbuilder.services import submission_service
from formbuilder.utils.field_validator import validate_submission_data

UNIQUE_ID = re.compile(r"^[A-Z]{1,4}\d{4}-\d{6}$")


def test_store_returns_unique_id_and_edit_code(client, user_token, auth, create_form, submit):
    form = create_form(user_token)
    response = submit(form["id"], metadata={"source": "landing"})

    assert response.status_code == 201
    data = response.json()["data"]
    assert UNIQUE_ID.match(data["uniqueId"])
    assert data["uniqueId"].startswith("EVEN")
    assert re.match(r"^[A-Z0-9]{8}$", data["editCode"])
    assert data["status"] == "pending"

    refreshed = client.get(f"/api/forms/{form['id']}", headers=auth(user_token)).json()["data"]["form"]
    assert refreshed["submissionCount"] == 1


@pytest.mark.parametrize("title,prefix", [("2024 !!", "SUB"), ("Hi", "HI"), ("a-b-c-d-e", "ABCD")])
def test_unique_id_prefix_from_title(client, user_token, create_form, submit, title, prefix):
    form = create_form(user_token, title=title)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]
    assert UNIQUE_ID.match(unique_id)
    assert unique_id.startswith(prefix)


def test_invalid_email_scenario(client, user_token, create_form):
    form = create_form(user_token, fields=[{"id": "email", "type": "email", "label": "Email", "required": True}])
    response = client.post("/api/submissions", json={"formId": form["id"], "data": {"email": "not-an-email"}})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"]["email"] == "Invalid email format"


def test_missing_required_field_is_named(client, user_token, create_form, submit):
    form = create_form(user_token)
    response = submit(form["id"], {"email": "jane@example.com"})
    assert response.status_code == 400
    assert response.json()["errors"] == {"name": "This field is required"}


def test_store_rejects_unknown_and_inactive_forms(client, user_token, auth, create_form, submit):
    assert submit(9999).status_code == 404

    form = create_form(user_token, isActive=False)
    assert submit(form["id"]).status_code == 400


def test_store_requires_form_id_and_data(client):
    response = client.post("/api/submissions", json={})
    assert response.status_code == 400
    assert {"formId", "data"} <= set(response.json()["errors"])


def test_field_type_checks():
    fields = [
        {"id": "age", "type": "number", "label": "Age"},
        {"id": "phone", "type": "tel", "label": "Phone"},
        {"id": "site", "type": "url", "label": "Site"},
        {"id": "bio", "type": "textarea", "label": "Bio", "validation": {"minLength": 5, "maxLength": 10}},
        {"id": "size", "type": "select", "label": "Size", "options": ["S", "M", "L"]},
        {"name": "nick", "type": "text", "label": "Nickname", "required": True},
    ]
    errors = validate_submission_data(fields, {
        "age": "old",
        "phone": "12",
        "site": "not a url",
        "bio": "hey",
        "size": "XL",
        "nick": "   ",
    })
    assert errors == {
        "age": "Must be a number",
        "phone": "Invalid phone number format",
        "site": "Invalid URL format",
        "bio": "Must be at least 5 characters",
        "size": "Invalid option selected",
        "nick": "This field is required",
    }

    assert validate_submission_data(fields, {
        "age": "42",
        "phone": "+1 (555) 123-4567",
        "site": "https://example.com",
        "bio": "hello",
        "size": "M",
        "nick": "jd",
    }) == {}


def test_unusable_length_limits_are_ignored():
    fields = [{"id": "bio", "type": "text", "label": "Bio", "validation": {"minLength": "abc", "maxLength": "5"}}]
    assert validate_submission_data(fields, {"bio": "hey"}) == {}
    assert validate_submission_data(fields, {"bio": "far too long"}) == {"bio": "Must not exceed 5 characters"}


def test_show_public_hides_private_fields(client, user_token, create_form, submit):
    form = create_form(user_token)
    created = submit(form["id"]).json()["data"]

    response = client.get(f"/api/submissions/public/{created['uniqueId']}")
    assert response.status_code == 200
    submission = response.json()["data"]["submission"]
    assert "editCode" not in submission
    assert "ipAddress" not in submission
    assert "userAgent" not in submission

    wrong = client.get(f"/api/submissions/public/{created['uniqueId']}", params={"code": "WRONG123"})
    assert wrong.status_code == 403


def test_update_public_with_correct_code(client, user_token, create_form, submit):
    form = create_form(user_token)
    created = submit(form["id"]).json()["data"]

    response = client.put(f"/api/submissions/public/{created['uniqueId']}", json={
        "editCode": created["editCode"],
        "data": {"name": "Jane Smith", "email": "jane.smith@example.com"},
    })
    assert response.status_code == 200
    submission = response.json()["data"]["submission"]
    assert submission["data"]["name"] == "Jane Smith"
    assert submission["editHistory"][-1]["field"] == "data"


@pytest.mark.parametrize("allow_editing", [True, False])
def test_update_public_with_wrong_code_is_forbidden(client, user_token, create_form, submit, allow_editing):
    form = create_form(user_token, allowEditing=allow_editing)
    created = submit(form["id"]).json()["data"]

    response = client.put(f"/api/submissions/public/{created['uniqueId']}", json={
        "editCode": "ZZZZZZZZ" if created["editCode"] != "ZZZZZZZZ" else "YYYYYYYY",
        "data": {"name": "Eve", "email": "eve@example.com"},
    })
    assert response.status_code == 403


def test_update_public_when_editing_disallowed(client, user_token, create_form, submit):
    form = create_form(user_token, allowEditing=False)
    created = submit(form["id"]).json()["data"]

    response = client.put(f"/api/submissions/public/{created['uniqueId']}", json={
        "editCode": created["editCode"],
        "data": {"name": "Jane", "email": "jane@example.com"},
    })
    assert response.status_code == 403


def test_update_public_edge_cases(client, user_token, create_form, submit):
    form = create_form(user_token)
    created = submit(form["id"]).json()["data"]

    missing_code = client.put(f"/api/submissions/public/{created['uniqueId']}", json={"data": {}})
    assert missing_code.status_code == 400

    unknown = client.put("/api/submissions/public/NOPE2024-000000", json={"editCode": "ABCDEFGH", "data": {}})
    assert unknown.status_code == 404

    invalid = client.put(f"/api/submissions/public/{created['uniqueId']}", json={
        "editCode": created["editCode"],
        "data": {"name": "Jane", "email": "broken"},
    })
    assert invalid.status_code == 400
    assert invalid.json()["errors"]["email"] == "Invalid email format"


def test_verify_edit_code(client, user_token, create_form, submit):
    form = create_form(user_token, allowEditing=False)
    created = submit(form["id"]).json()["data"]
    url = f"/api/submissions/public/{created['uniqueId']}/verify-edit-code"

    assert client.post(url, json={"editCode": created["editCode"]}).json()["data"] == {"valid": True, "canEdit": False}
    assert client.post(url, json={"editCode": "WRONG"}).json()["data"]["valid"] is False


def test_admin_status_update_is_permissive(client, user_token, admin_token, auth, create_form, submit):
    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]

    for status in ("approved", "pending", "rejected", "completed", "failed", "approved"):
        response = client.patch(
            f"/api/submissions/{unique_id}/status",
            json={"status": status, "adminNotes": f"now {status}"},
            headers=auth(admin_token),
        )
        assert response.status_code == 200
        submission = response.json()["data"]["submission"]
        assert submission["status"] == status
        assert submission["adminNotes"] == f"now {status}"

    history = client.get(f"/api/submissions/{unique_id}", headers=auth(admin_token)).json()["data"]["submission"]["editHistory"]
    assert [entry["to"] for entry in history if entry["field"] == "status"] == [
        "approved", "pending", "rejected", "completed", "failed", "approved"
    ]


def test_status_update_rejects_unknown_status(client, user_token, admin_token, auth, create_form, submit):
    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]
    response = client.patch(f"/api/submissions/{unique_id}/status", json={"status": "archived"}, headers=auth(admin_token))
    assert response.status_code == 400


def test_status_update_needs_edit_capability(client, user_token, auth, create_form, submit):
    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]
    response = client.patch(f"/api/submissions/{unique_id}/status", json={"status": "approved"}, headers=auth(user_token))
    assert response.status_code == 403


def test_status_update_notification(client, user_token, admin_token, auth, create_form, submit, monkeypatch):
    sent = []

    async def fake_notification(submission, fields=None):
        sent.append((submission["uniqueId"], fields))
        return True

    monkeypatch.setattr("formbuilder.routes.submission_router.send_status_notification", fake_notification)

    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]
    response = client.patch(
        f"/api/submissions/{unique_id}/status",
        json={"status": "approved", "notifyUser": True},
        headers=auth(admin_token),
    )
    assert response.status_code == 200
    assert response.json()["data"]["notificationSent"] is True
    assert sent[0][0] == unique_id
    assert sent[0][1] == form["fields"]


def test_admin_update_payment_status(client, user_token, admin_token, auth, create_form, submit):
    form = create_form(user_token)
    created = submit(form["id"], payment={"method": "card", "amount": "10.00", "currency": "usd"}).json()["data"]
    assert created["payment"]["status"] == "pending"
    assert created["payment"]["currency"] == "USD"

    response = client.put(
        f"/api/submissions/{created['uniqueId']}",
        json={"paymentStatus": "completed", "adminNotes": "paid at desk"},
        headers=auth(admin_token),
    )
    assert response.status_code == 200
    assert response.json()["data"]["submission"]["payment"]["status"] == "completed"

    bad = client.put(f"/api/submissions/{created['uniqueId']}", json={"paymentStatus": "lost"}, headers=auth(admin_token))
    assert bad.status_code == 400


def test_list_and_filter_submissions(client, make_user, auth, create_form, submit):
    _, owner = make_user("owner")
    _, viewer = make_user("viewer", role="submission_viewer")
    _, stranger = make_user("stranger")
    form = create_form(owner)
    submit(form["id"])
    submit(form["id"])

    owned = client.get("/api/submissions", headers=auth(owner)).json()["data"]
    assert owned["pagination"]["total"] == 2
    assert owned["summary"]["totalSubmissions"] == 2

    assert client.get("/api/submissions", headers=auth(viewer)).json()["data"]["pagination"]["total"] == 2
    assert client.get("/api/submissions", headers=auth(stranger)).json()["data"]["pagination"]["total"] == 0

    by_form = client.get(f"/api/submissions/form/{form['id']}", headers=auth(owner))
    assert by_form.status_code == 200
    assert len(by_form.json()["data"]["submissions"]) == 2
    assert client.get(f"/api/submissions/form/{form['id']}", headers=auth(stranger)).status_code == 403

    filtered = client.get("/api/submissions", params={"status": "approved"}, headers=auth(viewer)).json()["data"]
    assert filtered["pagination"]["total"] == 0


def test_get_submission_by_numeric_id(client, user_token, admin_token, auth, create_form, submit):
    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]
    submission = client.get(f"/api/submissions/{unique_id}", headers=auth(admin_token)).json()["data"]["submission"]

    response = client.get(f"/api/submissions/{submission['id']}", headers=auth(admin_token))
    assert response.status_code == 200
    assert response.json()["data"]["submission"]["uniqueId"] == unique_id
    assert response.json()["data"]["submission"]["ipAddress"] == "testclient"


def test_delete_submission_decrements_count(client, user_token, admin_token, auth, create_form, submit):
    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]

    assert client.delete(f"/api/submissions/{unique_id}", headers=auth(user_token)).status_code == 403
    assert client.delete(f"/api/submissions/{unique_id}", headers=auth(admin_token)).status_code == 200
    assert client.get(f"/api/submissions/{unique_id}", headers=auth(admin_token)).status_code == 404

    refreshed = client.get(f"/api/forms/{form['id']}", headers=auth(user_token)).json()["data"]["form"]
    assert refreshed["submissionCount"] == 0
    assert client.delete(f"/api/forms/{form['id']}", headers=auth(user_token)).status_code == 200


def test_submission_payment_method_must_be_known(client, user_token, admin_token, auth, create_form, submit):
    form = create_form(user_token)

    response = submit(form["id"], payment={"method": "cash-in-an-envelope-at-reception", "amount": "10"})
    assert response.status_code == 400
    assert "payment.method" in response.json()["errors"]

    accepted = submit(form["id"], payment={"method": "bank_transfer", "amount": "10"})
    assert accepted.status_code == 201
    assert accepted.json()["data"]["payment"]["method"] == "bank_transfer"


def test_status_update_queries_run_off_the_event_loop(client, user_token, admin_token, auth, create_form, submit, monkeypatch):
    form = create_form(user_token)
    unique_id = submit(form["id"]).json()["data"]["uniqueId"]

    seen = []
    original = submission_service.update_status

    def tracking_update_status(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker thread")
        return original(*args, **kwargs)

    monkeypatch.setattr(submission_service, "update_status", tracking_update_status)
    response = client.patch(f"/api/submissions/{unique_id}/status", json={"status": "approved"}, headers=auth(admin_token))
    assert response.status_code == 200
    assert seen == ["worker thread"]
