import asyncio
import hashlib
import hmac
import json
import time
from types import SimpleNamespace
import pytest
import stripe
from formbuilder.config.env_config import settings
from formbuilder.constants.error import ERROR
from formbuilder.services import stripe_service

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def submission_id(user_token, create_form, submit):
    form = create_form(user_token)
    return submit(form["id"]).json()["data"]["uniqueId"]


@pytest.fixture
def stripe_configured(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(settings, "STRIPE_PUBLIC_KEY", "pk_test_123")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)

    created = []

    def fake_create(**kwargs):
        created.append(kwargs)
        return SimpleNamespace(id="pi_test_1", client_secret="pi_test_1_secret", status="requires_payment_method")

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    return created


def signed_headers(payload: str, secret: str = WEBHOOK_SECRET) -> dict:
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return {"stripe-signature": f"t={timestamp},v1={signature}", "Content-Type": "application/json"}


def intent_event(event_type: str, intent_id: str = "pi_test_1") -> str:
    return json.dumps({
        "id": "evt_test_1",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent", "latest_charge": "ch_test_1"}},
    })


def get_submission(client, token, unique_id, auth):
    return client.get(f"/api/submissions/{unique_id}", headers=auth(token)).json()["data"]["submission"]


def test_create_intent(client, submission_id, stripe_configured):
    response = client.post("/api/payment/stripe/create-intent", json={
        "submissionId": submission_id, "amount": 2500, "currency": "usd",
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["clientSecret"] == "pi_test_1_secret"
    assert data["paymentIntentId"] == "pi_test_1"
    assert data["paymentStatus"] == "pending"
    assert data["amount"] == 25.0
    assert data["currency"] == "USD"
    assert stripe_configured[0]["amount"] == 2500
    assert stripe_configured[0]["metadata"]["submission_id"] == submission_id


def test_create_intent_without_key(client, submission_id, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    response = client.post("/api/payment/stripe/create-intent", json={
        "submissionId": submission_id, "amount": 2500, "currency": "usd",
    })
    assert response.status_code == 500


def test_create_intent_surfaces_stripe_errors(client, submission_id, stripe_configured, monkeypatch):
    def failing_create(**kwargs):
        raise stripe.InvalidRequestError("Amount must be at least 50 cents", param="amount")

    monkeypatch.setattr(stripe.PaymentIntent, "create", failing_create)
    response = client.post("/api/payment/stripe/create-intent", json={
        "submissionId": submission_id, "amount": 10, "currency": "usd",
    })
    assert response.status_code == 400
    assert response.json()["message"].startswith("Stripe error:")


def test_create_intent_missing_fields(client, stripe_configured):
    response = client.post("/api/payment/stripe/create-intent", json={"amount": 100})
    assert response.status_code == 400


@pytest.mark.parametrize("intent_status,payment_status,status", [
    ("succeeded", "completed", "completed"),
    ("requires_payment_method", "failed", "failed"),
])
def test_confirm(client, submission_id, stripe_configured, monkeypatch, admin_token, auth,
                 intent_status, payment_status, status):
    client.post("/api/payment/stripe/create-intent", json={"submissionId": submission_id, "amount": 2500, "currency": "usd"})
    monkeypatch.setattr(
        stripe.PaymentIntent, "retrieve",
        lambda intent_id, **kwargs: SimpleNamespace(id=intent_id, status=intent_status, latest_charge=None),
    )

    response = client.post("/api/payment/stripe/confirm", json={"paymentIntentId": "pi_test_1"})
    assert response.status_code == 200
    assert response.json()["data"]["paymentStatus"] == payment_status

    submission = get_submission(client, admin_token, submission_id, auth)
    assert submission["status"] == status


def test_confirm_unknown_intent(client, stripe_configured):
    response = client.post("/api/payment/stripe/confirm", json={"paymentIntentId": "pi_missing"})
    assert response.status_code == 404


def test_duplicate_webhook_is_idempotent(client, submission_id, stripe_configured, admin_token, auth):
    client.post("/api/payment/stripe/create-intent", json={"submissionId": submission_id, "amount": 2500, "currency": "usd"})
    payload = intent_event("payment_intent.succeeded")

    first = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert first.status_code == 200
    assert first.json()["data"]["paymentStatus"] == "completed"
    after_first = get_submission(client, admin_token, submission_id, auth)

    second = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert second.status_code == 200
    after_second = get_submission(client, admin_token, submission_id, auth)

    assert after_second["payment"]["status"] == "completed"
    assert after_second["status"] == "completed"
    assert after_second["payment"]["transactionId"] == "ch_test_1"
    assert after_second["payment"]["completedAt"] == after_first["payment"]["completedAt"]
    assert after_second["editHistory"] == after_first["editHistory"]


def test_webhook_payment_failed(client, submission_id, stripe_configured, admin_token, auth):
    client.post("/api/payment/stripe/create-intent", json={"submissionId": submission_id, "amount": 2500, "currency": "usd"})
    payload = intent_event("payment_intent.payment_failed")

    response = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    submission = get_submission(client, admin_token, submission_id, auth)
    assert submission["payment"]["status"] == "failed"
    assert submission["status"] == "failed"


def test_webhook_rejects_bad_signature(client, submission_id, stripe_configured):
    payload = intent_event("payment_intent.succeeded")
    response = client.post(
        "/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload, secret="whsec_wrong")
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid signature"


@pytest.mark.parametrize("payload", ["[1, 2]", "\"evt\"", "42", "null"])
def test_webhook_rejects_non_object_events(client, stripe_configured, payload):
    response = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert response.status_code == 400
    assert response.json()["message"] == ERROR.INVALID_WEBHOOK_PAYLOAD


def test_webhook_with_malformed_data_block_is_acknowledged(client, stripe_configured):
    payload = json.dumps({"id": "evt_3", "type": "charge.refunded", "data": [1, 2]})
    response = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    assert response.json()["data"]["handled"] is False

def running_on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def test_webhook_processing_runs_off_the_event_loop(client, stripe_configured, monkeypatch):
    seen = []

    def fake_handle_webhook(db, payload, signature):
        seen.append(running_on_event_loop())
        return {"received": True, "handled": False, "type": "ping"}

    monkeypatch.setattr(stripe_service, "handle_webhook", fake_handle_webhook)
    payload = json.dumps({"id": "evt_4", "type": "ping"})
    response = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    assert seen == [False]



def test_webhook_acknowledges_other_events(client, stripe_configured):
    payload = json.dumps({"id": "evt_2", "type": "charge.refunded", "data": {"object": {"id": "ch_1"}}})
    response = client.post("/api/payment/stripe/webhook", content=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    assert response.json()["data"]["handled"] is False


def test_webhook_without_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    response = client.post("/api/payment/stripe/webhook", content="{}")
    assert response.status_code == 500


def record_transfer(client, submission_id):
    return client.post("/api/payment/bank-transfer", json={
        "submissionId": submission_id,
        "amount": "150.00",
        "currency": "bdt",
        "bankDetails": {"bankName": "City Bank", "accountNumber": "123456789"},
        "receiptFile": "payment_receipt-1-123456789.png",
        "notes": "Paid from savings",
    })


def test_bank_transfer_approve(client, submission_id, admin_token, auth):
    recorded = record_transfer(client, submission_id)
    assert recorded.status_code == 201
    payment = recorded.json()["data"]
    assert payment["paymentId"].startswith("pay_bank_")
    assert payment["paymentStatus"] == "pending_approval"
    assert payment["receiptUrl"] == "/api/upload/files/payment_receipt-1-123456789.png"

    response = client.patch(
        f"/api/payment/bank-transfer/{payment['paymentId']}/approve",
        json={"adminNotes": "Verified"},
        headers=auth(admin_token),
    )
    assert response.status_code == 200
    assert response.json()["data"]["paymentStatus"] == "completed"

    submission = get_submission(client, admin_token, submission_id, auth)
    assert submission["payment"]["status"] == "completed"
    assert submission["status"] == "completed"

    again = client.patch(f"/api/payment/bank-transfer/{payment['paymentId']}/approve", headers=auth(admin_token))
    assert again.status_code == 400


def test_bank_transfer_reject(client, submission_id, admin_token, auth):
    payment_id = record_transfer(client, submission_id).json()["data"]["paymentId"]

    response = client.patch(
        f"/api/payment/bank-transfer/{payment_id}/reject",
        json={"reason": "Receipt is unreadable"},
        headers=auth(admin_token),
    )
    assert response.status_code == 200

    submission = get_submission(client, admin_token, submission_id, auth)
    assert submission["payment"]["status"] == "rejected"
    assert submission["status"] == "failed"
    assert submission["payment"]["rejectionReason"] == "Receipt is unreadable"


def test_bank_transfer_decisions_need_approver(client, submission_id, make_user, auth):
    _, plain = make_user("plain")
    _, approver = make_user("approver", role="payment_approver")
    payment_id = record_transfer(client, submission_id).json()["data"]["paymentId"]

    assert client.patch(f"/api/payment/bank-transfer/{payment_id}/approve").status_code == 401
    assert client.patch(f"/api/payment/bank-transfer/{payment_id}/approve", headers=auth(plain)).status_code == 403
    assert client.patch(f"/api/payment/bank-transfer/{payment_id}/approve", headers=auth(approver)).status_code == 200


def test_bank_transfer_unknown_reference(client, admin_token, auth):
    response = client.patch("/api/payment/bank-transfer/pay_bank_missing/approve", headers=auth(admin_token))
    assert response.status_code == 404


def test_second_method_on_same_submission_conflicts(client, submission_id, stripe_configured):
    assert record_transfer(client, submission_id).status_code == 201

    response = client.post("/api/payment/stripe/create-intent", json={
        "submissionId": submission_id, "amount": 2500, "currency": "usd",
    })
    assert response.status_code == 409

    bkash = client.post("/api/bkash/create", json={"submissionId": submission_id, "amount": "10", "currency": "BDT"})
    assert bkash.status_code == 409


def test_bkash_flow(client, submission_id, admin_token, auth):
    created = client.post("/api/bkash/create", json={"submissionId": submission_id, "amount": "500", "currency": "bdt"})
    assert created.status_code == 200
    payment = created.json()["data"]
    assert payment["paymentID"].startswith("TR")
    assert len(payment["paymentID"]) == 20
    assert payment["bkashURL"].endswith(payment["paymentID"])

    query = client.post("/api/bkash/query", json={"paymentID": payment["paymentID"]}).json()["data"]
    assert query["transactionStatus"] == "Initiated"

    executed = client.post("/api/bkash/execute", json={"paymentID": payment["paymentID"]})
    assert executed.status_code == 200
    trx_id = executed.json()["data"]["trxID"]
    assert trx_id.startswith("TXN")

    # executing twice keeps the first transaction id
    again = client.post("/api/bkash/execute", json={"paymentID": payment["paymentID"]}).json()["data"]
    assert again["trxID"] == trx_id

    submission = get_submission(client, admin_token, submission_id, auth)
    assert submission["status"] == "completed"
    assert submission["payment"]["status"] == "completed"


def test_bkash_refund(client, submission_id, user_token, admin_token, auth):
    payment_id = client.post(
        "/api/bkash/create", json={"submissionId": submission_id, "amount": "500", "currency": "BDT"}
    ).json()["data"]["paymentID"]

    early = client.post("/api/bkash/refund", json={"paymentID": payment_id}, headers=auth(admin_token))
    assert early.status_code == 400

    client.post("/api/bkash/execute", json={"paymentID": payment_id})

    assert client.post("/api/bkash/refund", json={"paymentID": payment_id}, headers=auth(user_token)).status_code == 403
    too_much = client.post("/api/bkash/refund", json={"paymentID": payment_id, "amount": "600"}, headers=auth(admin_token))
    assert too_much.status_code == 400

    refund = client.post(
        "/api/bkash/refund", json={"paymentID": payment_id, "amount": "200", "reason": "Partial"}, headers=auth(admin_token)
    )
    assert refund.status_code == 200
    assert refund.json()["data"]["amount"] == 200.0

    submission = get_submission(client, admin_token, submission_id, auth)
    assert submission["payment"]["status"] == "refunded"
    assert submission["payment"]["refundAmount"] == 200.0
    assert submission["payment"]["refundedAt"] is not None


def test_bkash_unknown_payment(client):
    assert client.post("/api/bkash/execute", json={"paymentID": "TR000000000000000000"}).status_code == 404


def test_bkash_execute_after_refund_is_refused(client, submission_id, admin_token, auth):
    payment_id = client.post(
        "/api/bkash/create", json={"submissionId": submission_id, "amount": "500", "currency": "BDT"}
    ).json()["data"]["paymentID"]
    client.post("/api/bkash/execute", json={"paymentID": payment_id})
    client.post("/api/bkash/refund", json={"paymentID": payment_id}, headers=auth(admin_token))

    again = client.post("/api/bkash/execute", json={"paymentID": payment_id})
    assert again.status_code == 409
    assert get_submission(client, admin_token, submission_id, auth)["payment"]["status"] == "refunded"
