import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["LOG_TO_FILE"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["APP_ENV"] = "testing"
os.environ["APP_DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from formbuilder.config.env_config import settings
from formbuilder.main import create_app
from formbuilder.models.user_model import User
from formbuilder.services.user_service import issue_token
from formbuilder.utils.auth_utils import hash_password

EMAIL_FORM = {
    "title": "Event Registration",
    "description": "Sign up for the event",
    "fields": [
        {"id": "name", "type": "text", "label": "Full name", "required": True},
        {"id": "email", "type": "email", "label": "Email", "required": True},
    ],
}


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "NOTIFICATION_WEBHOOK_URL", None)

    application = create_app()
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(app):
    """Insert a user directly and return (user_id, token)."""
    def _make_user(username, role="user", permissions=None, password="secret123", is_active=True):
        db = app.state.session_factory()
        try:
            user = User(
                username=username,
                email=f"{username}@example.com",
                password=hash_password(password),
                role=role,
                permissions=permissions or [],
                is_active=is_active,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            return user.id, issue_token(user)
        finally:
            db.close()
    return _make_user


@pytest.fixture
def user_token(make_user):
    return make_user("alice")[1]


@pytest.fixture
def admin_token(make_user):
    return make_user("boss", role="admin")[1]


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth():
    return auth_header


@pytest.fixture
def create_form(client):
    def _create_form(token, **overrides):
        payload = {**EMAIL_FORM, **overrides}
        response = client.post("/api/forms", json=payload, headers=auth_header(token))
        assert response.status_code == 201, response.text
        return response.json()["data"]["form"]
    return _create_form


@pytest.fixture
def submit(client):
    def _submit(form_id, data=None, **extra):
        body = {"formId": form_id, "data": data or {"name": "Jane Doe", "email": "jane@example.com"}, **extra}
        return client.post("/api/submissions", json=body)
    return _submit
