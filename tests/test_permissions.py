from types import SimpleNamespace
import pytest
from formbuilder.constants.utils import CAPABILITIES
from formbuilder.utils.auth_utils import generate_jwt, parse_expiration, verify_jwt
from formbuilder.utils.permission_utils import (
    can_access_form, can_delete_form, can_view_submission, has_capability, is_admin, user_capabilities
)


def user(role="user", permissions=None, user_id=1):
    return SimpleNamespace(id=user_id, role=role, permissions=permissions or [])


def test_super_admin_holds_everything():
    assert user_capabilities(user("super_admin")) == frozenset(CAPABILITIES)
    assert is_admin(user("super_admin"))


@pytest.mark.parametrize("role,capability,expected", [
    ("admin", CAPABILITIES.MANAGE_SETTINGS, True),
    ("form_manager", CAPABILITIES.MANAGE_FORMS, True),
    ("form_manager", CAPABILITIES.DELETE_ANY_FORM, False),
    ("payment_approver", CAPABILITIES.APPROVE_PAYMENTS, True),
    ("submission_viewer", CAPABILITIES.EDIT_SUBMISSIONS, False),
    ("submission_editor", CAPABILITIES.EDIT_SUBMISSIONS, True),
    ("notification_manager", CAPABILITIES.MANAGE_NOTIFICATIONS, True),
    ("user", CAPABILITIES.VIEW_SUBMISSIONS, False),
    ("unknown_role", CAPABILITIES.VIEW_SUBMISSIONS, False),
])
def test_role_grants(role, capability, expected):
    assert has_capability(user(role), capability) is expected


def test_explicit_permissions_add_to_role():
    helper = user("submission_viewer", ["approve_payments", "not_a_capability"])
    assert user_capabilities(helper) == {CAPABILITIES.VIEW_SUBMISSIONS, CAPABILITIES.APPROVE_PAYMENTS}


def test_form_and_submission_rules():
    owner = user(user_id=1)
    stranger = user(user_id=2)
    form = SimpleNamespace(created_by=1)
    submission = SimpleNamespace(form=form)

    assert can_access_form(owner, form) and not can_access_form(stranger, form)
    assert can_access_form(user("form_manager", user_id=3), form)
    assert can_delete_form(owner, form)
    assert not can_delete_form(user("form_manager", user_id=3), form)
    assert can_delete_form(user("admin", user_id=4), form)
    assert can_view_submission(owner, submission) and not can_view_submission(stranger, submission)
    assert can_view_submission(user("submission_viewer", user_id=5), submission)


@pytest.mark.parametrize("value,seconds", [
    ("7d", 604800), ("12h", 43200), ("30m", 1800), ("45s", 45), ("3600", 3600), ("soon", 604800), ("", 604800),
])
def test_parse_expiration(value, seconds):
    assert parse_expiration(value) == seconds


def test_jwt_round_trip_and_tamper():
    token = generate_jwt({"userId": 7}, expire_seconds=60, secret_key="k1", algorithm="HS256")
    payload = verify_jwt(token, secret_key="k1", algorithm="HS256")
    assert payload["userId"] == 7
    assert {"iat", "exp"} <= set(payload)
    assert verify_jwt(token, secret_key="other", algorithm="HS256") is None
    assert verify_jwt(generate_jwt({"userId": 7}, -10, "k1", "HS256"), secret_key="k1", algorithm="HS256") is None
