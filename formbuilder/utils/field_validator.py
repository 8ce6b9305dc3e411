import re
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, TypeAdapter, ValidationError

TEL_PATTERN = re.compile(r"^[+]?[\d\s\-()]{10,}$")
NUMBER_PATTERN = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")
CHOICE_TYPES = {"select", "radio"}

_url_adapter = TypeAdapter(AnyUrl)


def field_key(field: Dict[str, Any]) -> str:
    return field.get("id") or field.get("name") or field.get("label")


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


def _is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and bool(NUMBER_PATTERN.match(value))


def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return bool(url.host)


def _option_values(options: List[Any]) -> List[str]:
    values = []
    for option in options:
        if isinstance(option, dict):
            values.append(str(option.get("value", option.get("label"))))
        else:
            values.append(str(option))
    return values


def _check_type(field_type: str, value: Any, field: Dict[str, Any]):
    if field_type == "email" and not _is_email(value):
        return "Invalid email format"
    if field_type == "number" and not _is_number(value):
        return "Must be a number"
    if field_type == "tel" and not (isinstance(value, str) and TEL_PATTERN.match(value)):
        return "Invalid phone number format"
    if field_type == "url" and not _is_url(value):
        return "Invalid URL format"
    if field_type in CHOICE_TYPES and field.get("options"):
        if str(value) not in _option_values(field["options"]):
            return "Invalid option selected"
    return None


def length_bound(value: Any) -> Optional[int]:
    """minLength/maxLength as a non-negative int, None when unusable"""
    if isinstance(value, bool):
        return None
    try:
        bound = int(value)
    except (TypeError, ValueError):
        return None
    return bound if bound >= 0 else None


def _check_length(value: Any, validation: Dict[str, Any]):
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None

    length = len(str(value))
    error = None

    min_length = length_bound(validation.get("minLength"))
    if min_length is not None and length < min_length:
        error = f"Must be at least {min_length} characters"

    max_length = length_bound(validation.get("maxLength"))
    if max_length is not None and length > max_length:
        error = f"Must not exceed {max_length} characters"

    return error


def validate_submission_data(fields: List[Dict[str, Any]], data: Dict[str, Any]) -> Dict[str, str]:
    """
    Check submitted data against a form's field definitions.

    Returns a map of field key to error message; an empty map means the data
    is valid. Keys in ``data`` that match no field are ignored.
    """
    errors: Dict[str, str] = {}

    for field in fields or []:
        key = field_key(field)
        if not key:
            continue

        value = data.get(key)

        if field.get("required") and is_empty(value):
            errors[key] = "This field is required"
            continue

        # Optional fields left blank are not type checked
        if is_empty(value):
            continue

        error = _check_type(field.get("type") or "text", value, field)

        length_error = _check_length(value, field.get("validation") or {})
        if length_error:
            error = length_error

        if error:
            errors[key] = error

    return errors
