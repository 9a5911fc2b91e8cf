import re
from typing import Any, Dict, Mapping

from schemas import ROLES

ValidationErrorMap = Dict[str, str]

NAME_MIN, NAME_MAX = 3, 60
PASSWORD_MIN, PASSWORD_MAX = 8, 16
ADDRESS_MAX = 400
RATING_MIN, RATING_MAX = 1, 5

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

FORM_FIELDS = {
    "signup": ("name", "email", "password", "role"),
    "create_user": ("name", "email", "password", "role"),
    "create_store": ("name", "email", "owner_id"),
    "change_role": ("role",),
    "rating": ("rating",),
    "login": ("email", "password"),
}

TRIMMED_FIELDS = ("name", "email", "address")


class ValidationFailure(Exception):
    """Raised when a form is submitted with invalid fields; never reaches the network."""

    def __init__(self, errors: ValidationErrorMap):
        super().__init__(", ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


def _text(fields: Mapping[str, Any], key: str) -> str:
    value = fields.get(key)
    return "" if value is None else str(value).strip()


def _parse_int(value: Any):
    """Integer value of ``value``, accepting integral numbers such as "7.0" or "1e3"."""
    if isinstance(value, bool):
        return None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


# Field rules

def _check_name(value: str, form_kind: str):
    if form_kind == "create_store":
        if not value:
            return "Store name is required"
        if len(value) < NAME_MIN:
            return f"Store name must be at least {NAME_MIN} characters"
        if len(value) > NAME_MAX:
            return f"Store name must be less than {NAME_MAX} characters"
        return None
    if not (NAME_MIN <= len(value) <= NAME_MAX):
        return f"Name must be between {NAME_MIN} and {NAME_MAX} characters"
    return None


def _check_email(value: str, form_kind: str):
    if not value:
        return "Email is required"
    if not EMAIL_RE.fullmatch(value):
        return "Please enter a valid email address"
    return None


def _check_password(value: Any, form_kind: str):
    password = "" if value is None else str(value)
    if form_kind == "login":
        return None if password else "Password is required"
    if not (PASSWORD_MIN <= len(password) <= PASSWORD_MAX):
        return f"Password must be between {PASSWORD_MIN} and {PASSWORD_MAX} characters"
    return None


def _check_owner_id(value: Any, form_kind: str):
    if value is None or str(value).strip() == "":
        return "Please select a store owner"
    if _parse_int(value) is None:
        return "Invalid owner selection"
    return None


def _check_role(value: Any, form_kind: str):
    if form_kind in ("signup", "create_user") and value in (None, ""):
        return None  # falls back to "user" in prepare()
    if value not in ROLES:
        return "Please select a valid role"
    return None


def _check_rating(value: Any, form_kind: str):
    rating = _parse_int(value)
    if rating is None or not (RATING_MIN <= rating <= RATING_MAX):
        return f"Rating must be between {RATING_MIN} and {RATING_MAX}"
    return None


RULES = {
    "name": _check_name,
    "email": _check_email,
    "password": _check_password,
    "owner_id": _check_owner_id,
    "role": _check_role,
    "rating": _check_rating,
}


def validate(form_kind: str, fields: Mapping[str, Any]) -> ValidationErrorMap:
    """Check every field of ``form_kind`` and report all violations at once.

    Pure: the same input always yields the same map. An empty map means the
    form may be submitted.
    """
    if form_kind not in FORM_FIELDS:
        raise ValueError(f"Unknown form kind: {form_kind}")
    errors: ValidationErrorMap = {}
    for field in FORM_FIELDS[form_kind]:
        raw = fields.get(field)
        value = _text(fields, field) if field in TRIMMED_FIELDS else raw
        message = RULES[field](value, form_kind)
        if message:
            errors[field] = message
    return errors


def ensure_valid(form_kind: str, fields: Mapping[str, Any]) -> None:
    errors = validate(form_kind, fields)
    if errors:
        raise ValidationFailure(errors)


def prepare(form_kind: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Build the submission payload: trims text fields, caps the address, keeps the password raw."""
    payload: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in TRIMMED_FIELDS:
            payload[key] = "" if value is None else str(value).strip()
        else:
            payload[key] = value
    if "address" in payload:
        payload["address"] = payload["address"][:ADDRESS_MAX]
    if form_kind == "create_store" and "owner_id" in payload:
        payload["owner_id"] = _parse_int(payload["owner_id"])
    if form_kind == "rating" and "rating" in payload:
        payload["rating"] = _parse_int(payload["rating"])
    if form_kind in ("signup", "create_user") and not payload.get("role"):
        payload["role"] = "user"
    return payload
