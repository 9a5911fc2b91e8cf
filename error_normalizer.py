"""
Maps server error responses onto one field-level error model.

The backend answers failures in one of three shapes:

- ``{"error": {"email": "taken"}}``: field map
- ``{"errors": [{"param": "name", "msg": "too short"}]}``: validator list
- ``{"error": "Store not found"}``: plain message

A body is first classified into a tagged variant, then normalized per variant.
Auth status codes take precedence over whatever the body says.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from api_client import ApiError, TransportFailure

logger = logging.getLogger(__name__)

FIX_FIELDS_SUMMARY = "Please fix the highlighted fields"
UNAUTHORIZED_SUMMARY = "authentication required"
FORBIDDEN_SUMMARY = "insufficient permission"
TRANSPORT_SUMMARY = "Unable to reach the server. Please try again later."
DEFAULT_FALLBACK = "Request failed"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    SERVER_VALIDATION = "server_validation"
    SERVER_ERROR = "server_error"
    TRANSPORT = "transport"


# Body variants

class FieldMapBody(BaseModel):
    kind: Literal["field_map"] = "field_map"
    fields: Dict[str, str]


class ValidatorEntry(BaseModel):
    param: Optional[str] = None
    msg: str = ""


class ValidatorListBody(BaseModel):
    kind: Literal["validator_list"] = "validator_list"
    entries: List[ValidatorEntry]


class MessageBody(BaseModel):
    kind: Literal["message"] = "message"
    message: str


class DetailsBody(BaseModel):
    kind: Literal["details"] = "details"
    details: str


class UnrecognizedBody(BaseModel):
    kind: Literal["unrecognized"] = "unrecognized"


ErrorBody = Union[FieldMapBody, ValidatorListBody, MessageBody, DetailsBody, UnrecognizedBody]


class NormalizedError(BaseModel):
    error_map: Dict[str, str] = Field(default_factory=dict)
    summary: str
    kind: ErrorKind
    status: Optional[int] = None
    # server body exactly as received, for diagnostics
    raw: Any = None


def _text(value: Any) -> Optional[str]:
    """Message text of one field entry; lists report their last message."""
    if isinstance(value, list):
        value = next((v for v in reversed(value) if v is not None), None)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def classify_error_body(body: Any) -> ErrorBody:
    if not isinstance(body, dict):
        return UnrecognizedBody()
    error = body.get("error")
    if isinstance(error, dict):
        fields = {str(k): _text(v) for k, v in error.items()}
        return FieldMapBody(fields={k: v for k, v in fields.items() if v is not None})
    errors = body.get("errors")
    if isinstance(errors, list):
        entries = [
            ValidatorEntry(param=_text(e.get("param")) or None, msg=_text(e.get("msg")) or "")
            for e in errors
            if isinstance(e, dict)
        ]
        return ValidatorListBody(entries=entries)
    if isinstance(error, str) and error:
        return MessageBody(message=error)
    details = body.get("details")
    if details:
        return DetailsBody(details=str(details))
    return UnrecognizedBody()


def _field_errors(body: ErrorBody) -> Dict[str, str]:
    if isinstance(body, FieldMapBody):
        return dict(body.fields)
    if isinstance(body, ValidatorListBody):
        folded: Dict[str, str] = {}
        for entry in body.entries:
            if entry.param:
                folded[entry.param] = entry.msg
        return folded
    return {}


def _message(body: ErrorBody, fallback: str) -> str:
    if isinstance(body, MessageBody):
        return body.message
    if isinstance(body, DetailsBody):
        return body.details
    return fallback


def normalize(status: Optional[int], body: Any, fallback: str = DEFAULT_FALLBACK) -> NormalizedError:
    if status == 401:
        return NormalizedError(summary=UNAUTHORIZED_SUMMARY, kind=ErrorKind.UNAUTHORIZED, status=status, raw=body)
    if status == 403:
        return NormalizedError(summary=FORBIDDEN_SUMMARY, kind=ErrorKind.FORBIDDEN, status=status, raw=body)

    parsed = classify_error_body(body)
    if isinstance(parsed, (FieldMapBody, ValidatorListBody)):
        return NormalizedError(
            error_map=_field_errors(parsed),
            summary=FIX_FIELDS_SUMMARY,
            kind=ErrorKind.SERVER_VALIDATION,
            status=status,
            raw=body,
        )
    return NormalizedError(
        summary=_message(parsed, fallback),
        kind=ErrorKind.SERVER_ERROR,
        status=status,
        raw=body,
    )


def normalize_transport_failure(message: str) -> NormalizedError:
    logger.warning("No response from server: %s", message)
    return NormalizedError(summary=TRANSPORT_SUMMARY, kind=ErrorKind.TRANSPORT, raw={"message": message})


def normalize_malformed_response(fallback: str, raw: Any = None) -> NormalizedError:
    """Response arrived but did not match the expected payload."""
    logger.warning("Unexpected response payload: %r", raw)
    return NormalizedError(summary=fallback, kind=ErrorKind.SERVER_ERROR, raw=raw)


def normalize_exception(exc: Exception, fallback: str = DEFAULT_FALLBACK) -> NormalizedError:
    """Normalize an exception raised by the api client."""
    if isinstance(exc, ApiError):
        return normalize(exc.status, exc.body, fallback)
    if isinstance(exc, TransportFailure):
        return normalize_transport_failure(str(exc))
    raise TypeError(f"Cannot normalize {type(exc).__name__}")
