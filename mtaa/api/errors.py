"""Failure types and error-body normalization."""

from __future__ import annotations

import json
from typing import Any

GENERIC_FAILURE = "Request failed."
SERVER_FAILURE = "Server error. Please try again."


class ApiError(Exception):
    """A non-success HTTP response, carrying a human-readable message."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def format_validation_errors(data: dict[Any, Any]) -> str:
    """Render a field-keyed validation error object as ``key: value`` pairs."""
    if not data:
        return GENERIC_FAILURE

    parts: list[str] = []
    for key, value in data.items():
        label = str(key).replace("_", " ")
        if isinstance(value, list):
            parts.append(f"{label}: {' '.join(str(v) for v in value)}")
        elif isinstance(value, str):
            parts.append(f"{label}: {value}")
        else:
            parts.append(f"{label}: Invalid value.")
    return " ".join(parts)


def parse_error_message(text: str) -> str:
    """
    Turn a failed response body into one message for the user.

    Bodies may be empty, an HTML page from a proxy, a JSON string, a JSON
    object with ``detail`` or ``non_field_errors``, a field-keyed validation
    object, a list of messages, or plain text. Never raises.
    """
    if not text:
        return GENERIC_FAILURE
    if text.strip().startswith("<"):
        return SERVER_FAILURE
    try:
        data = json.loads(text)
    except ValueError:
        return text

    if isinstance(data, str):
        return data
    if data is None:
        return text
    if isinstance(data, list):
        return format_validation_errors(dict(enumerate(data)))
    if not isinstance(data, dict):
        return GENERIC_FAILURE
    detail = data.get("detail")
    if detail and isinstance(detail, str):
        return detail
    non_field = data.get("non_field_errors")
    if isinstance(non_field, list):
        return " ".join(str(v) for v in non_field)
    return format_validation_errors(data)


def failure_message(status_code: int, text: str) -> str:
    return parse_error_message(text) or f"Request failed with status {status_code}"
