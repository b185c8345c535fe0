"""API access layer."""

from mtaa.api.client import ApiClient, normalize_path
from mtaa.api.errors import ApiError, parse_error_message
from mtaa.api.services import MtaaService

__all__ = [
    "ApiClient",
    "ApiError",
    "MtaaService",
    "normalize_path",
    "parse_error_message",
]
