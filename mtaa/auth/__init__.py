"""Session credential handling."""

from mtaa.auth.models import TokenPair
from mtaa.auth.storage import TokenStore

__all__ = [
    "TokenPair",
    "TokenStore",
]
