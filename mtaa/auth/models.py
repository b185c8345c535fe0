"""Session data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TokenPair:
    """Access/refresh credential pair issued by the API."""

    access: str
    refresh: str
