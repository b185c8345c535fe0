"""Typed wrappers for the MTAA Connect endpoints."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from mtaa.api.client import ApiClient
from mtaa.api.errors import ApiError
from mtaa.auth.models import TokenPair

REQUEST_TYPES = ("residence", "nida", "license")
URGENCY_LEVELS = ("normal", "urgent")
# Residence letter form; other letter types carry no metadata of their own.
LETTER_FIELDS = (
    "reference_no",
    "to",
    "ward",
    "mtaa",
    "region",
    "district",
    "house_no",
    "birth_date",
    "occupation",
    "stay_duration",
    "letter_date",
)
PROFILE_FIELDS = (
    "full_name",
    "email",
    "phone",
    "gender",
    "age",
    "address",
    "nida_number",
    "position",
    "office",
)
MIN_PASSWORD_LENGTH = 8


def _check_request_type(request_type: str) -> None:
    if request_type not in REQUEST_TYPES:
        raise ValueError(
            f"Unknown request type {request_type!r}; expected one of {', '.join(REQUEST_TYPES)}"
        )


def letter_filename(request_id: int) -> str:
    return f"mtaa-letter-{request_id}.pdf"


def letter_metadata(
    request_type: str,
    fields: dict[str, Any],
    existing: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build request metadata from stored values plus new field values.

    Residence letters always carry every letter field, blank when unknown.
    Values already on the request are kept unless ``fields`` overrides them.
    """
    metadata = dict(existing or {})
    if request_type == "residence":
        for key in LETTER_FIELDS:
            metadata.setdefault(key, "")
    metadata.update(fields)
    return metadata


class MtaaService:
    """Citizen and officer operations on top of an ``ApiClient``."""

    def __init__(self, client: ApiClient):
        self.client = client

    # Session

    async def login(self, email: str, password: str) -> TokenPair:
        """Exchange credentials for a token pair and persist it."""
        store = self.client.store
        store.clear_tokens()
        try:
            data = await self.client.api_fetch(
                "/api/auth/login/",
                method="POST",
                body={"email": email, "password": password},
            )
            if not isinstance(data, dict) or not data.get("access") or not data.get("refresh"):
                raise ApiError("Login response missing tokens.", 200)
            tokens = TokenPair(access=data["access"], refresh=data["refresh"])
            store.set_tokens(tokens)
            return tokens
        except Exception:
            store.clear_tokens()
            raise

    def logout(self) -> None:
        self.client.store.clear_tokens()

    async def get_health(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/health/")

    async def get_me(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/me/")

    # Requests

    async def list_requests(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/requests/")

    async def list_pending_requests(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/requests/pending/")

    async def list_approved_requests(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/requests/approved/")

    async def get_request(self, request_id: int) -> dict[str, Any]:
        return await self.client.api_fetch(f"/api/requests/{request_id}/")

    async def create_request(
        self,
        request_type: str,
        purpose: str,
        additional_info: str = "",
        urgency: str = "normal",
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        _check_request_type(request_type)
        return await self.client.api_fetch(
            "/api/requests/",
            method="POST",
            body=_request_body(request_type, purpose, additional_info, urgency, metadata),
        )

    async def resubmit_request(
        self,
        request_id: int,
        request_type: str,
        purpose: str,
        additional_info: str = "",
        urgency: str = "normal",
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        _check_request_type(request_type)
        return await self.client.api_fetch(
            f"/api/requests/{request_id}/resubmit/",
            method="POST",
            body=_request_body(request_type, purpose, additional_info, urgency, metadata),
        )

    async def download_request_pdf(self, request_id: int, directory: Path) -> Path:
        return await self.client.download_binary(
            f"/api/requests/{request_id}/download/",
            directory / letter_filename(request_id),
        )

    # Officer review

    async def approve_request(self, request_id: int) -> Any:
        return await self.client.api_fetch(f"/api/requests/{request_id}/approve/", method="POST")

    async def reject_request(self, request_id: int, reason: str) -> Any:
        return await self.client.api_fetch(
            f"/api/requests/{request_id}/reject/",
            method="POST",
            body={"reason": reason},
        )

    async def reopen_request(self, request_id: int) -> Any:
        return await self.client.api_fetch(f"/api/requests/{request_id}/reopen/", method="POST")

    async def list_citizens(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/citizens/")

    async def get_citizen(self, citizen_id: int) -> dict[str, Any]:
        return await self.client.api_fetch(f"/api/citizens/{citizen_id}/")

    async def get_officer_stats(self) -> dict[str, Any]:
        return await self.client.api_fetch("/api/stats/officer/")

    # Profile

    async def update_profile(self, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(fields) - set(PROFILE_FIELDS))
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(unknown)}")
        if not fields:
            raise ValueError("Nothing to update.")
        return await self.client.api_fetch("/api/profile/", method="PUT", body=fields)

    async def change_password(self, current: str, new: str, confirm: str) -> Any:
        """Change the account password and drop the stored session.

        The caller logs in again with the new password afterwards.
        """
        if len(new) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if new != confirm:
            raise ValueError("Passwords do not match.")
        result = await self.client.api_fetch(
            "/api/profile/password/",
            method="POST",
            body={
                "current_password": current,
                "new_password": new,
                "confirm_password": confirm,
            },
        )
        self.client.store.clear_tokens()
        return result


def _request_body(
    request_type: str,
    purpose: str,
    additional_info: str,
    urgency: str,
    metadata: dict[str, Any] | None,
) -> dict[str, Any]:
    return {
        "request_type": request_type,
        "purpose": purpose,
        "additional_info": additional_info,
        "urgency": urgency,
        "metadata": metadata or {},
    }
