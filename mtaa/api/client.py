"""Authenticated access to the MTAA Connect API."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from mtaa.api.errors import ApiError, failure_message
from mtaa.auth.models import TokenPair
from mtaa.auth.storage import TokenStore
from mtaa.config.loader import load_config
from mtaa.config.schema import Config

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/auth/refresh/"


def normalize_path(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def _parse_json(response: httpx.Response) -> Any:
    text = response.text
    if not text:
        return None
    return json.loads(text)


class ApiClient:
    """
    Issue API calls with the stored bearer token attached.

    A 401 triggers one token refresh and a single retry of the call. While a
    refresh is in flight every other caller that hits a 401 awaits the same
    refresh instead of starting its own.

    Use as an async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        config: Config | None = None,
        store: TokenStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or load_config()
        self.store = store if store is not None else TokenStore(self.config.token_path)
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._refresh_task: asyncio.Task[str | None] | None = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @property
    def base_url(self) -> str:
        return self.config.api.base_url.rstrip("/")

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self.config.api.timeout,
                transport=self._transport,
            )
        return self._http

    def _build_headers(
        self,
        headers: dict[str, str] | None,
        access_token: str | None = None,
    ) -> dict[str, str]:
        token = access_token or self.store.get_access_token()
        merged = {"Content-Type": "application/json"}
        if token:
            merged["Authorization"] = f"Bearer {token}"
        if headers:
            merged.update(headers)
        return merged

    async def _request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> httpx.Response:
        return await self._client().request(
            method,
            f"{self.base_url}{normalize_path(path)}",
            headers=self._build_headers(headers, access_token),
            content=None if body is None else json.dumps(body),
        )

    async def api_fetch(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Call the API and return the decoded JSON body (None when empty).

        Raises:
            ApiError: the final response was not a success.
            httpx.HTTPError: transport failure, propagated unchanged.
        """
        response = await self._request(path, method, body, headers)

        if response.status_code == 401:
            new_access = await self.refresh_access_token()
            if new_access:
                logger.debug("Retrying %s %s with refreshed token", method, path)
                response = await self._request(path, method, body, headers, access_token=new_access)

        if not response.is_success:
            raise ApiError(failure_message(response.status_code, response.text), response.status_code)

        return _parse_json(response)

    async def refresh_access_token(self) -> str | None:
        """Mint a new access token, sharing one in-flight refresh across callers."""
        refresh = self.store.get_refresh_token()
        if not refresh:
            return None

        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._run_refresh(refresh))
        # One waiter being cancelled must not cancel the shared refresh.
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self, refresh: str) -> str | None:
        logger.debug("Refreshing access token")
        try:
            response = await self._client().post(
                f"{self.base_url}{REFRESH_PATH}",
                headers={"Content-Type": "application/json"},
                content=json.dumps({"refresh": refresh}),
            )
            if not response.is_success:
                logger.debug("Token refresh rejected with status %s", response.status_code)
                self.store.clear_tokens()
                return None

            try:
                data = _parse_json(response)
            except ValueError:
                data = None
            access = data.get("access") if isinstance(data, dict) else None
            if not access:
                logger.debug("Token refresh response missing access token")
                self.store.clear_tokens()
                return None

            self.store.set_tokens(TokenPair(access=access, refresh=refresh))
            return access
        finally:
            self._refresh_task = None

    async def download_binary(self, path: str, destination: Path) -> Path:
        """
        Save a binary response to ``destination``.

        No refresh-and-retry here: downloads only happen inside a session that
        has already made authenticated calls.
        """
        response = await self._request(path, "GET")
        if not response.is_success:
            raise ApiError(failure_message(response.status_code, response.text), response.status_code)

        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(response.content)
        return destination
