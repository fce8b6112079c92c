"""
REST client for the WasenderAPI endpoints the relay forwards to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from .config import get_settings


@dataclass
class ProviderResponse:
    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class WasenderClient:
    """
    Stateless: every call opens its own httpx client, authenticated with the
    credential it was given. The httpx default timeout applies.
    """

    def __init__(self, base_url: str, transport: httpx.AsyncBaseTransport | None = None):
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    @staticmethod
    def _auth_headers(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        api_key: str,
        body: dict[str, Any] | None = None,
    ) -> ProviderResponse:
        async with httpx.AsyncClient(base_url=self._base_url, transport=self._transport) as client:
            resp = await client.request(
                method, path, json=body, headers=self._auth_headers(api_key)
            )
        # Raises ValueError (json.JSONDecodeError) on a non-JSON body
        return ProviderResponse(status_code=resp.status_code, data=resp.json())

    async def account_info(self, api_key: str) -> ProviderResponse:
        return await self._request("GET", "/account-info", api_key)

    async def send_message(self, api_key: str, payload: dict[str, Any]) -> ProviderResponse:
        return await self._request("POST", "/send-message", api_key, body=payload)


def get_wasender_client() -> WasenderClient:
    settings = get_settings()
    return WasenderClient(settings.wasender_api_base)
