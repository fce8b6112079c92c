from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import get_settings
from .errors import UpstreamError
from .models import MessageRecord, RelayRequest, RelayResponse, VerifyResult

logger = logging.getLogger(__name__)


class RelayClient:
    """Client side of the relay contract: posts envelopes to the relay endpoint."""

    def __init__(
        self,
        relay_url: str,
        api_key: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._relay_url = relay_url
        self._api_key = api_key
        self._transport = transport

    async def _post(self, request: RelayRequest) -> tuple[int, Any]:
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.post(self._relay_url, json=request.to_payload())
        return resp.status_code, resp.json()

    async def send(self, record: MessageRecord) -> RelayResponse:
        """
        Relay one message.

        Raises UpstreamError when the relay answers with a non-OK status;
        transport errors and undecodable bodies propagate as raised by httpx.
        """
        status_code, data = await self._post(RelayRequest.for_record(self._api_key, record))
        if not 200 <= status_code < 300:
            raise UpstreamError(status_code, data)

        message = data.get("message") if isinstance(data, dict) else None
        return RelayResponse(
            success=True,
            message=str(message) if message else "Message sent successfully",
        )

    async def verify(self) -> VerifyResult:
        status_code, data = await self._post(RelayRequest.verification(self._api_key))
        if isinstance(data, dict) and "isValid" in data:
            return VerifyResult.model_validate(data)
        raise UpstreamError(status_code, data)


def get_relay_client() -> RelayClient:
    settings = get_settings()
    if not settings.wasender_api_key:
        raise RuntimeError("WasenderAPI key is not configured (WASENDER_API_KEY)")
    return RelayClient(settings.relay_url, settings.wasender_api_key)
