from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from .errors import (
    InvalidCredentialFormat,
    MethodNotAllowed,
    MissingContent,
    MissingCredential,
    MissingRecipient,
    RelayError,
    UnexpectedError,
)
from .models import AttachmentKind, VerifyResult
from .wasender_client import WasenderClient

logger = logging.getLogger(__name__)

FILE_URL_KEYS: Final[dict[AttachmentKind, str]] = {
    AttachmentKind.IMAGE: "imageUrl",
    AttachmentKind.VIDEO: "videoUrl",
    AttachmentKind.DOCUMENT: "documentUrl",
}


@dataclass
class RelayResult:
    status_code: int
    body: dict[str, Any] | None = None


def is_valid_api_key(api_key: Any) -> bool:
    return isinstance(api_key, str) and len(api_key.strip()) > 0


def build_provider_payload(
    to: str,
    text: str | None = None,
    file_url: str | None = None,
    file_type: str | None = None,
) -> dict[str, str]:
    """
    Build the send-message body for WasenderAPI.

    The attachment URL goes under the key for its kind; a missing or
    unknown kind is sent as a document.
    """
    payload: dict[str, str] = {"to": to}
    if text:
        payload["text"] = text

    if file_url:
        try:
            kind = AttachmentKind(file_type) if file_type else AttachmentKind.DOCUMENT
        except ValueError:
            logger.warning("Unknown fileType %r, sending attachment as a document", file_type)
            kind = AttachmentKind.DOCUMENT
        payload[FILE_URL_KEYS[kind]] = file_url

    return payload


async def verify_api_key(provider: WasenderClient, api_key: str) -> VerifyResult:
    """Check the key against the account-info endpoint. Never raises."""
    try:
        resp = await provider.account_info(api_key)
    except Exception as exc:
        logger.warning("API key verification request failed: %s", exc)
        return VerifyResult(is_valid=False, message=f"API key verification failed: {exc}")

    if resp.ok:
        return VerifyResult(is_valid=True, message="API key is valid")

    data = resp.data if isinstance(resp.data, Mapping) else {}
    reason = data.get("error") or data.get("message") or "Invalid API key"
    # Providers may answer with a structured error object
    message = reason if isinstance(reason, str) else json.dumps(reason)
    return VerifyResult(is_valid=False, message=message)


def _parse_body(body: bytes) -> dict[str, Any]:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise UnexpectedError(details=str(exc)) from exc
    if not isinstance(data, dict):
        raise UnexpectedError(details="Request body must be a JSON object")
    return data


def _check_credential(data: Mapping[str, Any]) -> str:
    api_key = data.get("apiKey")
    if api_key is None:
        raise MissingCredential()
    if not is_valid_api_key(api_key):
        raise InvalidCredentialFormat()
    return api_key


async def _send(provider: WasenderClient, api_key: str, data: Mapping[str, Any]) -> RelayResult:
    to = data.get("to")
    if not isinstance(to, str) or not to.strip():
        raise MissingRecipient()

    text = data.get("text")
    file_url = data.get("fileUrl")
    if not text and not file_url:
        raise MissingContent()

    payload = build_provider_payload(to, text, file_url, data.get("fileType"))
    resp = await provider.send_message(api_key, payload)

    if not resp.ok:
        logger.warning("WasenderAPI rejected message to %s with HTTP %s", to, resp.status_code)

    body = dict(resp.data) if isinstance(resp.data, Mapping) else {"data": resp.data}
    body["success"] = resp.ok
    return RelayResult(status_code=resp.status_code, body=body)


async def handle_relay_request(method: str, body: bytes, provider: WasenderClient) -> RelayResult:
    """
    Validate one relay request and forward it to WasenderAPI.

    Every path returns a RelayResult; failures become structured error
    bodies instead of propagating.
    """
    if method.upper() == "OPTIONS":
        return RelayResult(status_code=204)

    try:
        if method.upper() != "POST":
            raise MethodNotAllowed()

        data = _parse_body(body)
        api_key = _check_credential(data)

        if data.get("action") == "verify":
            verification = await verify_api_key(provider, api_key)
            return RelayResult(
                status_code=200 if verification.is_valid else 400,
                body=verification.model_dump(by_alias=True, exclude_none=True),
            )

        return await _send(provider, api_key, data)
    except RelayError as exc:
        if exc.status_code >= 500:
            logger.error("Relay request failed: %s (%s)", exc.message, exc.details)
        else:
            logger.info("Rejected relay request: %s", exc.message)
        return RelayResult(status_code=exc.status_code, body=exc.to_body())
    except Exception as exc:
        logger.exception("Error in WhatsApp sender relay")
        error = UnexpectedError(details=str(exc))
        return RelayResult(status_code=error.status_code, body=error.to_body())
