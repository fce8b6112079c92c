"""
Error types shared by the client pipeline and the relay.
"""

from __future__ import annotations

from typing import Any


class WaSenderError(Exception):
    code = "error"

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(WaSenderError):
    """Rejected before submission; no record is created."""

    code = "validation_error"


# --- Relay side ---


class RelayError(WaSenderError):
    """A structured failure the relay answers with instead of raising."""

    code = "relay_error"
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None, details: str | None = None):
        super().__init__(message or self.default_message, details)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message}


class MissingCredential(RelayError):
    code = "missing_credential"
    default_message = "API key is required"


class InvalidCredentialFormat(RelayError):
    code = "invalid_credential_format"
    default_message = "Invalid API key format"


class MissingRecipient(RelayError):
    code = "missing_recipient"
    default_message = "Recipient phone number is required"


class MissingContent(RelayError):
    code = "missing_content"
    default_message = "Either message text or file URL is required"


class MethodNotAllowed(RelayError):
    code = "method_not_allowed"
    status_code = 405
    default_message = "Method not allowed"


class UnexpectedError(RelayError):
    code = "unexpected_error"
    status_code = 500
    default_message = "An unexpected error occurred"

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "details": self.details or ""}


class UpstreamError(WaSenderError):
    """The relay or provider answered with a non-OK status."""

    code = "upstream_error"

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(self._describe(body))

    @staticmethod
    def _describe(body: Any) -> str:
        if isinstance(body, dict):
            for key in ("error", "message"):
                value = body.get(key)
                if value:
                    return str(value)
        return "Failed to send message"
