from __future__ import annotations

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .errors import MethodNotAllowed
from .relay import handle_relay_request
from .wasender_client import WasenderClient, get_wasender_client

app = FastAPI(title="wa-sender relay", version="0.1.0")

RELAY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]


def cors_headers(settings: Settings) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": "86400",
    }


# --- Dependencies ---


def get_provider() -> WasenderClient:
    return get_wasender_client()


# --- Error handling ---


@app.exception_handler(StarletteHTTPException)
async def relay_http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Methods the router itself rejects get the relay's 405 body and CORS headers."""
    if exc.status_code != status.HTTP_405_METHOD_NOT_ALLOWED:
        return await http_exception_handler(request, exc)
    error = MethodNotAllowed()
    return JSONResponse(
        error.to_body(), status_code=error.status_code, headers=cors_headers(get_settings())
    )


# --- Routes ---


@app.api_route("/", methods=RELAY_METHODS)
@app.api_route("/whatsapp-sender", methods=RELAY_METHODS)
async def whatsapp_sender(
    request: Request,
    provider: WasenderClient = Depends(get_provider),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Relay endpoint.

    Accepts JSON:

      { "apiKey": "...", "to": "+15551234567", "text": "Hello",
        "fileUrl": "https://...", "fileType": "image" | "video" | "document",
        "action": "verify" }

    OPTIONS answers the CORS preflight without looking at the body.
    """
    headers = cors_headers(settings)
    body = b"" if request.method == "OPTIONS" else await request.body()

    result = await handle_relay_request(request.method, body, provider)
    if result.body is None:
        return Response(status_code=result.status_code, headers=headers)
    return JSONResponse(result.body, status_code=result.status_code, headers=headers)
