from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .errors import InvalidResponseError, ServerError


SECRET_HEADER = "x-ingest-secret"
DEFAULT_TIMEOUT = 15.0
MAX_ERROR_BODY = 200


def endpoint(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def error_message(resp: httpx.Response) -> str:
    """Server body (truncated) or a status line when the body is empty."""
    try:
        body = resp.text.strip()
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        body = ""
    if body:
        return body[:MAX_ERROR_BODY]
    return f"Server returned status {resp.status_code}"


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    secret: Optional[str] = None,
    json_body: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    """
    Issue a single request; no retries.

    Transport failures (timeouts, connection errors) mean there is no HTTP
    status to act on and surface as InvalidResponseError.
    """
    headers = {"Accept": "application/json"}
    if secret is not None:
        headers[SECRET_HEADER] = secret
    try:
        return await client.request(method, url, headers=headers, json=json_body, params=params)
    except (httpx.TimeoutException, httpx.TransportError) as exc:
        raise InvalidResponseError(f"No response from server: {exc.__class__.__name__}") from exc


def raise_for_status(resp: httpx.Response) -> None:
    if not is_success(resp.status_code):
        raise ServerError(error_message(resp))


__all__ = [
    "DEFAULT_TIMEOUT",
    "SECRET_HEADER",
    "endpoint",
    "error_message",
    "is_success",
    "raise_for_status",
    "send",
]
