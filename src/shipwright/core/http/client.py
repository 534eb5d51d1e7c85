from __future__ import annotations

import os
import random
import threading
import time

import httpx

from .errors import ShipwrightHTTPNetworkError, ShipwrightHTTPStatusError, ShipwrightHTTPTimeoutError

# Collaborators (LLM, bridge, Resend, Discord) signal overload with these.
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_RETRYABLE_TRANSPORT_ERRORS = (httpx.ConnectError, httpx.RemoteProtocolError)
_TIMEOUT_S = 15.0
_CONNECT_TIMEOUT_S = 5.0
_DEFAULT_RETRIES = 1
_BACKOFF_BASE_S = 0.25
_BACKOFF_MAX_S = 2.0
_BODY_EXCERPT_CHARS = 500

_client: httpx.Client | None = None
_client_lock = threading.Lock()


def _timeout(total_s: float) -> httpx.Timeout:
    total_s = max(0.1, total_s)
    return httpx.Timeout(total_s, connect=min(_CONNECT_TIMEOUT_S, total_s))


def _default_retries() -> int:
    raw = os.getenv("SHIPWRIGHT_HTTP_RETRIES")
    if raw is None:
        return _DEFAULT_RETRIES
    try:
        return max(0, int(raw))
    except ValueError:
        return _DEFAULT_RETRIES


def get_http_client() -> httpx.Client:
    global _client
    if _client is not None:
        return _client

    with _client_lock:
        if _client is None:
            _client = httpx.Client(timeout=_timeout(_TIMEOUT_S), headers={"User-Agent": "shipwright"})
    return _client


def request_with_retry(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    json: object | None = None,
    timeout_override: float | None = None,
    retries: int | None = None,
    redact_url: bool = False,
    idempotency_key: str | None = None,
) -> httpx.Response:
    """Send one collaborator request, retrying transient failures with jittered backoff.

    Timeouts raise ``ShipwrightHTTPTimeoutError``, other transport failures
    ``ShipwrightHTTPNetworkError`` and non-2xx answers ``ShipwrightHTTPStatusError``
    with the status code in the message. ``redact_url`` keeps webhook secrets
    out of error messages and logs.
    """
    max_retries = _default_retries() if retries is None else max(0, retries)

    merged_headers = dict(headers or {})
    if idempotency_key and "Idempotency-Key" not in merged_headers:
        merged_headers["Idempotency-Key"] = idempotency_key

    client = get_http_client()
    shown_url = "[redacted-url]" if redact_url else url

    last_exc: Exception | None = None
    for attempt in range(max_retries + 1):
        final = attempt >= max_retries
        try:
            response = client.request(
                method,
                url,
                headers=merged_headers or None,
                json=json,
                timeout=_timeout(timeout_override) if timeout_override is not None else None,
            )
        except httpx.TimeoutException as exc:
            last_exc = exc
            if final:
                raise ShipwrightHTTPTimeoutError(f"HTTP request timeout for {shown_url}: {exc.__class__.__name__}") from exc
            _sleep_for_retry(attempt)
            continue
        except _RETRYABLE_TRANSPORT_ERRORS as exc:
            last_exc = exc
            if final:
                raise ShipwrightHTTPNetworkError(f"HTTP network error for {shown_url}: {exc.__class__.__name__}") from exc
            _sleep_for_retry(attempt)
            continue
        except httpx.HTTPError as exc:
            raise ShipwrightHTTPNetworkError(f"HTTP network error for {shown_url}: {exc.__class__.__name__}") from exc

        status = response.status_code
        if 200 <= status < 300:
            return response
        if status in _RETRYABLE_STATUS_CODES and not final:
            _sleep_for_retry(attempt)
            continue
        raise ShipwrightHTTPStatusError(
            f"HTTP status {status} for {shown_url}",
            status_code=status,
            body=response.text[:_BODY_EXCERPT_CHARS],
        )

    raise ShipwrightHTTPNetworkError(f"HTTP network error for {shown_url}: {last_exc}")


def _sleep_for_retry(attempt: int) -> None:
    sleep_s = min(_BACKOFF_MAX_S, _BACKOFF_BASE_S * (2**attempt)) * (0.5 + random.random())
    time.sleep(sleep_s)
