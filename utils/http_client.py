import logging

import requests

from . import errors

logger = logging.getLogger("rest_framework")

DEFAULT_TIMEOUT = 10  # seconds, per attempt


def _error_message(response):
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or payload.get("detail") or payload)
    return str(payload)


def send_request(method, url, *, session=None, token=None, timeout=DEFAULT_TIMEOUT, **kwargs):
    """
    Performs an HTTP request and maps failures onto the error taxonomy:
    network errors, timeouts, 5xx and 429 become `UpstreamUnavailableError`,
    other 4xx answers become validation/not-found/authorization/conflict errors.
    """
    http = session or requests
    headers = dict(kwargs.pop("headers", None) or {})
    if token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        response = http.request(method, url, headers=headers, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        logger.warning(f"{method} {url} failed: {exc}")
        raise errors.UpstreamUnavailableError(f"{method} {url} is unreachable.") from exc

    status_code = response.status_code
    if status_code == 429 or status_code >= 500:
        raise errors.UpstreamUnavailableError(
            f"{method} {url} answered {status_code}.",
            retry_after=response.headers.get("Retry-After"),
        )
    if status_code >= 400:
        message = _error_message(response)
        if status_code == 404:
            raise errors.NotFoundError(message)
        if status_code in (401, 403):
            raise errors.AuthorizationError(message)
        if status_code == 409 or "already" in message.lower():
            raise errors.ConflictError(message)
        raise errors.ValidationError(message)
    return response


def request_json(method, url, **kwargs):
    response = send_request(method, url, **kwargs)
    if response.status_code == 204 or not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise errors.UpstreamUnavailableError(f"{method} {url} returned invalid JSON.") from exc
