from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from src.app.domain.errors import UpstreamTransportError, truncate_body

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 10.0


def build_timeout(timeout_seconds: float) -> httpx.Timeout:
    return httpx.Timeout(
        timeout_seconds,
        read=timeout_seconds,
        connect=min(CONNECT_TIMEOUT_SECONDS, timeout_seconds),
    )


async def post_json(
    url: str,
    payload: dict[str, Any],
    *,
    label: str,
    timeout_seconds: float,
    headers: Optional[dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """POST a JSON body, turning network-level failures into UpstreamTransportError."""
    try:
        async with httpx.AsyncClient(timeout=build_timeout(timeout_seconds), transport=transport) as client:
            return await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as err:
        logger.error("%s timed out after %ss: %s", label, timeout_seconds, url)
        raise UpstreamTransportError(f"{label} timed out after {timeout_seconds}s") from err
    except httpx.HTTPError as err:
        logger.error("%s request failed: %s", label, err)
        raise UpstreamTransportError(f"Failed to reach {label}") from err


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a delta-seconds Retry-After header; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def ensure_success(
    response: httpx.Response,
    *,
    label: str,
    message: Optional[str] = None,
    status_code: Optional[int] = None,
) -> None:
    if response.is_success:
        return

    body = response.text
    excerpt = truncate_body(body)
    logger.error("%s error: status=%s body=%s", label, response.status_code, excerpt)
    raise UpstreamTransportError(
        f"{message or label + ' request failed'} ({label} {response.status_code}): "
        f"{excerpt or 'no body returned'}",
        upstream_status=response.status_code,
        body=body,
        status_code=status_code,
        retry_after=parse_retry_after(response.headers.get("Retry-After")),
    )


def decode_body(response: httpx.Response) -> Any:
    """Return the JSON-decoded body, or the raw text when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text
