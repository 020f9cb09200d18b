from __future__ import annotations

import email.utils
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from llm_facade.core.logging_utils import truncate_log_content
from llm_facade.domain.exceptions import ProviderResponseError, ResponseDecodeError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    import httpx

logger = logging.getLogger(__name__)


def parse_retry_after(headers: Mapping[str, str] | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds or as an HTTP date.

    Returns:
        Seconds to wait, or None if the header is absent or unparseable.
    """
    if not headers:
        return None
    raw = None
    for name, value in headers.items():
        if name.lower() == "retry-after":
            raw = value
            break
    if raw is None:
        return None

    raw = str(raw).strip()
    try:
        return max(0.0, float(raw))
    except ValueError:
        pass

    try:
        parsed = email.utils.parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.warning("invalid_retry_after_header", extra={"retry_after": raw})
        return None
    return max(0.0, parsed.timestamp() - time.time())


async def raise_for_provider_status(
    response: httpx.Response,
    provider: str,
    extract_message: Callable[[Any], str],
) -> None:
    """Raise ``ProviderResponseError`` for a non-success response.

    Works for streamed responses too: the body is read, then the response
    is closed before raising.
    """
    if response.is_success:
        return

    try:
        await response.aread()
    finally:
        await response.aclose()

    body = response.text
    try:
        message = extract_message(json.loads(body)) if body else response.reason_phrase
    except json.JSONDecodeError:
        message = response.reason_phrase or "Unknown API error"

    logger.warning(
        "provider_http_error",
        extra={
            "provider": provider,
            "status_code": response.status_code,
            "body": truncate_log_content(body, 500),
        },
    )
    raise ProviderResponseError(
        f"{provider} API error ({response.status_code}): {message}",
        status_code=response.status_code,
        provider=provider,
        body=body,
        headers=response.headers,
    )


def decode_json(response: httpx.Response, provider: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        msg = f"Failed to parse {provider} JSON response: {e}"
        raise ResponseDecodeError(msg, provider=provider, payload=response.text) from e
