from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit


def validate_base_url(url: str, *, name: str) -> str:
    """Validate a provider base URL and normalise it to end with a slash.

    Endpoint paths are joined relative to the base, so ``https://host/v1``
    and ``https://host/v1/`` must resolve to the same endpoints.
    """
    if not url:
        msg = f"{name} base URL is required"
        raise ValueError(msg)
    url = url.strip()
    if len(url) > 2048:
        msg = f"{name} base URL is too long"
        raise ValueError(msg)
    if any(char in url for char in [" ", "\n", "\t"]):
        msg = f"{name} base URL contains invalid characters"
        raise ValueError(msg)

    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        msg = f"{name} base URL must be an absolute http(s) URL, got {url!r}"
        raise ValueError(msg)

    if not url.endswith("/"):
        url = f"{url}/"
    return url


def _ensure_api_key(value: str, *, name: str) -> str:
    if not value:
        msg = f"{name} API key is required"
        raise ValueError(msg)
    value = value.strip()
    if not value:
        msg = f"{name} API key is required"
        raise ValueError(msg)
    if len(value) > 500:
        msg = f"{name} API key appears to be too long"
        raise ValueError(msg)
    if any(char in value for char in [" ", "\n", "\t"]):
        msg = f"{name} API key contains invalid characters"
        raise ValueError(msg)
    return value


def _parse_status_codes(value: Any) -> tuple[int, ...]:
    if value in (None, ""):
        return ()
    values = value if isinstance(value, list | tuple | set | frozenset) else str(value).split(",")

    codes: list[int] = []
    for piece in values:
        piece = str(piece).strip()
        if not piece:
            continue
        try:
            code = int(piece)
        except ValueError as exc:
            msg = f"Invalid HTTP status code: {piece!r}"
            raise ValueError(msg) from exc
        if code < 100 or code > 599:
            msg = f"HTTP status code out of range: {code}"
            raise ValueError(msg)
        if code not in codes:
            codes.append(code)
    return tuple(codes)
