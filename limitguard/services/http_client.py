from __future__ import annotations

"""Lightweight HTTP client util with bounded retry.

Uses stdlib urllib; the only remote call in the service is the daily rate
series fetch. Transient failures (connection errors, timeouts, broken
responses, HTTP 5xx/429) are retried with exponential backoff. Re-fetching is safe
because persisting a rate is idempotent on its natural key.
"""
import http.client
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger("limitguard.http")

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class HttpError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def build_url(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    if not params:
        return url
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{urllib.parse.urlencode(params)}"


def get_json(
    url: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    timeout: float = 5.0,
    retries: int = 2,
    backoff: float = 0.5,
) -> Dict[str, Any]:
    full_url = build_url(url, params)
    request = urllib.request.Request(full_url, headers={"Accept": "application/json"})
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec B310
                body = resp.read()
        except urllib.error.HTTPError as e:
            if e.code not in _RETRYABLE_STATUS:
                raise HttpError(f"HTTP {e.code} for {url}", status=e.code) from e
            last_err = HttpError(f"HTTP {e.code} for {url}", status=e.code)
        # URLError, timeouts and resets are OSErrors; truncated or garbled responses
        # surface from read() as http.client.HTTPException
        except (OSError, http.client.HTTPException) as e:
            last_err = e
        else:
            try:
                return json.loads(body.decode("utf-8"))
            except ValueError as e:  # JSON decode / bad encoding
                raise HttpError(f"Invalid JSON from {url}: {e}") from e
        if attempt == retries:
            break
        logger.warning(
            "http retry",
            extra={"url": url, "attempt": attempt + 1, "error": str(last_err)},
        )
        time.sleep(backoff * (2**attempt))
    status = getattr(last_err, "status", None)
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}", status=status)
