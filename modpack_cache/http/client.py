# modpack_cache/http/client.py
from __future__ import annotations
import asyncio
import logging
import random
from typing import Any
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

import httpx

from modpack_cache.config.settings import HttpSettings

logger = logging.getLogger(__name__)

__all__ = ["HTTPError", "request", "requestWithSettings", "createClient"]



class HTTPError(Exception):
    def __init__(self, status: int, body: str, *, retryAfter: float | None = None):
        super().__init__(f"HTTP {status}: {body[:200]}")
        self.status = status
        self.body = body
        self.retryAfter = retryAfter



def _parseRetryAfter(value: str | None) -> float | None:
    """Return seconds suggested by Retry-After header, if parsable."""
    if not value:
        return None
    # Retry-After: seconds
    try:
        secondsF = float(value)
        if secondsF >= 0:
            return secondsF
    except ValueError:
        pass
    # Retry-After: HTTP-date
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    # Normalize to aware UTC for safe subtraction
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    now = datetime.now(timezone.utc).timestamp()
    return max(0.0, dt.timestamp() - now)



def _shouldRetry(status: int) -> bool:
    # Timeouts, throttling and every 5xx (including Cloudflare's 52x) are transient
    return status == 408 or status == 429 or status >= 500



def _backoffMs(attempt: int, backoffBaseMs: int, backoffMaxMs: int) -> float:
    """Exponential backoff with ±25% jitter. `attempt` is 0 for the first retry."""
    base = min(backoffMaxMs, backoffBaseMs * (2 ** attempt))
    jitter = base * 0.25
    return max(0.0, base + random.uniform(-jitter, jitter))



def createClient(settings: HttpSettings, **kwargs: Any) -> httpx.AsyncClient:
    """One shared client per run; connection pooling across resolutions."""
    headers = {"User-Agent": settings.userAgent, "Accept": "application/json"}
    headers.update(kwargs.pop("headers", None) or {})
    return httpx.AsyncClient(
        timeout=httpx.Timeout(max(1, settings.timeoutMs) / 1_000),
        http2=kwargs.pop("http2", settings.http2),
        headers=headers,
        follow_redirects=True,
        **kwargs,
    )



async def _send(
    cli: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None,
    json: Any | None,
    params: dict[str, Any] | None,
    timeout: httpx.Timeout,
    retries: int,
    backoffBaseMs: int,
    backoffMaxMs: int,
    maxRetryAfterMs: int | None,
) -> dict[str, Any]:
    attempt = 0
    host = urlparse(url).hostname
    while True:
        try:
            resp = await cli.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=timeout,
            )
            status = resp.status_code

            # Retry policy based on status
            if _shouldRetry(status):
                retryAfter = _parseRetryAfter(resp.headers.get("Retry-After"))
                if retryAfter is not None and maxRetryAfterMs is not None and retryAfter * 1000.0 > maxRetryAfterMs:
                    # Upstream wants us gone for longer than we are willing to wait
                    raise HTTPError(status, resp.text, retryAfter=retryAfter)

                if attempt < retries:
                    if retryAfter is not None:
                        delayMs = retryAfter * 1000.0
                    else:
                        delayMs = _backoffMs(attempt, backoffBaseMs, backoffMaxMs)
                    attempt += 1
                    logger.info(
                        "HTTP %d from %s %s, retry %d/%d in %.0f ms",
                        status, method, host, attempt, retries, delayMs,
                    )
                    await asyncio.sleep(delayMs / 1000.0)
                    continue

                raise HTTPError(status, resp.text, retryAfter=retryAfter)

            # Success or non-retryable 4xx: return payload (no exception)
            out: dict[str, Any] = {
                "status": status,
                "headers": dict(resp.headers), # note: Duplicate header keys are collapsed
                "text": resp.text,
            }

            # Best-effort JSON parse
            ctype = resp.headers.get("Content-Type", "")
            if "json" in ctype.lower():
                try:
                    out["json"] = resp.json()
                except ValueError:
                    # Keep going; caller still has "text"
                    pass

            logger.debug("HTTP %d from %s %s (attempt %d)", status, method, url, attempt + 1)
            return out

        except httpx.HTTPError as err:
            # Transport-level error (timeouts included). Retry with backoff.
            if attempt >= retries:
                raise
            delayMs = _backoffMs(attempt, backoffBaseMs, backoffMaxMs)
            attempt += 1
            logger.info(
                "%s for %s %s, retry %d/%d in %.0f ms",
                type(err).__name__, method, host, attempt, retries, delayMs,
            )
            await asyncio.sleep(delayMs / 1000.0)



async def request(
    method: str,
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
    json: Any | None = None,
    params: dict[str, Any] | None = None,
    timeoutMs: int = 10_000,
    retries: int = 2,
    backoffBaseMs: int = 200,
    backoffMaxMs: int = 3_200,
    maxRetryAfterMs: int | None = None,
) -> dict[str, Any]:
    """
    Outbound HTTP call with timeout and retries (408/429/5xx and transport errors).

    Returns:
    {
        "status": int,
        "headers": dict[str,str],
        "text": str,
        "json": Any? # Present when response looks like JSON and parses
    }

    - Uses `client` when given (shared pool), otherwise a short-lived client.
    - Raises HTTPError for 408/429/5xx after exhausting retries, and when Retry-After
      exceeds `maxRetryAfterMs`.
    - Lets httpx.HTTPError (timeouts, connection failures) escape after exhausting retries.
    - Non-retryable 4xx are returned, not raised; callers decide what they mean.
    """
    if timeoutMs <= 0:
        timeoutMs = 1
    timeout = httpx.Timeout(timeoutMs / 1_000)
    method = str(method).upper()
    retries = max(0, retries)

    sendKw = {
        "headers": headers,
        "json": json,
        "params": params,
        "timeout": timeout,
        "retries": retries,
        "backoffBaseMs": backoffBaseMs,
        "backoffMaxMs": backoffMaxMs,
        "maxRetryAfterMs": maxRetryAfterMs,
    }
    if client is not None:
        return await _send(client, method, url, **sendKw)

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as cli:
        return await _send(cli, method, url, **sendKw)



async def requestWithSettings(
    method: str,
    url: str,
    settings: HttpSettings,
    *,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
    json: Any | None = None,
    params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """request() with the timeout/retry policy taken from configuration."""
    return await request(
        method,
        url,
        client=client,
        headers=headers,
        json=json,
        params=params,
        timeoutMs=settings.timeoutMs,
        retries=settings.retries,
        backoffBaseMs=settings.backoffBaseMs,
        backoffMaxMs=settings.backoffMaxMs,
        maxRetryAfterMs=settings.maxRetryAfterMs,
    )
