import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from .config import settings
from .logger import get_logger

log = get_logger("core.http")
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})
_football_data_client: httpx.AsyncClient | None = None
_football_data_key: str | None = None


def _http_limits() -> httpx.Limits:
    return httpx.Limits(max_connections=20, max_keepalive_connections=10)


def football_data_client() -> httpx.AsyncClient:
    global _football_data_client, _football_data_key
    key = (settings.football_data_key or "").strip()
    if _football_data_client is None or _football_data_client.is_closed or _football_data_key != key:
        _football_data_key = key
        _football_data_client = httpx.AsyncClient(
            base_url=settings.football_data_base,
            headers={"X-Auth-Token": key},
            timeout=httpx.Timeout(settings.http_timeout_seconds),
            limits=_http_limits(),
        )
    return _football_data_client


async def init_http_clients() -> None:
    football_data_client()


async def close_http_clients() -> None:
    global _football_data_client, _football_data_key
    if _football_data_client is not None and not _football_data_client.is_closed:
        await _football_data_client.aclose()
    _football_data_client = None
    _football_data_key = None


def _retry_after_seconds(response: httpx.Response) -> float | None:
    """Seconds football-data asks us to wait, from a delta or an HTTP-date ``Retry-After``."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _retry_delay(attempt: int, retry_after: float | None = None, *, base: float, cap: float) -> float:
    delay = min(cap, base * (2 ** attempt))
    return delay if retry_after is None else max(delay, retry_after)


async def _sleep(delay: float) -> None:
    await asyncio.sleep(delay)


async def request_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: dict | None = None,
    retries: int | None = None,
    backoff_base: float = 0.5,
    backoff_max: float = 60.0,
) -> httpx.Response:
    """
    Send a request, retrying transport errors and rate-limit/5xx answers.

    The free football-data tier allows 10 requests a minute, so a 429 waits
    at least as long as its ``Retry-After`` says. Once retries run out the
    last response is returned as is and the last transport error is raised.
    """
    attempts = (settings.http_retries if retries is None else retries) + 1
    for attempt in range(attempts):
        last = attempt == attempts - 1
        try:
            response = await client.request(method, url, params=params)
        except httpx.RequestError as e:
            if last:
                raise
            delay = _retry_delay(attempt, base=backoff_base, cap=backoff_max)
            log.info("http_retry url=%s attempt=%d error=%s delay_s=%.1f", url, attempt + 1, e, delay)
            await _sleep(delay)
            continue

        if response.status_code not in RETRY_STATUSES or last:
            return response
        delay = _retry_delay(attempt, _retry_after_seconds(response), base=backoff_base, cap=backoff_max)
        log.info("http_retry url=%s attempt=%d status=%d delay_s=%.1f", url, attempt + 1, response.status_code, delay)
        await response.aclose()
        await _sleep(delay)

    raise RuntimeError("request_with_retries: no attempts made")
