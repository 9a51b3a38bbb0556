from __future__ import annotations

from typing import Any

import httpx

from app.core.config import settings
from app.core.http import football_data_client, request_with_retries
from app.core.logger import get_logger

log = get_logger("providers.football_data")


class FootballDataError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, endpoint: str | None = None):
        msg = message
        if endpoint:
            msg += f" endpoint={endpoint}"
        if status_code is not None:
            msg += f" status={status_code}"
        super().__init__(msg)
        self.status_code = status_code
        self.endpoint = endpoint


def _season_params(season: int | None) -> dict:
    return {"season": int(season)} if season is not None else {}


async def _get_json(endpoint: str, params: dict | None = None) -> dict:
    client = football_data_client()
    try:
        response = await request_with_retries(client, "GET", endpoint, params=params)
    except httpx.RequestError as e:
        log.warning("football_data_request_failed endpoint=%s error=%s", endpoint, e)
        raise FootballDataError(f"request failed: {e}", endpoint=endpoint) from e

    if response.status_code != 200:
        detail = ""
        try:
            body = response.json()
            if isinstance(body, dict):
                detail = str(body.get("message") or "")
        except ValueError:
            detail = response.text[:200]
        log.warning("football_data_bad_status endpoint=%s status=%s detail=%s", endpoint, response.status_code, detail)
        raise FootballDataError(detail or "unexpected response", status_code=response.status_code, endpoint=endpoint)

    try:
        payload = response.json()
    except ValueError as e:
        raise FootballDataError("response is not JSON", endpoint=endpoint) from e
    if not isinstance(payload, dict):
        raise FootballDataError("response is not an object", endpoint=endpoint)
    return payload


async def get_matches(competition: str | None = None, season: int | None = None) -> list[dict[str, Any]]:
    code = competition or settings.competition_code
    endpoint = f"/v4/competitions/{code}/matches"
    payload = await _get_json(endpoint, _season_params(season))
    matches = payload.get("matches")
    if not isinstance(matches, list):
        raise FootballDataError("payload has no matches list", endpoint=endpoint)
    log.info("football_data_matches competition=%s season=%s count=%d", code, season, len(matches))
    return matches


async def get_standings(competition: str | None = None, season: int | None = None) -> list[dict[str, Any]]:
    """Upstream TOTAL table rows (position, team, playedGames, points, ...)."""
    code = competition or settings.competition_code
    endpoint = f"/v4/competitions/{code}/standings"
    payload = await _get_json(endpoint, _season_params(season))
    groups = payload.get("standings")
    if not isinstance(groups, list) or not groups:
        raise FootballDataError("payload has no standings", endpoint=endpoint)
    total = next((g for g in groups if isinstance(g, dict) and g.get("type") == "TOTAL"), groups[0])
    table = total.get("table") if isinstance(total, dict) else None
    if not isinstance(table, list):
        raise FootballDataError("standings group has no table", endpoint=endpoint)
    return table


async def proxy_get(path: str, params: dict | None = None) -> httpx.Response:
    """Forward a GET to the upstream API with the auth header injected."""
    client = football_data_client()
    endpoint = f"/{path.lstrip('/')}"
    try:
        return await request_with_retries(client, "GET", endpoint, params=params)
    except httpx.RequestError as e:
        log.warning("football_data_proxy_failed endpoint=%s error=%s", endpoint, e)
        raise FootballDataError(f"request failed: {e}", endpoint=endpoint) from e
