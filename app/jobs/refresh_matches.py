from __future__ import annotations

import asyncio
import time

from app.core.config import settings
from app.core.logger import get_logger
from app.data.mappers import normalize_matches
from app.data.providers import cache
from app.data.providers.football_data import FootballDataError, get_matches

log = get_logger("jobs.refresh_matches")
REFRESH_LOCK = asyncio.Lock()


async def run(*, competition: str | None = None, season: int | None = None) -> cache.MatchSnapshot:
    """
    Fetch the full season, normalize it and swap it into the cache.

    Nothing is stored unless every match was fetched and normalized, so
    readers never see a partial season. Errors propagate to the caller.
    """
    code = competition or settings.competition_code
    season_val = int(season or settings.season)
    async with REFRESH_LOCK:
        t0 = time.perf_counter()
        raw = await get_matches(code, season_val)
        matches = normalize_matches(raw)
        snap = cache.store_snapshot(code, season_val, matches)
        dur_ms = int((time.perf_counter() - t0) * 1000)
        finished = sum(1 for m in matches if m.is_finished)
        log.info(
            "refresh_matches done competition=%s season=%s matches=%d finished=%d duration_ms=%d",
            code,
            season_val,
            len(matches),
            finished,
            dur_ms,
        )
        return snap


async def ensure_fresh(max_age_seconds: int | None = None) -> cache.MatchSnapshot:
    """
    Return the cached snapshot, refreshing first when it is missing or stale.

    A stale snapshot is still a complete season, so it is served when the
    upstream fetch fails; with nothing cached the error propagates.
    """
    max_age = settings.matches_max_age_seconds if max_age_seconds is None else max_age_seconds
    snap = cache.get_snapshot()
    if snap is not None and snap.age_seconds() <= max_age:
        return snap
    if REFRESH_LOCK.locked():
        # Refresh already in flight.
        async with REFRESH_LOCK:
            pass
        snap = cache.get_snapshot()
        if snap is not None:
            return snap
    try:
        return await run()
    except FootballDataError as e:
        if snap is None:
            raise
        log.warning("refresh_matches failed, serving stale snapshot age_s=%d error=%s", snap.age_seconds(), e)
        return snap
