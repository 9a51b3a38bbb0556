from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import DashboardError, TeamNotFoundError
from app.core.http import close_http_clients, init_http_clients
from app.core.timeutils import ensure_aware_utc, utcnow
from app.data.models import Match, Team
from app.data.providers import cache
from app.data.providers.cache import MatchSnapshot
from app.data.providers.football_data import FootballDataError, get_standings, proxy_get
from app.jobs import refresh_matches
from app.services.season_series import compute_season_series
from app.services.standings import build_standings, compute_team_record, position_zone, TeamRecord
from app.services.team_stats import compute_aggregate_stats

scheduler = AsyncIOScheduler()
logger = logging.getLogger(__name__)
APP_STARTED_AT = utcnow()


def _validate_runtime_config() -> None:
    env = (settings.app_env or "dev").strip().lower()
    if env in {"prod", "production"} and not settings.has_api_key:
        raise RuntimeError("FOOTBALL_DATA_KEY is required in prod")
    if settings.season_weeks < 1:
        raise RuntimeError("SEASON_WEEKS must be >= 1")


async def _scheduled_refresh_matches():
    try:
        await refresh_matches.run()
    except Exception:
        logger.exception("refresh_matches_failed triggered_by=scheduler")


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_http_clients()
    _validate_runtime_config()

    if settings.scheduler_enabled:
        scheduler.add_job(
            _scheduled_refresh_matches,
            IntervalTrigger(minutes=int(settings.matches_refresh_minutes or 10)),
            id="refresh_matches",
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )
        scheduler.start()
    try:
        yield
    finally:
        if settings.scheduler_enabled:
            scheduler.shutdown(wait=False)
        try:
            await close_http_clients()
        except Exception:
            logger.exception("http_client_close_failed")


app = FastAPI(title="Premier League Dashboard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(DashboardError)
async def _dashboard_error_handler(_: Request, exc: DashboardError):
    logger.warning("insufficient_data error=%s", exc)
    return JSONResponse(status_code=422, content={"error": "insufficient data", "detail": str(exc)})


@app.exception_handler(FootballDataError)
async def _football_data_error_handler(_: Request, exc: FootballDataError):
    return JSONResponse(status_code=503, content={"error": "matches failed to load", "detail": str(exc)})


async def _current_snapshot() -> MatchSnapshot:
    return await refresh_matches.ensure_fresh()


def _parse_as_of(as_of: Optional[datetime]) -> Optional[datetime]:
    return ensure_aware_utc(as_of) if as_of is not None else None


def _team_out(team: Team) -> dict:
    return {
        "id": team.id,
        "name": team.name,
        "short_name": team.short_name,
        "tla": team.tla,
        "crest": team.crest,
    }


def _match_out(match: Optional[Match]) -> Optional[dict]:
    if match is None:
        return None
    return {
        "id": match.id,
        "utc_date": match.utc_date.isoformat(),
        "status": match.status,
        "matchday": match.matchday,
        "home_team": _team_out(match.home_team),
        "away_team": _team_out(match.away_team),
        "score": {
            "home": match.score.home,
            "away": match.score.away,
            "winner": match.score.winner,
        },
    }


def _record_out(record: TeamRecord) -> dict:
    return {
        "team": _team_out(record.team),
        "played": record.played,
        "won": record.won,
        "drawn": record.drawn,
        "lost": record.lost,
        "goals_for": record.goals_for,
        "goals_against": record.goals_against,
        "goal_difference": record.goal_difference,
        "points": record.points,
        "form": list(record.form),
        "form_matches": [_match_out(m) for m in record.form_matches],
        "next_match": _match_out(record.next_match),
        "last_match": _match_out(record.last_match),
    }


def _parse_team_subset(teams: Optional[str]) -> Optional[list[Any]]:
    if teams is None or not teams.strip():
        return None
    out: list[Any] = []
    for raw in teams.split(","):
        val = raw.strip()
        if not val:
            continue
        out.append(int(val) if val.isdigit() else val)
    return out


@app.get("/health")
async def health():
    snap = cache.get_snapshot()
    return {
        "ok": True,
        "app_started_at": APP_STARTED_AT.isoformat(),
        "server_time": utcnow().isoformat(),
        "api_key_present": settings.has_api_key,
        "matches_loaded": len(snap.matches) if snap else 0,
        "matches_fetched_at": snap.fetched_at.isoformat() if snap else None,
    }


@app.get("/api/v1/table")
async def api_table(
    as_of: Optional[datetime] = Query(None, description="ISO timestamp; defaults to now"),
    snap: MatchSnapshot = Depends(_current_snapshot),
):
    table = build_standings(snap.matches, as_of=_parse_as_of(as_of))
    out = []
    for idx, record in enumerate(table):
        row = _record_out(record)
        row["position"] = idx + 1
        row["zone"] = position_zone(idx + 1, len(table))
        out.append(row)
    return out


@app.get("/api/v1/teams/{team_id}")
async def api_team_record(
    team_id: int,
    as_of: Optional[datetime] = Query(None),
    snap: MatchSnapshot = Depends(_current_snapshot),
):
    try:
        record = compute_team_record(snap.matches, team_id, as_of=_parse_as_of(as_of))
    except TeamNotFoundError:
        raise HTTPException(status_code=404, detail="team not found")
    return _record_out(record)


@app.get("/api/v1/standings")
async def api_official_standings(snap: MatchSnapshot = Depends(_current_snapshot)):
    """Upstream table rows with form and last/next match derived from the cached matches."""
    rows = await get_standings(snap.competition, snap.season)
    out = []
    for row in rows:
        team_id = (row.get("team") or {}).get("id")
        enriched = dict(row)
        try:
            record = compute_team_record(snap.matches, team_id)
        except TeamNotFoundError:
            logger.warning("official_standings_team_without_matches team_id=%s", team_id)
            record = None
        enriched["form"] = list(record.form) if record else []
        enriched["formMatches"] = [_match_out(m) for m in record.form_matches] if record else []
        enriched["lastMatch"] = _match_out(record.last_match) if record else None
        enriched["nextMatch"] = _match_out(record.next_match) if record else None
        enriched["zone"] = position_zone(int(row.get("position") or 0), len(rows))
        out.append(enriched)
    return out


@app.get("/api/v1/series")
async def api_series(
    mode: str = Query("points", description="points | positions"),
    weeks: Optional[int] = Query(None, ge=1, le=100),
    snap: MatchSnapshot = Depends(_current_snapshot),
):
    mode = (mode or "points").lower()
    if mode not in {"points", "positions"}:
        raise HTTPException(status_code=400, detail="mode must be one of: points, positions")
    num_weeks = int(weeks or settings.season_weeks)
    series = compute_season_series(snap.matches, num_weeks=num_weeks)
    colors = settings.team_colors
    teams = []
    for s in series.values():
        teams.append(
            {
                "team": _team_out(s.team),
                "color": colors.get(s.team.name),
                "values": s.points if mode == "points" else s.positions,
                "points": s.points,
                "positions": s.positions,
                "goals_for": s.goals_for,
                "goal_difference": s.goal_difference,
                "matches_played": s.matches_played,
                "last_played_matchweek": s.last_played_matchweek,
                "matches": [
                    None
                    if d is None
                    else {
                        "match_id": d.match_id,
                        "opponent": d.opponent,
                        "opponent_id": d.opponent_id,
                        "is_home": d.is_home,
                        "score": d.score,
                        "home_goals": d.home_goals,
                        "away_goals": d.away_goals,
                    }
                    for d in s.matches
                ],
            }
        )
    teams.sort(key=lambda t: t["team"]["name"])
    return {"mode": mode, "weeks": num_weeks, "teams": teams}


@app.get("/api/v1/stats")
async def api_stats(
    teams: Optional[str] = Query(None, description="comma separated team ids or names; default all"),
    snap: MatchSnapshot = Depends(_current_snapshot),
):
    stats = compute_aggregate_stats(snap.matches, _parse_team_subset(teams))
    out = {}
    for name, agg in stats.items():
        out[name] = {
            "team": _team_out(agg.team),
            "crest": agg.crest,
            "matches_played": agg.matches_played,
            "goals_for": agg.goals_for,
            "goals_against": agg.goals_against,
            "goal_difference": agg.goal_difference,
            "clean_sheets": agg.clean_sheets,
            "wins": agg.wins,
            "draws": agg.draws,
            "losses": agg.losses,
            "home": {
                "matches": agg.home_matches,
                "wins": agg.home_wins,
                "draws": agg.home_draws,
                "losses": agg.home_losses,
            },
            "away": {
                "matches": agg.away_matches,
                "wins": agg.away_wins,
                "draws": agg.away_draws,
                "losses": agg.away_losses,
            },
            "games_scored": agg.games_scored,
            "games_failed_to_score": agg.games_failed_to_score,
            "biggest_win": agg.biggest_win,
            "rates": {k: float(v) for k, v in agg.rates().items()},
        }
    return out


@app.get("/api/v4/{path:path}")
async def api_upstream_proxy(path: str, request: Request):
    if not settings.has_api_key:
        raise HTTPException(status_code=503, detail="FOOTBALL_DATA_KEY is not configured")
    upstream = await proxy_get(f"v4/{path}", params=dict(request.query_params))
    logger.info("proxy path=/v4/%s status=%s", path, upstream.status_code)
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
