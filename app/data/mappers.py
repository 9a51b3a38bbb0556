from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from app.core.errors import MalformedMatchError
from app.core.timeutils import parse_utc
from app.data.models import AWAY_TEAM, DRAW, FINISHED, HOME_TEAM, Match, Score, Team, winner_from_goals

KNOWN_STATUSES = {
    "SCHEDULED",
    "TIMED",
    "IN_PLAY",
    "PAUSED",
    "FINISHED",
    "POSTPONED",
    "SUSPENDED",
    "CANCELLED",
    "AWARDED",
}
_ALIASES = {"LIVE": "IN_PLAY", "CANCELED": "CANCELLED"}


def normalize_status(raw_status: Optional[str]) -> Optional[str]:
    code = (raw_status or "").strip().upper()
    if not code:
        return None
    code = _ALIASES.get(code, code)
    if code in KNOWN_STATUSES:
        return code
    return "OTHER"


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _map_team(raw: Any, side: str, match_id: Any) -> Team:
    if not isinstance(raw, Mapping) or raw.get("id") is None:
        raise MalformedMatchError(f"{side} team id is missing", match_id=match_id)
    return Team(
        id=raw["id"],
        name=raw.get("name") or str(raw["id"]),
        short_name=raw.get("shortName"),
        tla=raw.get("tla"),
        crest=raw.get("crest"),
    )


def _map_score(raw: Any, status: str, match_id: Any) -> Score:
    score = raw if isinstance(raw, Mapping) else {}
    full_time = score.get("fullTime") if isinstance(score.get("fullTime"), Mapping) else {}
    home = _as_int(full_time.get("home"))
    away = _as_int(full_time.get("away"))
    winner = score.get("winner")
    if winner not in (HOME_TEAM, AWAY_TEAM, DRAW):
        winner = None

    if home is None or away is None:
        if status == FINISHED:
            raise MalformedMatchError("finished match has no full-time score", match_id=match_id)
        return Score(home=None, away=None, winner=None)

    if winner is None and status == FINISHED:
        winner = winner_from_goals(home, away)
    return Score(home=home, away=away, winner=winner)


def normalize_match(raw: Mapping[str, Any]) -> Match:
    """Shape one football-data v4 match object into a Match; raises MalformedMatchError."""
    if not isinstance(raw, Mapping):
        raise MalformedMatchError("match entry is not an object")
    match_id = raw.get("id")

    home_team = _map_team(raw.get("homeTeam"), "home", match_id)
    away_team = _map_team(raw.get("awayTeam"), "away", match_id)

    utc_date = parse_utc(raw.get("utcDate"))
    if utc_date is None:
        raise MalformedMatchError("utcDate is missing or not ISO-8601", match_id=match_id)

    status = normalize_status(raw.get("status"))
    if status is None:
        raise MalformedMatchError("status is missing", match_id=match_id)

    matchday = _as_int(raw.get("matchday"))
    if matchday is not None and matchday < 1:
        matchday = None
    if status == FINISHED and matchday is None:
        raise MalformedMatchError("finished match has no matchday", match_id=match_id)

    return Match(
        id=match_id,
        utc_date=utc_date,
        status=status,
        matchday=matchday,
        home_team=home_team,
        away_team=away_team,
        score=_map_score(raw.get("score"), status, match_id),
        stage=raw.get("stage"),
    )


def normalize_matches(raw_matches: Iterable[Mapping[str, Any]]) -> List[Match]:
    return [normalize_match(raw) for raw in raw_matches]


def coerce_matches(matches: Iterable[Any]) -> List[Match]:
    """Accept normalized Match objects or raw football-data dicts (normalized on the way in)."""
    return [m if isinstance(m, Match) else normalize_match(m) for m in matches]
