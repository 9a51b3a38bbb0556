"""League table derivation: per-team records, tiebreak ordering and table zones."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.errors import TeamNotFoundError
from app.core.logger import get_logger
from app.core.timeutils import ensure_aware_utc, utcnow
from app.data.mappers import coerce_matches
from app.data.models import Match, Team

log = get_logger("services.standings")
FORM_LENGTH = 5

CHAMPIONS_LEAGUE_PLACES = 4
EUROPA_LEAGUE_PLACE = 5
CONFERENCE_LEAGUE_PLACE = 6
RELEGATION_PLACES = 3


@dataclass
class TeamRecord:
    team: Team
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0
    form: Tuple[str, ...] = ()
    form_matches: Tuple[Match, ...] = ()
    next_match: Optional[Match] = None
    last_match: Optional[Match] = None

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


@dataclass
class _Tally:
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0
    sequence: List[Match] = field(default_factory=list)

    def add(self, match: Match, team_id: Any) -> None:
        self.sequence.append(match)
        if match.is_postponed:
            return
        outcome = match.outcome_for(team_id)
        self.played += 1
        self.goals_for += match.goals_for(team_id) or 0
        self.goals_against += match.goals_against(team_id) or 0
        if outcome == "W":
            self.won += 1
        elif outcome == "D":
            self.drawn += 1
        else:
            self.lost += 1
        self.points += match.points_for(team_id)


def _team_record(team_id: Any, team_matches: Sequence[Match], as_of: datetime) -> TeamRecord:
    team = team_matches[0].team(team_id)

    # sorted() is stable: exact kickoff ties keep their input order.
    history = sorted(
        (m for m in team_matches if m.utc_date <= as_of and (m.is_finished or m.is_postponed)),
        key=lambda m: m.utc_date,
    )
    tally = _Tally()
    for match in history:
        tally.add(match, team_id)

    form_matches = tuple(tally.sequence[-FORM_LENGTH:])
    upcoming = [m for m in team_matches if m.is_upcoming and m.utc_date > as_of]
    next_match = min(upcoming, key=lambda m: m.utc_date) if upcoming else None
    finished = [m for m in history if m.is_finished]
    last_match = finished[-1] if finished else None

    return TeamRecord(
        team=team,
        played=tally.played,
        won=tally.won,
        drawn=tally.drawn,
        lost=tally.lost,
        goals_for=tally.goals_for,
        goals_against=tally.goals_against,
        points=tally.points,
        form=tuple(m.outcome_for(team_id) for m in form_matches),
        form_matches=form_matches,
        next_match=next_match,
        last_match=last_match,
    )


def _resolve_as_of(as_of: Optional[datetime]) -> datetime:
    return utcnow() if as_of is None else ensure_aware_utc(as_of)


def compute_team_record(matches: Iterable[Any], team_id: Any, as_of: Optional[datetime] = None) -> TeamRecord:
    """
    Fold a team's matches up to ``as_of`` (default: now) into a TeamRecord.

    Only FINISHED matches count towards the record. POSTPONED matches are kept
    in the folded sequence so they show up as ``PP`` in the form, but add
    nothing else. Input order does not matter apart from exact kickoff ties.
    """
    team_matches = [m for m in coerce_matches(matches) if m.involves(team_id)]
    if not team_matches:
        raise TeamNotFoundError(team_id)
    return _team_record(team_id, team_matches, _resolve_as_of(as_of))


def sort_standings(records: Iterable[TeamRecord]) -> List[TeamRecord]:
    """Points, goal difference, goals scored (all descending), then team name."""
    return sorted(
        records,
        key=lambda r: (-r.points, -r.goal_difference, -r.goals_for, r.team.name),
    )


def group_by_team(matches: Sequence[Match]) -> Dict[Any, List[Match]]:
    """Team id -> that team's matches, teams in first-seen order."""
    grouped: Dict[Any, List[Match]] = {}
    for match in matches:
        grouped.setdefault(match.home_team.id, []).append(match)
        grouped.setdefault(match.away_team.id, []).append(match)
    return grouped


def build_standings(matches: Iterable[Any], as_of: Optional[datetime] = None) -> List[TeamRecord]:
    """Current table: one record per team found in ``matches``, in table order."""
    normalized = coerce_matches(matches)
    as_of_dt = _resolve_as_of(as_of)
    records = [
        _team_record(team_id, team_matches, as_of_dt)
        for team_id, team_matches in group_by_team(normalized).items()
    ]
    table = sort_standings(records)
    log.debug("standings_built teams=%d matches=%d as_of=%s", len(table), len(normalized), as_of_dt.isoformat())
    return table


def position_zone(position: int, team_count: int = 20) -> Optional[str]:
    if position <= CHAMPIONS_LEAGUE_PLACES:
        return "champions_league"
    if position == EUROPA_LEAGUE_PLACE:
        return "europa_league"
    if position == CONFERENCE_LEAGUE_PLACE:
        return "conference_league"
    if position > team_count - RELEGATION_PLACES:
        return "relegation"
    return None
