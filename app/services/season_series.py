"""
Season-long reconstruction of cumulative points and table positions.

Every team gets one slot per matchweek. Values are cumulative as of that
matchweek; a week without a finished match repeats the previous value and
has no match detail, so consumers can tell "no game" apart from "no change".
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Optional

from app.core.errors import MalformedMatchError
from app.core.logger import get_logger
from app.data.mappers import coerce_matches
from app.data.models import Match, Team

log = get_logger("services.season_series")
DEFAULT_SEASON_WEEKS = 38
# Points-per-match gap at or below which two teams count as level.
POSITION_RATE_EPSILON = 0.01
NOT_PLAYED = -1


@dataclass(frozen=True)
class MatchweekDetail:
    match_id: Any
    opponent: str
    opponent_id: Any
    is_home: bool
    goals_for: int
    goals_against: int
    home_goals: int
    away_goals: int

    @property
    def score(self) -> str:
        return f"{self.goals_for}-{self.goals_against}"


@dataclass(frozen=True)
class _Contribution:
    points: int = 0
    goals_for: int = 0
    goal_difference: int = 0
    played: int = 0

    def __add__(self, other: "_Contribution") -> "_Contribution":
        return _Contribution(
            points=self.points + other.points,
            goals_for=self.goals_for + other.goals_for,
            goal_difference=self.goal_difference + other.goal_difference,
            played=self.played + other.played,
        )


_EMPTY = _Contribution()


@dataclass
class TeamSeries:
    team: Team
    points: List[int]
    goals_for: List[int]
    goal_difference: List[int]
    matches_played: List[int]
    matches: List[Optional[MatchweekDetail]]
    last_played_matchweek: int = NOT_PLAYED
    positions: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class _WeekRow:
    team_id: Any
    name: str
    points: int
    goal_difference: int
    goals_for: int
    played: int

    @property
    def points_per_match(self) -> float:
        return self.points / self.played if self.played > 0 else 0.0


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _compare_rows(a: _WeekRow, b: _WeekRow) -> int:
    # Rate first so teams with games in hand are compared on a level footing.
    rate_gap = b.points_per_match - a.points_per_match
    if abs(rate_gap) > POSITION_RATE_EPSILON:
        return _sign(rate_gap)
    if a.points != b.points:
        return _sign(b.points - a.points)
    if a.goal_difference != b.goal_difference:
        return _sign(b.goal_difference - a.goal_difference)
    if a.goals_for != b.goals_for:
        return _sign(b.goals_for - a.goals_for)
    return _sign((a.name > b.name) - (a.name < b.name))


def _rank_week(rows: Iterable[_WeekRow]) -> List[_WeekRow]:
    return sorted(rows, key=cmp_to_key(_compare_rows))


def _contribution(match: Match, team_id: Any) -> _Contribution:
    goals_for = match.goals_for(team_id) or 0
    goals_against = match.goals_against(team_id) or 0
    return _Contribution(
        points=match.points_for(team_id),
        goals_for=goals_for,
        goal_difference=goals_for - goals_against,
        played=1,
    )


def _detail(match: Match, team_id: Any) -> MatchweekDetail:
    opponent = match.opponent(team_id)
    return MatchweekDetail(
        match_id=match.id,
        opponent=opponent.name,
        opponent_id=opponent.id,
        is_home=match.is_home(team_id),
        goals_for=match.goals_for(team_id) or 0,
        goals_against=match.goals_against(team_id) or 0,
        home_goals=match.score.home or 0,
        away_goals=match.score.away or 0,
    )


def _fold_weeks(team: Team, weekly: List[_Contribution], details: List[Optional[MatchweekDetail]]) -> TeamSeries:
    """Running totals week by week; a week without a match repeats the previous total."""
    points: List[int] = []
    goals_for: List[int] = []
    goal_difference: List[int] = []
    matches_played: List[int] = []
    running = _EMPTY
    last_played = NOT_PLAYED
    for week, contribution in enumerate(weekly):
        running = running + contribution
        if contribution.played:
            last_played = week
        points.append(running.points)
        goals_for.append(running.goals_for)
        goal_difference.append(running.goal_difference)
        matches_played.append(running.played)
    return TeamSeries(
        team=team,
        points=points,
        goals_for=goals_for,
        goal_difference=goal_difference,
        matches_played=matches_played,
        matches=list(details),
        last_played_matchweek=last_played,
    )


def _assign_positions(series: Dict[Any, TeamSeries], num_weeks: int) -> None:
    for week in range(num_weeks):
        ranked = _rank_week(
            _WeekRow(
                team_id=team_id,
                name=s.team.name,
                points=s.points[week],
                goal_difference=s.goal_difference[week],
                goals_for=s.goals_for[week],
                played=s.matches_played[week],
            )
            for team_id, s in series.items()
        )
        rank_of = {row.team_id: idx + 1 for idx, row in enumerate(ranked)}
        for team_id, s in series.items():
            if week > 0 and s.matches_played[week] == s.matches_played[week - 1]:
                s.positions.append(s.positions[week - 1])
            else:
                s.positions.append(rank_of[team_id])


def compute_season_series(matches: Iterable[Any], num_weeks: int = DEFAULT_SEASON_WEEKS) -> Dict[Any, TeamSeries]:
    """
    Build cumulative points/goals/played arrays and weekly positions for every team.

    Teams are discovered from every match regardless of status; only FINISHED
    matches contribute. A team's matchweek slot takes the match's ``matchday``,
    so a fixture played late after a postponement still counts in its own week.
    Returns team id -> TeamSeries, teams in first-seen order.
    """
    if num_weeks < 1:
        raise ValueError("num_weeks must be >= 1")

    normalized = coerce_matches(matches)
    teams: Dict[Any, Team] = {}
    for match in normalized:
        teams.setdefault(match.home_team.id, match.home_team)
        teams.setdefault(match.away_team.id, match.away_team)

    weekly: Dict[Any, List[_Contribution]] = {tid: [_EMPTY] * num_weeks for tid in teams}
    details: Dict[Any, List[Optional[MatchweekDetail]]] = {tid: [None] * num_weeks for tid in teams}

    finished = sorted((m for m in normalized if m.is_finished), key=lambda m: m.utc_date)
    for match in finished:
        week = match.week_index
        if week is None or not 0 <= week < num_weeks:
            raise MalformedMatchError(f"matchday {match.matchday} outside 1..{num_weeks}", match_id=match.id)
        for team_id in (match.home_team.id, match.away_team.id):
            weekly[team_id][week] = weekly[team_id][week] + _contribution(match, team_id)
            details[team_id][week] = _detail(match, team_id)

    series = {tid: _fold_weeks(team, weekly[tid], details[tid]) for tid, team in teams.items()}
    _assign_positions(series, num_weeks)
    log.debug("season_series_built teams=%d finished=%d weeks=%d", len(series), len(finished), num_weeks)
    return series
