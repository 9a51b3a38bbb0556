from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

FINISHED = "FINISHED"
POSTPONED = "POSTPONED"
UPCOMING_STATUSES = ("SCHEDULED", "TIMED")

HOME_TEAM = "HOME_TEAM"
AWAY_TEAM = "AWAY_TEAM"
DRAW = "DRAW"

POSTPONED_FORM = "PP"


def winner_from_goals(home: int, away: int) -> str:
    if home > away:
        return HOME_TEAM
    if home < away:
        return AWAY_TEAM
    return DRAW


@dataclass(frozen=True, eq=False)
class Team:
    id: Any
    name: str
    short_name: Optional[str] = None
    tla: Optional[str] = None
    crest: Optional[str] = None

    # Identity is the upstream id; names are display-only.
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Team):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(frozen=True)
class Score:
    home: Optional[int] = None
    away: Optional[int] = None
    winner: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.home is not None and self.away is not None

    @property
    def result(self) -> Optional[str]:
        """Recorded winner, or the one the goals imply when upstream left it blank."""
        if self.winner is None and self.is_complete:
            return winner_from_goals(self.home, self.away)
        return self.winner


@dataclass(frozen=True)
class Match:
    id: Any
    utc_date: datetime
    status: str
    matchday: Optional[int]
    home_team: Team
    away_team: Team
    score: Score = field(default_factory=Score)
    stage: Optional[str] = None

    @property
    def week_index(self) -> Optional[int]:
        return None if self.matchday is None else self.matchday - 1

    @property
    def is_finished(self) -> bool:
        return self.status == FINISHED

    @property
    def is_postponed(self) -> bool:
        return self.status == POSTPONED

    @property
    def is_upcoming(self) -> bool:
        return self.status in UPCOMING_STATUSES

    def involves(self, team_id: Any) -> bool:
        return self.home_team.id == team_id or self.away_team.id == team_id

    def is_home(self, team_id: Any) -> bool:
        return self.home_team.id == team_id

    def team(self, team_id: Any) -> Team:
        return self.home_team if self.is_home(team_id) else self.away_team

    def opponent(self, team_id: Any) -> Team:
        return self.away_team if self.is_home(team_id) else self.home_team

    def goals_for(self, team_id: Any) -> Optional[int]:
        return self.score.home if self.is_home(team_id) else self.score.away

    def goals_against(self, team_id: Any) -> Optional[int]:
        return self.score.away if self.is_home(team_id) else self.score.home

    def points_for(self, team_id: Any) -> int:
        outcome = self.outcome_for(team_id)
        if outcome == "W":
            return 3
        if outcome == "D":
            return 1
        return 0

    def outcome_for(self, team_id: Any) -> str:
        """W / D / L from the team's side; PP for a postponed fixture."""
        if self.is_postponed:
            return POSTPONED_FORM
        winner = self.score.result
        if winner == DRAW:
            return "D"
        if winner == (HOME_TEAM if self.is_home(team_id) else AWAY_TEAM):
            return "W"
        return "L"
