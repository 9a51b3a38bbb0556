from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from app.core.decimalutils import per_match
from app.core.errors import TeamNotFoundError
from app.core.logger import get_logger
from app.data.mappers import coerce_matches
from app.data.models import Match, Team

log = get_logger("services.team_stats")


@dataclass
class TeamAggregate:
    team: Team
    crest: Optional[str] = None
    matches_played: int = 0
    goals_for: int = 0
    goals_against: int = 0
    clean_sheets: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    home_matches: int = 0
    home_wins: int = 0
    home_draws: int = 0
    home_losses: int = 0
    away_matches: int = 0
    away_wins: int = 0
    away_draws: int = 0
    away_losses: int = 0
    games_scored: int = 0
    games_failed_to_score: int = 0
    biggest_win: int = 0

    def add(self, match: Match) -> None:
        team_id = self.team.id
        scored = match.goals_for(team_id) or 0
        conceded = match.goals_against(team_id) or 0
        is_home = match.is_home(team_id)

        self.matches_played += 1
        self.goals_for += scored
        self.goals_against += conceded
        if conceded == 0:
            self.clean_sheets += 1
        if scored > 0:
            self.games_scored += 1
        else:
            self.games_failed_to_score += 1
        self.biggest_win = max(self.biggest_win, scored - conceded)

        if is_home:
            self.home_matches += 1
        else:
            self.away_matches += 1
        if scored > conceded:
            self.wins += 1
            if is_home:
                self.home_wins += 1
            else:
                self.away_wins += 1
        elif scored == conceded:
            self.draws += 1
            if is_home:
                self.home_draws += 1
            else:
                self.away_draws += 1
        else:
            self.losses += 1
            if is_home:
                self.home_losses += 1
            else:
                self.away_losses += 1

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def goals_per_match(self) -> Decimal:
        return per_match(self.goals_for, self.matches_played)

    @property
    def goals_against_per_match(self) -> Decimal:
        return per_match(self.goals_against, self.matches_played)

    @property
    def points_per_game(self) -> Decimal:
        return per_match(self.wins * 3 + self.draws, self.matches_played)

    @property
    def win_rate(self) -> Decimal:
        return per_match(self.wins, self.matches_played)

    @property
    def clean_sheet_rate(self) -> Decimal:
        return per_match(self.clean_sheets, self.matches_played)

    @property
    def scored_rate(self) -> Decimal:
        return per_match(self.games_scored, self.matches_played)

    @property
    def home_win_rate(self) -> Decimal:
        return per_match(self.home_wins, self.home_matches)

    @property
    def away_win_rate(self) -> Decimal:
        return per_match(self.away_wins, self.away_matches)

    def rates(self) -> Dict[str, Decimal]:
        return {
            "goals_per_match": self.goals_per_match,
            "goals_against_per_match": self.goals_against_per_match,
            "points_per_game": self.points_per_game,
            "win_rate": self.win_rate,
            "clean_sheet_rate": self.clean_sheet_rate,
            "scored_rate": self.scored_rate,
            "home_win_rate": self.home_win_rate,
            "away_win_rate": self.away_win_rate,
        }


def _resolve_subset(teams: Dict[Any, Team], team_subset: Iterable[Any]) -> Dict[Any, Team]:
    """Subset entries may be team ids or team names; unknown entries raise TeamNotFoundError."""
    by_name = {team.name: team for team in teams.values()}
    selected: Dict[Any, Team] = {}
    for entry in team_subset:
        team = teams.get(entry) or by_name.get(entry)
        if team is None:
            raise TeamNotFoundError(entry)
        selected[team.id] = team
    return selected


def compute_aggregate_stats(matches: Iterable[Any], team_subset: Optional[Iterable[Any]] = None) -> Dict[str, TeamAggregate]:
    """
    Aggregate FINISHED matches for each selected team (all teams when no subset).

    Returns team name -> TeamAggregate. Rates divide by ``max(n, 1)`` so a team
    without finished matches reports zeros. No ordering is applied.
    """
    normalized = sorted(coerce_matches(matches), key=lambda m: m.utc_date)
    teams: Dict[Any, Team] = {}
    crests: Dict[Any, Optional[str]] = {}
    for match in normalized:
        for team in (match.home_team, match.away_team):
            teams.setdefault(team.id, team)
            if crests.get(team.id) is None and team.crest:
                crests[team.id] = team.crest

    selected = teams if team_subset is None else _resolve_subset(teams, team_subset)
    aggregates = {tid: TeamAggregate(team=team, crest=crests.get(tid)) for tid, team in selected.items()}

    for match in normalized:
        if not match.is_finished:
            continue
        for team_id in (match.home_team.id, match.away_team.id):
            agg = aggregates.get(team_id)
            if agg is not None:
                agg.add(match)

    log.debug("aggregate_stats_built teams=%d matches=%d", len(aggregates), len(normalized))
    return {agg.team.name: agg for agg in aggregates.values()}
