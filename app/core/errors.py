from __future__ import annotations

from typing import Any, Optional


class DashboardError(Exception):
    """Base class for deterministic input-validation failures of the table engine."""


class MalformedMatchError(DashboardError):
    def __init__(self, message: str, *, match_id: Optional[Any] = None):
        msg = message if match_id is None else f"{message} (match_id={match_id})"
        super().__init__(msg)
        self.match_id = match_id


class TeamNotFoundError(DashboardError):
    def __init__(self, team: Any):
        super().__init__(f"no matches found for team {team!r}")
        self.team = team
