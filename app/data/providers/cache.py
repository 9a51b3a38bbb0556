from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

from app.core.timeutils import utcnow
from app.data.models import Match


@dataclass(frozen=True)
class MatchSnapshot:
    competition: str
    season: int
    matches: Tuple[Match, ...]
    fetched_at: datetime

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        return ((now or utcnow()) - self.fetched_at).total_seconds()


_snapshot: MatchSnapshot | None = None


def get_snapshot() -> MatchSnapshot | None:
    return _snapshot


def store_snapshot(
    competition: str,
    season: int,
    matches: Sequence[Match],
    fetched_at: Optional[datetime] = None,
) -> MatchSnapshot:
    """Replace the cached list in one step; callers pass the complete season only."""
    global _snapshot
    _snapshot = MatchSnapshot(
        competition=competition,
        season=int(season),
        matches=tuple(matches),
        fetched_at=fetched_at or utcnow(),
    )
    return _snapshot


def clear_snapshot() -> None:
    global _snapshot
    _snapshot = None


def is_fresh(max_age_seconds: int, now: Optional[datetime] = None) -> bool:
    snap = _snapshot
    return snap is not None and snap.age_seconds(now) <= max_age_seconds
