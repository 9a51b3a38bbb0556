import os
import sys
from itertools import count
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("FOOTBALL_DATA_KEY", "test")
os.environ.setdefault("SEASON", "2024")

TEAMS = {
    57: "Arsenal FC",
    61: "Chelsea FC",
    64: "Liverpool FC",
    65: "Manchester City FC",
    66: "Manchester United FC",
    73: "Tottenham Hotspur FC",
}


def _winner(home_goals, away_goals):
    if home_goals is None or away_goals is None:
        return None
    if home_goals > away_goals:
        return "HOME_TEAM"
    if home_goals < away_goals:
        return "AWAY_TEAM"
    return "DRAW"


@pytest.fixture()
def make_match():
    """Build a raw football-data v4 match dict."""
    ids = count(1000)

    def _make(
        home,
        away,
        home_goals=None,
        away_goals=None,
        *,
        matchday=1,
        date="2024-08-17T14:00:00Z",
        status="FINISHED",
        match_id=None,
        winner="auto",
    ):
        return {
            "id": match_id if match_id is not None else next(ids),
            "utcDate": date,
            "status": status,
            "matchday": matchday,
            "stage": "REGULAR_SEASON",
            "homeTeam": {
                "id": home,
                "name": TEAMS.get(home, f"Team {home}"),
                "shortName": TEAMS.get(home, f"Team {home}").replace(" FC", ""),
                "crest": f"https://crests.football-data.org/{home}.png",
            },
            "awayTeam": {
                "id": away,
                "name": TEAMS.get(away, f"Team {away}"),
                "shortName": TEAMS.get(away, f"Team {away}").replace(" FC", ""),
                "crest": f"https://crests.football-data.org/{away}.png",
            },
            "score": {
                "winner": _winner(home_goals, away_goals) if winner == "auto" else winner,
                "fullTime": {"home": home_goals, "away": away_goals},
            },
        }

    return _make


@pytest.fixture()
def api_client():
    from app.data.providers import cache
    from app.main import app

    client = TestClient(app)
    try:
        yield client
    finally:
        client.close()
        cache.clear_snapshot()
