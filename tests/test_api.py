import pytest

import app.jobs.refresh_matches as refresh_matches
import app.main as main
from app.data.mappers import normalize_matches
from app.data.providers import cache
from app.data.providers.football_data import FootballDataError


@pytest.fixture()
def seeded(make_match):
    matches = [
        make_match(57, 61, 2, 1, matchday=1, date="2024-08-17T14:00:00Z"),
        make_match(64, 65, 0, 0, matchday=1, date="2024-08-17T16:30:00Z"),
        make_match(61, 64, 1, 3, matchday=2, date="2024-08-24T14:00:00Z"),
        make_match(65, 57, 1, 1, matchday=2, date="2024-08-24T16:30:00Z"),
        make_match(57, 64, status="TIMED", matchday=3, date="2030-08-31T14:00:00Z"),
    ]
    return cache.store_snapshot("PL", 2024, normalize_matches(matches))


def test_health(api_client, seeded):
    resp = api_client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["matches_loaded"] == 5


def test_table_endpoint(api_client, seeded):
    resp = api_client.get("/api/v1/table")
    assert resp.status_code == 200
    rows = resp.json()
    assert [r["team"]["id"] for r in rows] == [64, 57, 65, 61]
    top = rows[0]
    for key in ["position", "zone", "played", "points", "goal_difference", "form", "next_match", "last_match"]:
        assert key in top
    assert top["position"] == 1
    assert top["zone"] == "champions_league"
    assert top["form"] == ["D", "W"]
    assert top["next_match"]["matchday"] == 3


def test_table_as_of(api_client, seeded):
    resp = api_client.get("/api/v1/table", params={"as_of": "2024-08-20T00:00:00Z"})
    assert resp.status_code == 200
    rows = resp.json()
    assert rows[0]["team"]["id"] == 57
    assert rows[0]["played"] == 1


def test_team_record_and_missing_team(api_client, seeded):
    resp = api_client.get("/api/v1/teams/57")
    assert resp.status_code == 200
    assert resp.json()["points"] == 4
    assert api_client.get("/api/v1/teams/999").status_code == 404


def test_series_endpoint(api_client, seeded):
    resp = api_client.get("/api/v1/series", params={"mode": "positions", "weeks": 4})
    assert resp.status_code == 200
    data = resp.json()
    assert data["weeks"] == 4
    arsenal = next(t for t in data["teams"] if t["team"]["id"] == 57)
    assert arsenal["points"] == [3, 4, 4, 4]
    assert arsenal["values"] == arsenal["positions"]
    assert arsenal["matches"][0]["score"] == "2-1"
    assert arsenal["matches"][2] is None
    assert arsenal["last_played_matchweek"] == 1


def test_series_rejects_unknown_mode(api_client, seeded):
    assert api_client.get("/api/v1/series", params={"mode": "goals"}).status_code == 400


def test_stats_endpoint(api_client, seeded):
    resp = api_client.get("/api/v1/stats", params={"teams": "57,Liverpool FC"})
    assert resp.status_code == 200
    data = resp.json()
    assert set(data) == {"Arsenal FC", "Liverpool FC"}
    assert data["Liverpool FC"]["clean_sheets"] == 1
    assert data["Arsenal FC"]["rates"]["points_per_game"] == 2.0


def test_stats_unknown_team_is_insufficient_data(api_client, seeded):
    resp = api_client.get("/api/v1/stats", params={"teams": "Everton FC"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "insufficient data"


def test_provider_failure_returns_503(api_client, monkeypatch):
    cache.clear_snapshot()

    async def failing_get_matches(*_args, **_kwargs):
        raise FootballDataError("rate limited", status_code=429)

    monkeypatch.setattr(refresh_matches, "get_matches", failing_get_matches)
    resp = api_client.get("/api/v1/table")
    assert resp.status_code == 503
    assert resp.json()["error"] == "matches failed to load"


def test_official_standings_enriched(api_client, seeded, monkeypatch):
    async def fake_get_standings(competition, season):
        assert (competition, season) == ("PL", 2024)
        return [
            {"position": 1, "team": {"id": 64, "name": "Liverpool FC"}, "points": 4},
            {"position": 2, "team": {"id": 57, "name": "Arsenal FC"}, "points": 4},
        ]

    monkeypatch.setattr(main, "get_standings", fake_get_standings)
    resp = api_client.get("/api/v1/standings")
    assert resp.status_code == 200
    rows = resp.json()
    assert rows[1]["form"] == ["W", "D"]
    assert rows[1]["lastMatch"]["matchday"] == 2
    assert rows[0]["nextMatch"]["matchday"] == 3
