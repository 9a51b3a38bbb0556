import pytest

from app.core.errors import MalformedMatchError
from app.data.mappers import coerce_matches, normalize_match, normalize_matches, normalize_status
from app.data.models import Match


def test_normalize_status_known_values():
    assert normalize_status("FINISHED") == "FINISHED"
    assert normalize_status("timed") == "TIMED"
    assert normalize_status("POSTPONED") == "POSTPONED"
    assert normalize_status("LIVE") == "IN_PLAY"


def test_normalize_status_missing_and_unknown():
    assert normalize_status(None) is None
    assert normalize_status("  ") is None
    assert normalize_status("???") == "OTHER"


def test_normalize_match_parses_date_and_score(make_match):
    m = normalize_match(make_match(57, 61, 2, 1, date="2024-08-17T14:00:00Z"))
    assert m.utc_date.tzinfo is not None
    assert m.utc_date.hour == 14
    assert (m.score.home, m.score.away, m.score.winner) == (2, 1, "HOME_TEAM")
    assert m.week_index == 0
    assert m.home_team.name == "Arsenal FC"


def test_normalize_match_derives_missing_winner(make_match):
    m = normalize_match(make_match(57, 61, 1, 1, winner=None))
    assert m.score.winner == "DRAW"


def test_unplayed_match_collapses_half_score(make_match):
    raw = make_match(57, 61, status="SCHEDULED")
    raw["score"]["fullTime"]["home"] = 1
    m = normalize_match(raw)
    assert m.score.home is None and m.score.away is None


def test_missing_team_id_raises(make_match):
    raw = make_match(57, 61, 1, 0)
    raw["awayTeam"].pop("id")
    with pytest.raises(MalformedMatchError):
        normalize_match(raw)


def test_finished_without_matchday_raises(make_match):
    raw = make_match(57, 61, 1, 0)
    raw["matchday"] = None
    with pytest.raises(MalformedMatchError):
        normalize_match(raw)


def test_scheduled_without_matchday_is_allowed(make_match):
    raw = make_match(57, 61, status="SCHEDULED")
    raw["matchday"] = None
    assert normalize_match(raw).matchday is None


def test_bad_date_and_missing_status_raise(make_match):
    raw = make_match(57, 61, 1, 0)
    raw["utcDate"] = "yesterday"
    with pytest.raises(MalformedMatchError):
        normalize_match(raw)
    raw = make_match(57, 61, 1, 0)
    raw.pop("status")
    with pytest.raises(MalformedMatchError):
        normalize_match(raw)


def test_finished_without_score_raises(make_match):
    with pytest.raises(MalformedMatchError):
        normalize_match(make_match(57, 61, None, None))


def test_normalize_does_not_mutate_input(make_match):
    raw = make_match(57, 61, 1, 1, winner=None)
    normalize_matches([raw])
    assert raw["score"]["winner"] is None


def test_coerce_matches_accepts_mixed_input(make_match):
    done = normalize_match(make_match(57, 61, 1, 0))
    out = coerce_matches([done, make_match(61, 57, 0, 0)])
    assert all(isinstance(m, Match) for m in out)
    assert out[0] is done
