"""
Tests for the betting trends API endpoints.
"""

import pytest
from unittest.mock import patch, AsyncMock
from fastapi.testclient import TestClient

from app.services.cfbd import CFBDError
from app.services.betting_trends import BettingLine, Game, LineKey


def _season():
    games = [
        Game("Georgia", "Alabama", 1, 28, 21, periods=4, home_conference="SEC", away_conference="SEC"),
        Game("Vanderbilt", "Tennessee", 2, 14, 24, periods=4, home_conference="SEC", away_conference="SEC"),
        Game("Ohio State", "Michigan", 3, 10, 13, periods=4, home_conference="Big Ten", away_conference="Big Ten"),
        Game("Texas", "Oklahoma", 4, None, None, completed=False, home_conference="SEC", away_conference="SEC"),
    ]
    lines = {
        LineKey("Georgia", "Alabama", 1): BettingLine(spread=-3, over_under=45),
        LineKey("Vanderbilt", "Tennessee", 2): BettingLine(spread=7, over_under=42),
    }
    return games, lines


@pytest.fixture
def mock_fetch():
    with patch("app.services.cfbd.fetch_season", new=AsyncMock(return_value=_season())) as mock:
        yield mock


class TestGetBettingTrends:
    """Test GET /betting-trends."""

    def test_success_shape(self, client: TestClient, mock_fetch):
        response = client.get("/betting-trends", params={"year": 2024})
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["year"] == 2024
        assert data["conference"] == "All"
        assert data["totalGames"] == 3
        assert set(data["trends"]) == {"straightUp", "againstTheSpread", "overUnder", "spreadRanges", "situational"}
        assert data["meta"]["dataSource"] == "CFBD API"
        assert data["meta"]["gamesWithLines"] == 2
        assert data["meta"]["cached"] is False

    def test_straight_up_counts_games_without_lines(self, client: TestClient, mock_fetch):
        data = client.get("/betting-trends").json()

        assert data["trends"]["straightUp"]["homeTeams"] == {"wins": 1, "losses": 2, "ties": 0, "percentage": 33}
        ats_home = data["trends"]["againstTheSpread"]["homeTeams"]
        assert ats_home["wins"] + ats_home["losses"] + ats_home["pushes"] == 2

    def test_conference_filter(self, client: TestClient, mock_fetch):
        data = client.get("/betting-trends", params={"conference": "Big Ten"}).json()
        assert data["conference"] == "Big Ten"
        assert data["totalGames"] == 1
        assert data["trends"]["straightUp"]["awayTeams"]["wins"] == 1

    def test_week_range(self, client: TestClient, mock_fetch):
        data = client.get("/betting-trends", params={"start_week": 2, "end_week": 3}).json()
        assert data["totalGames"] == 2
        assert data["meta"]["startWeek"] == 2
        assert data["meta"]["endWeek"] == 3

    def test_season_type_forwarded(self, client: TestClient, mock_fetch):
        client.get("/betting-trends", params={"year": 2023, "season_type": "postseason"})
        mock_fetch.assert_awaited_once_with(2023, "postseason")

    def test_invalid_week_range(self, client: TestClient, mock_fetch):
        response = client.get("/betting-trends", params={"start_week": 5, "end_week": 2})
        assert response.status_code == 400
        mock_fetch.assert_not_awaited()

    def test_invalid_season_type(self, client: TestClient, mock_fetch):
        response = client.get("/betting-trends", params={"season_type": "spring"})
        assert response.status_code == 400

    def test_week_out_of_bounds(self, client: TestClient, mock_fetch):
        response = client.get("/betting-trends", params={"start_week": 0})
        assert response.status_code == 422

    def test_upstream_failure(self, client: TestClient):
        with patch("app.services.cfbd.fetch_season", new=AsyncMock(side_effect=CFBDError("CFBD /games returned HTTP 500", 500))):
            response = client.get("/betting-trends", params={"year": 2024, "conference": "SEC"})

        assert response.status_code == 502
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Failed to generate betting trends"
        assert "HTTP 500" in data["details"]
        assert data["conference"] == "SEC"


class TestReportCache:
    """Test report caching."""

    def test_second_request_served_from_cache(self, client: TestClient, mock_fetch):
        first = client.get("/betting-trends").json()
        second = client.get("/betting-trends").json()

        assert mock_fetch.await_count == 1
        assert second["meta"]["cached"] is True
        assert second["trends"] == first["trends"]

    def test_force_refresh_bypasses_cache(self, client: TestClient, mock_fetch):
        client.get("/betting-trends")
        data = client.get("/betting-trends", params={"force_refresh": True}).json()

        assert mock_fetch.await_count == 2
        assert data["meta"]["cached"] is False

    def test_different_week_range_not_shared(self, client: TestClient, mock_fetch):
        client.get("/betting-trends")
        client.get("/betting-trends", params={"start_week": 1, "end_week": 1})
        assert mock_fetch.await_count == 2

    def test_conference_casing_shares_entry(self, client: TestClient):
        games, lines = _season()
        games.append(Game("Toledo", "Ohio", 5, 31, 17, periods=4, home_conference="Mid-American", away_conference="Mid-American"))
        with patch("app.services.cfbd.fetch_season", new=AsyncMock(return_value=(games, lines))) as mock:
            lower = client.get("/betting-trends", params={"conference": "mac"}).json()
            upper = client.get("/betting-trends", params={"conference": "MAC"}).json()

        assert mock.await_count == 1
        assert lower["conference"] == "MAC"
        assert lower["totalGames"] == 1
        assert upper["meta"]["cached"] is True
        assert upper["totalGames"] == 1

    def test_failure_not_cached(self, client: TestClient):
        with patch("app.services.cfbd.fetch_season", new=AsyncMock(side_effect=CFBDError("down"))):
            client.get("/betting-trends")
        with patch("app.services.cfbd.fetch_season", new=AsyncMock(return_value=_season())) as mock:
            response = client.get("/betting-trends")

        assert response.status_code == 200
        assert mock.await_count == 1

    def test_cache_stats(self, client: TestClient, mock_fetch):
        client.get("/betting-trends")
        client.get("/betting-trends")
        stats = client.get("/betting-trends/cache/stats").json()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1

    def test_clear_cache(self, client: TestClient, mock_fetch):
        client.get("/betting-trends")
        response = client.delete("/betting-trends/cache")

        assert response.json() == {"cleared": 1}
        client.get("/betting-trends")
        assert mock_fetch.await_count == 2


class TestConferences:
    """Test GET /betting-trends/conferences."""

    def test_lists_conferences(self, client: TestClient):
        data = client.get("/betting-trends/conferences").json()
        assert "All" in data["conferences"]
        assert "SEC" in data["conferences"]
        assert data["aliases"]["MAC"] == ["Mid-American"]
