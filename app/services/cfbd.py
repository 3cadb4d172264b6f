"""
College Football Data (CFBD) API Integration Service

Fetches season games and betting lines and converts them into the
Game / BettingLine types the trends calculator consumes.
Base URL: https://api.collegefootballdata.com (bearer token required)
"""

import asyncio
import httpx
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app import config
from app.services.betting_trends import BettingLine, Game, LineKey, build_line_lookup
from app.utils.logging import get_logger

logger = get_logger(__name__)

CONSENSUS_PROVIDER = "consensus"


class CFBDError(Exception):
    """Raised when the CFBD API cannot be reached or returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def is_api_enabled() -> bool:
    """Check if a CFBD API key is configured."""
    return bool(config.CFBD_API_KEY)


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {config.CFBD_API_KEY}",
        "Accept": "application/json",
    }


async def _make_request(path: str, params: Optional[Dict] = None) -> Any:
    """Make an authenticated GET request to the CFBD API."""
    url = f"{config.CFBD_BASE_URL}{path}"
    try:
        async with httpx.AsyncClient(timeout=config.CFBD_TIMEOUT) as client:
            response = await client.get(url, params=params, headers=_headers())
    except httpx.HTTPError as e:
        logger.error(f"CFBD API request failed: {path} - {e}")
        raise CFBDError(f"CFBD request to {path} failed: {e}") from e

    if response.status_code == 401:
        logger.error("CFBD API access denied - check CFBD_API_KEY")
    elif response.status_code == 429:
        logger.warning("CFBD rate limit exceeded")

    if response.status_code != 200:
        raise CFBDError(
            f"CFBD {path} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return response.json()


# =============================================================================
# Payload parsing
# =============================================================================

def _first(payload: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if payload.get(name) is not None:
            return payload[name]
    return None


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_game(payload: Dict[str, Any]) -> Game:
    """
    Convert a CFBD /games entry into a Game.

    Accepts the current camelCase fields (homePoints/awayPoints) as well
    as the homeScore/awayScore shape used by older fixtures.
    """
    return Game(
        home_team=_first(payload, "homeTeam", "home_team"),
        away_team=_first(payload, "awayTeam", "away_team"),
        week=_optional_int(payload.get("week")),
        home_score=_first(payload, "homePoints", "homeScore", "home_points"),
        away_score=_first(payload, "awayPoints", "awayScore", "away_points"),
        periods=_optional_int(payload.get("periods")) or _periods_from_line_scores(payload),
        season=_optional_int(payload.get("season")),
        season_type=_first(payload, "seasonType", "season_type"),
        start_date=_first(payload, "startDate", "start_date"),
        home_conference=_first(payload, "homeConference", "home_conference"),
        away_conference=_first(payload, "awayConference", "away_conference"),
        conference_game=bool(_first(payload, "conferenceGame", "conference_game")),
        neutral_site=bool(_first(payload, "neutralSite", "neutral_site")),
        completed=bool(payload.get("completed", True)),
        home_rank=_optional_int(_first(payload, "homeRank", "home_rank")),
        away_rank=_optional_int(_first(payload, "awayRank", "away_rank")),
        rivalry=bool(payload.get("rivalry", False)),
    )


def _periods_from_line_scores(payload: Dict[str, Any]) -> Optional[int]:
    line_scores = _first(payload, "homeLineScores", "home_line_scores")
    if isinstance(line_scores, list) and line_scores:
        return len(line_scores)
    return None


def select_line(entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Pick the consensus line, falling back to the first provider listed."""
    lines = entry.get("lines") or []
    if not lines:
        return None
    for line in lines:
        if line.get("provider") == CONSENSUS_PROVIDER:
            return line
    return lines[0]


def parse_line_entries(payload: Iterable[Dict[str, Any]]) -> List[Tuple[LineKey, BettingLine]]:
    """Convert CFBD /lines entries into (key, line) pairs, dropping games without lines."""
    entries = []
    for entry in payload:
        chosen = select_line(entry)
        if chosen is None:
            continue
        key = LineKey(
            _first(entry, "homeTeam", "home_team"),
            _first(entry, "awayTeam", "away_team"),
            _optional_int(entry.get("week")),
        )
        entries.append((key, BettingLine(
            spread=chosen.get("spread"),
            over_under=chosen.get("overUnder"),
            home_moneyline=_optional_int(chosen.get("homeMoneyline")),
            away_moneyline=_optional_int(chosen.get("awayMoneyline")),
            provider=chosen.get("provider"),
        )))
    return entries


# =============================================================================
# Filtering
# =============================================================================

def completed_games(games: Iterable[Game]) -> List[Game]:
    """Games marked completed with both final scores present."""
    return [
        g for g in games
        if g.completed and g.home_score is not None and g.away_score is not None
    ]


def canonical_conference(conference: Optional[str]) -> str:
    """Resolve a conference filter to its listed spelling, ignoring case."""
    if not conference or not conference.strip():
        return config.DEFAULT_CONFERENCE
    conference = conference.strip()
    for name in list(config.SUPPORTED_CONFERENCES) + list(config.CONFERENCE_ALIASES):
        if name.lower() == conference.lower():
            return name
    return conference


def conference_names(conference: str) -> List[str]:
    return config.CONFERENCE_ALIASES.get(canonical_conference(conference), [conference])


def _conference_matches(game_conference: Optional[str], allowed: List[str]) -> bool:
    if not game_conference:
        return False
    game_conference = game_conference.lower()
    return any(
        name.lower() in game_conference or game_conference in name.lower()
        for name in allowed
    )


def filter_by_conference(games: Iterable[Game], conference: str) -> List[Game]:
    """Keep games where either team plays in the conference ("All" keeps everything)."""
    games = list(games)
    conference = canonical_conference(conference)
    if conference == config.DEFAULT_CONFERENCE:
        return games
    allowed = conference_names(conference)
    return [
        g for g in games
        if _conference_matches(g.home_conference, allowed) or _conference_matches(g.away_conference, allowed)
    ]


def filter_by_weeks(
    games: Iterable[Game],
    start_week: Optional[int] = None,
    end_week: Optional[int] = None
) -> List[Game]:
    """Keep games inside an inclusive week range; open bounds are ignored."""
    result = []
    for game in games:
        if start_week is not None and (game.week is None or game.week < start_week):
            continue
        if end_week is not None and (game.week is None or game.week > end_week):
            continue
        result.append(game)
    return result


# =============================================================================
# Fetching
# =============================================================================

async def fetch_games(year: int, season_type: str = "regular") -> List[Game]:
    """
    Get all games for a season.

    Args:
        year: Season year
        season_type: "regular", "postseason" or "both"
    """
    data = await _make_request("/games", {"year": year, "seasonType": season_type})
    games = [parse_game(item) for item in data or []]
    logger.info(f"Fetched {len(games)} CFBD games for {year} ({season_type})")
    return games


async def fetch_lines(year: int, season_type: str = "regular") -> List[Tuple[LineKey, BettingLine]]:
    """Get betting lines for a season as (key, line) pairs."""
    data = await _make_request("/lines", {"year": year, "seasonType": season_type})
    entries = parse_line_entries(data or [])
    logger.info(f"Fetched {len(entries)} CFBD betting lines for {year} ({season_type})")
    return entries


async def fetch_season(year: int, season_type: str = "regular") -> Tuple[List[Game], Dict[LineKey, BettingLine]]:
    """Fetch games and lines concurrently and index the lines by matchup."""
    games, line_entries = await asyncio.gather(
        fetch_games(year, season_type),
        fetch_lines(year, season_type),
    )
    return games, build_line_lookup(line_entries)
