"""
Betting Trends Service

Aggregates straight-up, against-the-spread and over/under records from
completed college football games and the betting line posted for each.

Every completed game counts toward the straight-up home/away records.
Only games with a usable line (finite numeric spread) feed the spread,
total, spread-range and situational splits.
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, timezone
from functools import reduce
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional, Tuple

from app.utils.logging import get_logger

logger = get_logger(__name__)


SMALL_SPREAD = 3
MEDIUM_SPREAD = 7
LARGE_SPREAD = 14
BLOWOUT_MARGIN = 21
REGULATION_PERIODS = 4
TOTAL_PUSH_TOLERANCE = 0.5
PRIMETIME_KICKOFF_HOUR = 19  # Eastern

HOME = "home"
AWAY = "away"
DRAW = "draw"

OVER = "over"
UNDER = "under"

SIDE_SPLITS = (
    "home_teams",
    "away_teams",
    "favorites",
    "dogs",
    "home_favorites",
    "away_favorites",
    "home_dogs",
    "away_dogs",
)
TOTAL_SPLITS = ("overtime_games", "non_overtime_games", "all_games")
SPREAD_BUCKETS = ("small", "medium", "large", "huge")

LINE_CONFLICT_POLICIES = ("keep_first", "replace", "reject")


class LineKeyCollisionError(ValueError):
    """Two betting lines were supplied for the same home/away/week matchup."""

    def __init__(self, key: "LineKey"):
        super().__init__(f"Duplicate betting line for {key.legacy()}")
        self.key = key


class LineKey(NamedTuple):
    home_team: str
    away_team: str
    week: int

    @classmethod
    def for_game(cls, game: "Game") -> "LineKey":
        return cls(game.home_team, game.away_team, game.week)

    def legacy(self) -> str:
        """The ``home_away_week`` string form used in logs and fixtures."""
        return f"{self.home_team}_{self.away_team}_{self.week}"


@dataclass(frozen=True)
class Game:
    """A college football game. Scores are None until the game is final."""
    home_team: str
    away_team: str
    week: int
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    periods: Optional[int] = None

    season: Optional[int] = None
    season_type: Optional[str] = None
    start_date: Optional[str] = None
    home_conference: Optional[str] = None
    away_conference: Optional[str] = None
    conference_game: bool = False
    neutral_site: bool = False
    completed: bool = True

    # Situational context supplied by the caller
    home_rank: Optional[int] = None
    away_rank: Optional[int] = None
    rivalry: bool = False


@dataclass(frozen=True)
class BettingLine:
    """Closing line for a game. Negative spread means the home team is favored."""
    spread: Any = None
    over_under: Any = None
    home_moneyline: Optional[int] = None
    away_moneyline: Optional[int] = None
    provider: Optional[str] = None


# =============================================================================
# Report types
# =============================================================================

@dataclass(frozen=True)
class StraightUpSplit:
    wins: int = 0
    losses: int = 0
    ties: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class SpreadSplit:
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class TotalsSplit:
    overs: int = 0
    unders: int = 0
    pushes: int = 0
    over_percentage: int = 0
    under_percentage: int = 0


@dataclass(frozen=True)
class SpreadRangeSplit:
    games: int = 0
    fav_wins: int = 0
    dog_wins: int = 0
    fav_percentage: int = 0
    dog_percentage: int = 0


@dataclass(frozen=True)
class RankedSplit:
    games: int = 0
    fav_wins: int = 0
    ats_wins: int = 0
    percentage: int = 0


@dataclass(frozen=True)
class HomeAwaySplit:
    games: int = 0
    home_wins: int = 0
    away_wins: int = 0
    home_percentage: int = 0


@dataclass(frozen=True)
class BlowoutSplit:
    games: int = 0
    overs: int = 0
    unders: int = 0
    over_percentage: int = 0


@dataclass(frozen=True)
class TrendsReport:
    straight_up: Mapping[str, StraightUpSplit]
    against_the_spread: Mapping[str, SpreadSplit]
    over_under: Mapping[str, TotalsSplit]
    spread_ranges: Mapping[str, SpreadRangeSplit]
    situational: Mapping[str, Any]
    games_counted: int = 0
    games_with_lines: int = 0
    games_skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Render the camelCase shape served to the trends page."""
        return {
            "straightUp": _render(self.straight_up),
            "againstTheSpread": _render(self.against_the_spread),
            "overUnder": _render(self.over_under),
            "spreadRanges": _render(self.spread_ranges),
            "situational": _render(self.situational),
        }


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _render(splits: Mapping[str, Any]) -> Dict[str, Dict[str, int]]:
    return {
        _camel(name): {_camel(k): v for k, v in asdict(split).items()}
        for name, split in splits.items()
    }


# =============================================================================
# Numeric helpers
# =============================================================================

def round_percentage(part: float, whole: float) -> int:
    """Percentage rounded half up (1 of 8 -> 13), 0 for an empty denominator."""
    if whole <= 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def _to_number(value: Any) -> Optional[float]:
    """Finite float from an int, float or numeric string; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def spread_bucket(spread: float) -> str:
    size = abs(spread)
    if size <= SMALL_SPREAD:
        return "small"
    if size <= MEDIUM_SPREAD:
        return "medium"
    if size <= LARGE_SPREAD:
        return "large"
    return "huge"


def straight_up_result(home_score: float, away_score: float) -> str:
    if home_score > away_score:
        return HOME
    if away_score > home_score:
        return AWAY
    return DRAW


def spread_result(home_score: float, away_score: float, spread: float) -> str:
    """Which side covered. Landing exactly on the number is a push."""
    if spread == 0:
        return straight_up_result(home_score, away_score)

    if spread < 0:
        cover_margin = home_score - away_score
        required = abs(spread)
        favorite, dog = HOME, AWAY
    else:
        cover_margin = away_score - home_score
        required = spread
        favorite, dog = AWAY, HOME

    if cover_margin > required:
        return favorite
    if cover_margin == required:
        return DRAW
    return dog


def total_result(total_score: float, over_under: float) -> str:
    if abs(total_score - over_under) < TOTAL_PUSH_TOLERANCE:
        return DRAW
    if total_score > over_under:
        return OVER
    return UNDER


def is_primetime(start_date: Optional[str]) -> bool:
    """Kickoff at or after 7pm Eastern."""
    if not start_date:
        return False
    try:
        dt = datetime.fromisoformat(start_date.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError):
        return False
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    est_dt = dt - timedelta(hours=5)
    return est_dt.hour >= PRIMETIME_KICKOFF_HOUR


# =============================================================================
# Line lookup
# =============================================================================

def build_line_lookup(
    entries: Iterable[Tuple[LineKey, BettingLine]],
    on_conflict: str = "keep_first"
) -> Dict[LineKey, BettingLine]:
    """
    Index betting lines by matchup.

    Args:
        entries: (key, line) pairs
        on_conflict: "keep_first", "replace" (last write wins) or "reject"

    Raises:
        LineKeyCollisionError: on a duplicate key with on_conflict="reject"
    """
    if on_conflict not in LINE_CONFLICT_POLICIES:
        raise ValueError(f"Unknown line conflict policy: {on_conflict}")

    lookup: Dict[LineKey, BettingLine] = {}
    for key, line in entries:
        if key in lookup:
            if on_conflict == "reject":
                raise LineKeyCollisionError(key)
            logger.warning(f"Duplicate betting line for {key.legacy()} ({on_conflict})")
            if on_conflict == "keep_first":
                continue
        lookup[key] = line
    return lookup


# =============================================================================
# Accumulation
# =============================================================================

@dataclass
class _Record:
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def total(self) -> int:
        return self.wins + self.losses + self.draws


@dataclass
class _Totals:
    overs: int = 0
    unders: int = 0
    pushes: int = 0


@dataclass
class _Blowouts:
    games: int = 0
    overs: int = 0
    unders: int = 0


@dataclass
class _Bucket:
    games: int = 0
    fav_wins: int = 0
    dog_wins: int = 0


@dataclass
class _Ranked:
    games: int = 0
    fav_wins: int = 0
    fav_covers: int = 0


@dataclass
class _HomeAway:
    games: int = 0
    home_wins: int = 0
    away_wins: int = 0


@dataclass
class _TrendsAccumulator:
    lines: Mapping[LineKey, BettingLine] = field(default_factory=dict)
    straight_up: Dict[str, _Record] = field(default_factory=lambda: {k: _Record() for k in SIDE_SPLITS})
    against_the_spread: Dict[str, _Record] = field(default_factory=lambda: {k: _Record() for k in SIDE_SPLITS})
    over_under: Dict[str, _Totals] = field(default_factory=lambda: {k: _Totals() for k in TOTAL_SPLITS})
    spread_ranges: Dict[str, _Bucket] = field(default_factory=lambda: {k: _Bucket() for k in SPREAD_BUCKETS})
    ranked: _Ranked = field(default_factory=_Ranked)
    primetime: _HomeAway = field(default_factory=_HomeAway)
    rivalry: _HomeAway = field(default_factory=_HomeAway)
    blowouts: _Blowouts = field(default_factory=_Blowouts)
    games_counted: int = 0
    games_with_lines: int = 0
    games_skipped: int = 0


def _settle(records: Dict[str, _Record], result: str, home_keys: Tuple[str, ...], away_keys: Tuple[str, ...]) -> None:
    if result == DRAW:
        for key in home_keys + away_keys:
            records[key].draws += 1
        return

    winners, losers = (home_keys, away_keys) if result == HOME else (away_keys, home_keys)
    for key in winners:
        records[key].wins += 1
    for key in losers:
        records[key].losses += 1


def _tally_total(totals: _Totals, result: str) -> None:
    if result == OVER:
        totals.overs += 1
    elif result == UNDER:
        totals.unders += 1
    else:
        totals.pushes += 1


def _tally_home_away(split: _HomeAway, result: str) -> None:
    split.games += 1
    if result == HOME:
        split.home_wins += 1
    elif result == AWAY:
        split.away_wins += 1


def _fold_game(acc: _TrendsAccumulator, game: Game) -> _TrendsAccumulator:
    home_score = _to_number(game.home_score)
    away_score = _to_number(game.away_score)
    if home_score is None or away_score is None:
        acc.games_skipped += 1
        logger.debug(f"Skipping {game.away_team} at {game.home_team} (week {game.week}): missing score")
        return acc

    acc.games_counted += 1
    su_result = straight_up_result(home_score, away_score)
    total_score = home_score + away_score
    margin = abs(home_score - away_score)

    _settle(acc.straight_up, su_result, ("home_teams",), ("away_teams",))

    line = acc.lines.get(LineKey.for_game(game))
    spread = _to_number(line.spread) if line is not None else None
    if spread is None:
        return acc

    acc.games_with_lines += 1
    home_favorite = spread < 0
    away_favorite = spread > 0
    pick_em = not (home_favorite or away_favorite)

    if home_favorite:
        home_roles, away_roles = ("favorites", "home_favorites"), ("dogs", "away_dogs")
    elif away_favorite:
        home_roles, away_roles = ("dogs", "home_dogs"), ("favorites", "away_favorites")
    else:
        home_roles, away_roles = (), ()

    ats_result = spread_result(home_score, away_score, spread)

    if not pick_em:
        _settle(acc.straight_up, su_result, home_roles, away_roles)
    _settle(acc.against_the_spread, ats_result, ("home_teams",) + home_roles, ("away_teams",) + away_roles)

    over_under = _to_number(line.over_under)
    if over_under is not None and over_under <= 0:
        over_under = None

    if over_under is not None:
        ou_result = total_result(total_score, over_under)
        periods = _to_number(game.periods)
        overtime = periods is not None and periods > REGULATION_PERIODS
        _tally_total(acc.over_under["all_games"], ou_result)
        _tally_total(acc.over_under["overtime_games" if overtime else "non_overtime_games"], ou_result)

    bucket = acc.spread_ranges[spread_bucket(spread)]
    bucket.games += 1
    favorite = HOME if home_favorite else AWAY
    if not pick_em and su_result != DRAW:
        if su_result == favorite:
            bucket.fav_wins += 1
        else:
            bucket.dog_wins += 1

    if margin >= BLOWOUT_MARGIN:
        acc.blowouts.games += 1
        # Blowout totals have no push band
        if over_under is not None:
            if total_score > over_under:
                acc.blowouts.overs += 1
            else:
                acc.blowouts.unders += 1

    if not pick_em and (game.home_rank is not None or game.away_rank is not None):
        acc.ranked.games += 1
        if su_result == favorite:
            acc.ranked.fav_wins += 1
        if ats_result == favorite:
            acc.ranked.fav_covers += 1

    # Fixed EST offset; daylight-time kickoffs read an hour early
    if is_primetime(game.start_date):
        _tally_home_away(acc.primetime, su_result)
    if game.rivalry:
        _tally_home_away(acc.rivalry, su_result)

    return acc


def _freeze(acc: _TrendsAccumulator) -> TrendsReport:
    straight_up = {
        name: StraightUpSplit(r.wins, r.losses, r.draws, round_percentage(r.wins, r.total))
        for name, r in acc.straight_up.items()
    }
    against_the_spread = {
        name: SpreadSplit(r.wins, r.losses, r.draws, round_percentage(r.wins, r.total))
        for name, r in acc.against_the_spread.items()
    }

    over_under = {}
    for name, t in acc.over_under.items():
        decided = t.overs + t.unders + t.pushes
        over_under[name] = TotalsSplit(
            t.overs, t.unders, t.pushes,
            round_percentage(t.overs, decided),
            round_percentage(t.unders, decided),
        )

    spread_ranges = {
        name: SpreadRangeSplit(
            b.games, b.fav_wins, b.dog_wins,
            round_percentage(b.fav_wins, b.games),
            round_percentage(b.dog_wins, b.games),
        )
        for name, b in acc.spread_ranges.items()
    }

    blowouts = acc.blowouts
    situational = {
        "ranked": RankedSplit(
            acc.ranked.games, acc.ranked.fav_wins, acc.ranked.fav_covers,
            round_percentage(acc.ranked.fav_covers, acc.ranked.games),
        ),
        "primetime": HomeAwaySplit(
            acc.primetime.games, acc.primetime.home_wins, acc.primetime.away_wins,
            round_percentage(acc.primetime.home_wins, acc.primetime.games),
        ),
        "rivalry": HomeAwaySplit(
            acc.rivalry.games, acc.rivalry.home_wins, acc.rivalry.away_wins,
            round_percentage(acc.rivalry.home_wins, acc.rivalry.games),
        ),
        "blowouts": BlowoutSplit(
            blowouts.games, blowouts.overs, blowouts.unders,
            round_percentage(blowouts.overs, blowouts.overs + blowouts.unders),
        ),
    }

    return TrendsReport(
        straight_up=MappingProxyType(straight_up),
        against_the_spread=MappingProxyType(against_the_spread),
        over_under=MappingProxyType(over_under),
        spread_ranges=MappingProxyType(spread_ranges),
        situational=MappingProxyType(situational),
        games_counted=acc.games_counted,
        games_with_lines=acc.games_with_lines,
        games_skipped=acc.games_skipped,
    )


def compute_trends(
    games: Iterable[Game],
    lines: Optional[Mapping[LineKey, BettingLine]] = None
) -> TrendsReport:
    """
    Compute betting trends for a batch of completed games.

    Args:
        games: Completed games; entries without both scores are skipped
        lines: Betting lines keyed by LineKey(home_team, away_team, week)

    Returns:
        Immutable TrendsReport; use ``to_dict()`` for the API shape
    """
    acc = reduce(_fold_game, games, _TrendsAccumulator(lines=lines or {}))

    if acc.games_skipped:
        logger.info(f"Skipped {acc.games_skipped} games without final scores")

    return _freeze(acc)
