"""
Betting Trends API Endpoints

Season-level straight-up, ATS and over/under trends for FBS games.
"""

import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from app import config
from app.services import cfbd
from app.services.betting_trends import compute_trends
from app.utils.cache import cache, report_cache_key, REPORT_PREFIX
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/betting-trends", tags=["Betting Trends"])


@router.get("")
async def get_betting_trends(
    year: int = Query(config.DEFAULT_YEAR, ge=2000, le=2100, description="Season year"),
    conference: str = Query(config.DEFAULT_CONFERENCE, description="Conference filter, or All"),
    season_type: str = Query("regular", description="regular, postseason or both"),
    start_week: Optional[int] = Query(None, ge=1, le=20, description="First week to include"),
    end_week: Optional[int] = Query(None, ge=1, le=20, description="Last week to include"),
    force_refresh: bool = Query(False, description="Bypass the report cache"),
):
    """
    Get betting trends for a season.

    Every completed game counts toward the straight-up home/away records;
    only games with a posted spread count toward ATS, totals and splits.
    """
    if season_type not in config.SEASON_TYPES:
        raise HTTPException(status_code=400, detail=f"season_type must be one of {config.SEASON_TYPES}")
    if start_week is not None and end_week is not None and end_week < start_week:
        raise HTTPException(status_code=400, detail="end_week must not be before start_week")

    conference = cfbd.canonical_conference(conference)

    cache_key = report_cache_key(year, start_week, end_week, conference, season_type)
    if not force_refresh:
        cached = cache.get(cache_key)
        if cached is not None:
            return {**cached, "meta": {**cached["meta"], "cached": True}}

    logger.info(f"Betting trends - year: {year}, conference: {conference}, weeks: {start_week}-{end_week}")
    start_time = time.time()

    try:
        games, lines = await cfbd.fetch_season(year, season_type)
    except cfbd.CFBDError as e:
        logger.error(f"Betting trends failed for {year} {conference}: {e}")
        return JSONResponse(
            status_code=502,
            content={
                "success": False,
                "error": "Failed to generate betting trends",
                "details": str(e),
                "year": year,
                "conference": conference,
            },
        )

    games = cfbd.completed_games(games)
    games = cfbd.filter_by_conference(games, conference)
    games = cfbd.filter_by_weeks(games, start_week, end_week)

    report = compute_trends(games, lines)
    processing_ms = round((time.time() - start_time) * 1000)

    result = {
        "success": True,
        "year": year,
        "conference": conference,
        "totalGames": report.games_counted,
        "trends": report.to_dict(),
        "meta": {
            "processingTimeMs": processing_ms,
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "dataSource": "CFBD API",
            "seasonType": season_type,
            "startWeek": start_week,
            "endWeek": end_week,
            "gamesWithLines": report.games_with_lines,
            "cached": False,
        },
    }
    cache.set(cache_key, result)
    return result


@router.get("/conferences")
async def get_conferences():
    """Conference names accepted by the conference filter."""
    return {
        "conferences": config.SUPPORTED_CONFERENCES,
        "aliases": config.CONFERENCE_ALIASES,
    }


@router.get("/cache/stats")
async def get_cache_stats():
    """Report cache hit/miss counters."""
    return cache.stats()


@router.delete("/cache")
async def clear_cache():
    """Drop every cached trends report."""
    cleared = cache.clear_prefix(REPORT_PREFIX)
    return {"cleared": cleared}
