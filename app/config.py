import os
from typing import List

CFBD_API_KEY = os.environ.get("CFBD_API_KEY", "")
CFBD_BASE_URL = os.environ.get("CFBD_BASE_URL", "https://api.collegefootballdata.com")
CFBD_TIMEOUT = float(os.environ.get("CFBD_TIMEOUT", "30"))

TRENDS_CACHE_TTL = int(os.environ.get("TRENDS_CACHE_TTL", str(60 * 60)))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("LOG_JSON", "false").lower() == "true"

ALLOWED_ORIGINS: List[str] = os.environ.get("ALLOWED_ORIGINS", "*").split(",")

DEFAULT_YEAR = int(os.environ.get("DEFAULT_YEAR", "2024"))
DEFAULT_CONFERENCE = "All"

SEASON_TYPES = ["regular", "postseason", "both"]

# Short names used by the UI, mapped to the names CFBD reports
CONFERENCE_ALIASES = {
    "Independent": ["FBS Independents", "FCS Independents", "Independent DII", "Independent DIII"],
    "American": ["American Athletic"],
    "C-USA": ["Conference USA"],
    "MAC": ["Mid-American"],
    "PAC-12": ["Pac-12"],
    "Mountain West": ["Mountain West"],
    "Sun Belt": ["Sun Belt"],
}

SUPPORTED_CONFERENCES: List[str] = [
    "All",
    "SEC",
    "Big Ten",
    "Big 12",
    "ACC",
    "PAC-12",
    "American",
    "Mountain West",
    "Sun Belt",
    "MAC",
    "C-USA",
    "Independent",
]
