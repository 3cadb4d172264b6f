from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import logging

from app.config import TRENDS_CACHE_TTL

logger = logging.getLogger(__name__)

REPORT_PREFIX = "trends"


class SimpleCache:
    def __init__(self, default_ttl: int = 300):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        if key in self._cache:
            entry = self._cache[key]
            if datetime.utcnow() < entry["expires_at"]:
                self.hits += 1
                return entry["value"]
            else:
                del self._cache[key]

        self.misses += 1
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl or self.default_ttl
        self._cache[key] = {
            "value": value,
            "expires_at": datetime.utcnow() + timedelta(seconds=ttl),
            "created_at": datetime.utcnow()
        }

    def delete(self, key: str) -> bool:
        if key in self._cache:
            del self._cache[key]
            return True
        return False

    def clear(self) -> int:
        count = len(self._cache)
        self._cache.clear()
        return count

    def clear_prefix(self, prefix: str) -> int:
        keys_to_delete = [k for k in self._cache.keys() if k.startswith(prefix)]
        for key in keys_to_delete:
            del self._cache[key]
        if keys_to_delete:
            logger.debug(f"Invalidated {len(keys_to_delete)} cache entries with prefix '{prefix}'")
        return len(keys_to_delete)

    def cleanup_expired(self) -> int:
        now = datetime.utcnow()
        expired_keys = [
            k for k, v in self._cache.items()
            if v["expires_at"] < now
        ]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total > 0 else 0,
            "size": len(self._cache)
        }


def report_cache_key(
    season: int,
    start_week: Optional[int],
    end_week: Optional[int],
    conference: str,
    season_type: str
) -> str:
    """Key for a cached trends report; open week bounds render as '*'."""
    weeks = f"{start_week if start_week is not None else '*'}-{end_week if end_week is not None else '*'}"
    return f"{REPORT_PREFIX}:{season}:{season_type}:{weeks}:{conference.lower()}"


cache = SimpleCache(default_ttl=TRENDS_CACHE_TTL)
