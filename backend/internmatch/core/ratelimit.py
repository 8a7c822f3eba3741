from datetime import datetime, timedelta
from typing import Dict, List

from fastapi import HTTPException


class RateLimiter:
    """Sliding-window request counter keyed by caller."""

    def __init__(self, limit: int, window_seconds: int):
        self.limit = max(1, limit)
        self.window = timedelta(seconds=window_seconds)
        self.hits: Dict[str, List[datetime]] = {}

    def _recent(self, key: str, now: datetime) -> List[datetime]:
        window_start = now - self.window
        return [ts for ts in self.hits.get(key, []) if ts >= window_start]

    def check(self, key: str) -> None:
        now = datetime.utcnow()
        entries = self._recent(key, now)
        if len(entries) >= self.limit:
            retry_after = int(max(1, (entries[0] + self.window - now).total_seconds()))
            raise HTTPException(
                status_code=429,
                detail={
                    "message": "Too many match requests",
                    "retry_after_seconds": retry_after,
                },
            )
        entries.append(now)
        self.hits[key] = entries

    def reset(self) -> None:
        self.hits.clear()

from internmatch.core.config import settings


match_rate_limiter = RateLimiter(
    limit=settings.match_rate_limit_per_minute,
    window_seconds=60,
)
