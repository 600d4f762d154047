"""
recommendation_cache.py

Single-slot cache for the daily director batch.

The slot is replaced by reference assignment only, so concurrent readers see
either the old entry or the new one. There is no lock: concurrent regenerations
are allowed and the last writer wins.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from cinechronic.schemas import Recommendation
from cinechronic.utils.timezone import day_key, local_hour, utc_now


@dataclass(frozen=True)
class CacheEntry:
    recommendations: Tuple[Recommendation, ...]
    generated_day_key: str
    generated_at: datetime
    version: int


class DailyRecommendationCache:
    """Holds the last successful batch and decides when a new one is due."""

    def __init__(self, generation_hour: int = 5, tz_name: str = ""):
        self.generation_hour = generation_hour
        self.tz_name = tz_name
        self._entry: Optional[CacheEntry] = None
        self._version = 0
        self.regenerations = 0

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def should_regenerate(self, now: Optional[datetime] = None) -> bool:
        """Empty cache, or a new UTC day once the local clock has reached the generation hour."""
        entry = self._entry
        if entry is None:
            return True
        now = now or utc_now()
        if entry.generated_day_key != day_key(now) and local_hour(now, self.tz_name) >= self.generation_hour:
            return True
        return False

    def replace(self, recommendations: List[Recommendation], now: Optional[datetime] = None) -> CacheEntry:
        now = now or utc_now()
        self._version += 1
        entry = CacheEntry(
            recommendations=tuple(recommendations),
            generated_day_key=day_key(now),
            generated_at=now,
            version=self._version,
        )
        self._entry = entry
        return entry

    def clear(self) -> None:
        self._entry = None
