"""In-process TTL cache for computed reports."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

CacheKey = tuple[str, str, str]


def range_key(start: date, end: date, as_of: Optional[date] = None) -> str:
    """Date-range part of a cache key: "2024-01-01:2024-01-31".

    Reports that also depend on the current day append it: "...@2024-02-10".
    """

    key = f"{start.isoformat()}:{end.isoformat()}"
    return f"{key}@{as_of.isoformat()}" if as_of is not None else key


@dataclass
class _Entry:
    value: Any
    stored_at: float


class ReportCache:
    """Report results keyed by (account, report kind, date range).

    Entries expire ``ttl_seconds`` after they were stored. The cache lives on
    the event loop thread only, so no locking is done.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, account_id: str, kind: str, range_: str) -> Optional[Any]:
        """Return a fresh cached value or None; stale entries are dropped."""

        key = (account_id, kind, range_)
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("report_cache_miss", account_id=account_id, kind=kind, range=range_)
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            del self._entries[key]
            logger.debug("report_cache_expired", account_id=account_id, kind=kind, range=range_)
            return None
        logger.debug("report_cache_hit", account_id=account_id, kind=kind, range=range_)
        return entry.value

    def set(self, account_id: str, kind: str, range_: str, value: Any) -> None:
        """Store a value; expired entries of every account are swept first."""

        now = self._clock()
        self.sweep(now)
        self._entries[(account_id, kind, range_)] = _Entry(value=value, stored_at=now)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop expired entries. Returns how many were dropped."""

        now = self._clock() if now is None else now
        expired = [key for key, entry in self._entries.items() if now - entry.stored_at >= self._ttl]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("report_cache_swept", dropped=len(expired))
        return len(expired)

    def invalidate(self, account_id: str) -> int:
        """Drop every entry for an account. Returns how many were dropped."""

        stale = [key for key in self._entries if key[0] == account_id]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("report_cache_invalidated", account_id=account_id, dropped=len(stale))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
