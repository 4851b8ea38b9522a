"""
Predictive Maintenance - Read Cache.

Short-lived cache for repeated reads of the same filter set
(listings, analytics). Entries are keyed per company and are
dropped for that company whenever its alerts change.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Hashable, Optional, Tuple

from core.clock import ClockProtocol, SystemClock


class ReadCache:
    """
    TTL cache keyed by (company_id, operation, params).

    ============================================================
    LOGIC
    ============================================================
    - Track store time per key
    - Entries older than the TTL are misses
    - invalidate(company_id) drops every entry of that company

    ============================================================
    """

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        clock: Optional[ClockProtocol] = None,
        enabled: bool = True,
    ):
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._enabled = enabled and ttl_seconds > 0
        self._entries: Dict[Tuple[str, str, Hashable], Tuple[datetime, Any]] = {}

    def get(self, company_id: str, operation: str, params: Hashable = ()) -> Any:
        """Cached value, or None on a miss."""
        if not self._enabled:
            return None

        key = (company_id, operation, params)
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self._clock.now() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def set(self, company_id: str, operation: str, params: Hashable, value: Any) -> None:
        if not self._enabled:
            return
        self._entries[(company_id, operation, params)] = (self._clock.now(), value)

    def invalidate(self, company_id: str) -> int:
        """Drop every entry for a company. Returns the number removed."""
        keys = [key for key in self._entries if key[0] == company_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
