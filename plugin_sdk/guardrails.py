import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Hashable, Optional, Tuple

from .errors import ConfigurationError
from .settings import settings

Clock = Callable[[], int]

_MISSING = object()


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int = settings.rate_limit_max_requests
    window_ms: int = settings.rate_limit_window_ms
    # None keeps history for every identifier ever seen
    max_identifiers: Optional[int] = None

    def __post_init__(self):
        if self.max_requests <= 0:
            raise ConfigurationError("max_requests must be a positive integer", {"max_requests": self.max_requests})
        if self.window_ms <= 0:
            raise ConfigurationError("window_ms must be a positive integer", {"window_ms": self.window_ms})
        if self.max_identifiers is not None and self.max_identifiers <= 0:
            raise ConfigurationError("max_identifiers must be positive when set", {"max_identifiers": self.max_identifiers})


def _expired_prefix(hits: Deque[int], window_start: int) -> int:
    # hits are oldest-first, so expired entries always form a prefix
    n = 0
    for ts in hits:
        if ts > window_start:
            break
        n += 1
    return n


class RateLimiter:
    """
    In-memory, per-process sliding window log rate limiter.

    Every admitted request is recorded with its timestamp and only requests
    inside the trailing window count, so a 1-per-60s policy never admits two
    requests within any 60s span. Rejected requests are not recorded.
    Not thread-safe: use one instance per worker or guard it externally.
    """
    def __init__(self, cfg: Optional[RateLimitConfig] = None, clock: Optional[Clock] = None):
        self.cfg = cfg or RateLimitConfig()
        self._clock = clock or now_ms
        self._hits: "OrderedDict[Hashable, Deque[int]]" = OrderedDict()

    @property
    def max_requests(self) -> int:
        return self.cfg.max_requests

    @property
    def window_ms(self) -> int:
        return self.cfg.window_ms

    def is_allowed(self, identifier: Hashable) -> bool:
        now = self._clock()
        window_start = now - self.cfg.window_ms
        q = self._hits.get(identifier)
        if q is None:
            q = deque()
            self._hits[identifier] = q
            self._enforce_cardinality()

        # drop old hits
        for _ in range(_expired_prefix(q, window_start)):
            q.popleft()

        # recency covers rejected calls as well
        self._hits.move_to_end(identifier)
        if len(q) >= self.cfg.max_requests:
            return False

        q.append(now)
        return True

    def get_remaining_requests(self, identifier: Hashable) -> int:
        q = self._hits.get(identifier)
        if q is None:
            return self.cfg.max_requests
        window_start = self._clock() - self.cfg.window_ms
        live = len(q) - _expired_prefix(q, window_start)
        return max(0, self.cfg.max_requests - live)

    def reset(self, identifier: Hashable) -> None:
        self._hits.pop(identifier, None)

    def _enforce_cardinality(self) -> None:
        limit = self.cfg.max_identifiers
        if limit is None:
            return
        # least recently seen identifiers sit at the front
        while len(self._hits) > limit:
            self._hits.popitem(last=False)


class TTLCache:
    """
    Simple in-memory TTL cache with lazy expiry.

    Reads evict the entry they find expired; size() is the only call that
    sweeps the whole store. Expiry is fixed at set() time and never renewed
    by reads.
    """
    def __init__(
        self,
        default_ttl_ms: int = settings.cache_default_ttl_ms,
        max_items: Optional[int] = None,
        clock: Optional[Clock] = None,
    ):
        if default_ttl_ms < 0:
            raise ConfigurationError("default_ttl_ms cannot be negative", {"default_ttl_ms": default_ttl_ms})
        if max_items is not None and max_items <= 0:
            raise ConfigurationError("max_items must be positive when set", {"max_items": max_items})
        self.default_ttl_ms = default_ttl_ms
        self.max_items = max_items
        self._clock = clock or now_ms
        self._store: Dict[Hashable, Tuple[int, Any]] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        item = self._store.get(key)
        if item is None:
            return default
        expires_at, value = item
        if self._clock() > expires_at:
            self._store.pop(key, None)
            return default
        return value

    def set(self, key: Hashable, value: Any, ttl_ms: Optional[int] = None) -> None:
        now = self._clock()
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms

        if self.max_items is not None and key not in self._store and len(self._store) >= self.max_items:
            self._sweep(now)
            # still too big: drop the entry closest to expiring
            if len(self._store) >= self.max_items:
                oldest_key = min(self._store.items(), key=lambda kv: kv[1][0])[0]
                self._store.pop(oldest_key, None)

        self._store[key] = (now + ttl, value)

    def has(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def delete(self, key: Hashable) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        self._sweep(self._clock())
        return len(self._store)

    def _sweep(self, now: int) -> None:
        expired = [k for k, (expires_at, _) in self._store.items() if now > expires_at]
        for k in expired:
            del self._store[k]

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return self.size()
