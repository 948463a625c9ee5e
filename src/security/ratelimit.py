"""Rate limiting using in-memory fixed-window counters with temporary blocks.

Each client key owns one entry. A client that uses up its tier's allowance
inside a window is blocked for the tier's block duration; once the block
lapses the next request starts a fresh window.

Tiers are chosen by request path:
- paths under the weather API prefix -> ``api`` (strictest)
- paths containing "search" or "suggest" -> ``search``
- everything else -> ``general``
"""

import math
import time
from dataclasses import dataclass

from src.config.settings import Settings
from src.state.store import InMemoryStore, StateStore


@dataclass(frozen=True)
class RateLimitTier:
    name: str
    max_requests: int
    window_seconds: float
    block_seconds: float


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float
    last_request_at: float
    blocked_until: float | None = None


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after: int | None = None  # set when this request triggered the block
    block_remaining: int | None = None  # set while an existing block is in force

    @property
    def wait_seconds(self) -> int | None:
        if self.retry_after is not None:
            return self.retry_after
        return self.block_remaining


def build_tiers(settings: Settings) -> dict[str, RateLimitTier]:
    return {
        "general": RateLimitTier(
            "general",
            settings.rate_limit_general_max_requests,
            settings.rate_limit_general_window_seconds,
            settings.rate_limit_general_block_seconds,
        ),
        "api": RateLimitTier(
            "api",
            settings.rate_limit_api_max_requests,
            settings.rate_limit_api_window_seconds,
            settings.rate_limit_api_block_seconds,
        ),
        "search": RateLimitTier(
            "search",
            settings.rate_limit_search_max_requests,
            settings.rate_limit_search_window_seconds,
            settings.rate_limit_search_block_seconds,
        ),
    }


class RateLimiter:
    """Fixed-window limiter keyed by client key, with per-tier block periods."""

    def __init__(self, settings: Settings, store: StateStore | None = None):
        self._enabled = settings.enable_rate_limiting
        self._api_prefix = settings.rate_limit_api_prefix
        self._max_entries = settings.rate_limit_max_entries
        self.tiers = build_tiers(settings)
        self.store = store if store is not None else InMemoryStore()

    def tier_for_path(self, path: str) -> RateLimitTier:
        # API prefix wins over the substring tiers
        if path.startswith(self._api_prefix):
            return self.tiers["api"]
        if "search" in path or "suggest" in path:
            return self.tiers["search"]
        return self.tiers["general"]

    def check(self, client_key: str, tier: RateLimitTier) -> RateLimitResult:
        """Record a request from client_key and decide whether it may proceed."""
        if not self._enabled:
            return RateLimitResult(allowed=True)

        now = time.monotonic()

        with self.store.locked():
            entry: RateLimitEntry | None = self.store.get(client_key)

            if entry is not None and entry.blocked_until is not None:
                if now < entry.blocked_until:
                    return RateLimitResult(
                        allowed=False,
                        block_remaining=math.ceil(entry.blocked_until - now),
                    )
                # Block lapsed: start over
                entry = None

            if entry is None or now > entry.window_reset_at:
                if entry is None:
                    self._maybe_prune(now)
                self.store.set(
                    client_key,
                    RateLimitEntry(
                        count=1,
                        window_reset_at=now + tier.window_seconds,
                        last_request_at=now,
                    ),
                )
                return RateLimitResult(allowed=True)

            if entry.count >= tier.max_requests:
                entry.blocked_until = now + tier.block_seconds
                return RateLimitResult(
                    allowed=False,
                    retry_after=math.ceil(tier.block_seconds),
                )

            entry.count += 1
            entry.last_request_at = now
            return RateLimitResult(allowed=True)

    def _maybe_prune(self, now: float) -> None:
        """Drop idle entries once the table grows past the configured ceiling.

        Only entries whose window and block have both lapsed are removed;
        such an entry would be reset on its next request anyway.
        """
        if self.store.size() < self._max_entries:
            return
        for key, entry in self.store.items():
            blocked = entry.blocked_until is not None and now < entry.blocked_until
            if not blocked and now > entry.window_reset_at:
                self.store.delete(key)

    def reset_client(self, client_key: str) -> None:
        """Clear rate limit state for a client."""
        self.store.delete(client_key)
