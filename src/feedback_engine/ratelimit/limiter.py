"""Fixed-window rate limiter scoped to (game, end-user identity)."""

import time
from typing import Any, Callable

from feedback_engine.common.config import FeedbackSettings
from feedback_engine.games.schemas import GameSettings
from feedback_engine.ratelimit.store import (
    AdmissionStore,
    InMemoryBucketStore,
    RateLimitDecision,
)

ANONYMOUS_IDENTITY = "anonymous"


def rate_limit_key(game_id: str | None, user_id: str | None) -> str:
    return f"{game_id or 'unknown'}:{user_id or ANONYMOUS_IDENTITY}"


def identity_from_payload(payload: Any) -> str | None:
    """Pull ``identity.userId`` out of a feedback payload, if present."""
    if not isinstance(payload, dict):
        return None
    identity = payload.get("identity")
    if not isinstance(identity, dict):
        return None
    user_id = identity.get("userId")
    if isinstance(user_id, str) and user_id:
        return user_id
    return None


class FixedWindowRateLimiter:
    """Resolves the quota for a game and delegates admission to a store.

    Per-game ``rateLimit`` settings win over the process-wide defaults.
    """

    def __init__(
        self,
        settings: FeedbackSettings,
        store: AdmissionStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.store = store or InMemoryBucketStore(
            max_entries=settings.rate_limit_max_buckets,
            sweep_interval=settings.rate_limit_sweep_interval_seconds,
        )
        self.clock = clock

    def resolve_limits(self, game_settings: GameSettings | None) -> tuple[int, int]:
        """Return (window_ms, max) for a game."""
        window_ms = self.settings.rate_limit_window_ms
        max_requests = self.settings.rate_limit_max
        override = game_settings.rate_limit if game_settings else None
        if override is not None:
            if override.window_ms is not None:
                window_ms = override.window_ms
            if override.max is not None:
                max_requests = override.max
        return window_ms, max_requests

    def check(
        self,
        game_id: str,
        user_id: str | None = None,
        game_settings: GameSettings | None = None,
    ) -> RateLimitDecision:
        window_ms, max_requests = self.resolve_limits(game_settings)
        return self.store.hit(
            rate_limit_key(game_id, user_id),
            limit=max_requests,
            window_seconds=window_ms / 1000,
            now=self.clock(),
        )
