"""Admission stores for the fixed-window rate limiter.

An ``AdmissionStore`` atomically admits or rejects one unit of work for a key
under a quota. ``InMemoryBucketStore`` is the single-process implementation:
``hit`` runs start to finish without yielding to the event loop, which is what
makes the read-modify-write on a bucket safe without a lock. A shared store
for multi-process deployments must keep the same all-or-nothing contract.
"""

import abc
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class Bucket:
    count: int
    reset_at: float  # unix seconds
    limit: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None = None

    @property
    def reset_epoch_seconds(self) -> int:
        return math.ceil(self.reset_at)

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_epoch_seconds),
        }
        if not self.allowed and self.retry_after_seconds is not None:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


def retry_after(reset_at: float, now: float) -> int:
    return max(1, math.ceil(reset_at - now))


class AdmissionStore(abc.ABC):
    """Capability: atomically admit-or-reject a key under a quota."""

    @abc.abstractmethod
    def hit(self, key: str, limit: int, window_seconds: float, now: float) -> RateLimitDecision:
        """Count one request against ``key`` and report the decision."""

    @abc.abstractmethod
    def reset(self) -> None:
        """Forget every bucket."""


class InMemoryBucketStore(AdmissionStore):
    """Bounded process-local bucket table with lazy expiry.

    Buckets whose window has closed are swept at most once per
    ``sweep_interval`` seconds. If the table still holds more than
    ``max_entries`` buckets, the ones whose window opened longest ago are
    dropped first.
    """

    def __init__(self, max_entries: int = 100_000, sweep_interval: float = 60.0):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self._buckets: OrderedDict[str, Bucket] = OrderedDict()
        self._next_sweep: float | None = None
        self.evictions = 0
        self.expirations = 0

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: str) -> bool:
        return key in self._buckets

    def get(self, key: str) -> Bucket | None:
        return self._buckets.get(key)

    def hit(self, key: str, limit: int, window_seconds: float, now: float) -> RateLimitDecision:
        self._maybe_sweep(now)

        if limit <= 0:
            reset_at = now + window_seconds
            return RateLimitDecision(
                allowed=False,
                limit=0,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=retry_after(reset_at, now),
            )

        bucket = self._buckets.get(key)
        if bucket is None or now >= bucket.reset_at:
            bucket = Bucket(count=1, reset_at=now + window_seconds, limit=limit)
            self._buckets[key] = bucket
            self._buckets.move_to_end(key)
            self._enforce_capacity()
            return RateLimitDecision(
                allowed=True,
                limit=limit,
                remaining=max(0, limit - 1),
                reset_at=bucket.reset_at,
            )

        if bucket.count >= bucket.limit:
            return RateLimitDecision(
                allowed=False,
                limit=bucket.limit,
                remaining=0,
                reset_at=bucket.reset_at,
                retry_after_seconds=retry_after(bucket.reset_at, now),
            )

        bucket.count += 1
        return RateLimitDecision(
            allowed=True,
            limit=bucket.limit,
            remaining=max(0, bucket.limit - bucket.count),
            reset_at=bucket.reset_at,
        )

    def sweep(self, now: float) -> int:
        """Drop every bucket whose window has closed. Returns how many."""
        expired = [key for key, bucket in self._buckets.items() if now >= bucket.reset_at]
        for key in expired:
            del self._buckets[key]
        self.expirations += len(expired)
        if expired:
            logger.debug("Swept %d expired rate-limit buckets", len(expired))
        return len(expired)

    def _maybe_sweep(self, now: float) -> None:
        if self._next_sweep is None:
            self._next_sweep = now + self.sweep_interval
            return
        if now >= self._next_sweep:
            self.sweep(now)
            self._next_sweep = now + self.sweep_interval

    def _enforce_capacity(self) -> None:
        while len(self._buckets) > self.max_entries:
            self._buckets.popitem(last=False)
            self.evictions += 1

    def reset(self) -> None:
        self._buckets.clear()
        self._next_sweep = None
