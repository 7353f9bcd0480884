"""Feedback-Engine: player feedback collection for game developers."""

from feedback_engine.client import FeedbackClient
from feedback_engine.keygen.generator import generate_api_key, generate_beta_key, key_hash
from feedback_engine.ratelimit.limiter import FixedWindowRateLimiter
from feedback_engine.ratelimit.store import InMemoryBucketStore, RateLimitDecision

__all__ = [
    "FeedbackClient",
    "generate_api_key",
    "generate_beta_key",
    "key_hash",
    "FixedWindowRateLimiter",
    "InMemoryBucketStore",
    "RateLimitDecision",
]
__version__ = "0.1.0"
