"""FastAPI dependency enforcing the per-game rate limit."""

from fastapi import Depends, Request, Response

from feedback_engine.common.exceptions import RateLimitedError
from feedback_engine.common.security import GameContext, require_game_auth
from feedback_engine.ratelimit.limiter import identity_from_payload
from feedback_engine.ratelimit.store import RateLimitDecision


async def _read_payload(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None


async def enforce_rate_limit(
    request: Request,
    response: Response,
    game: GameContext = Depends(require_game_auth),
) -> RateLimitDecision:
    """Admit or reject the request; always attaches the X-RateLimit-* headers."""
    from feedback_engine.deps import get_rate_limiter

    user_id = identity_from_payload(await _read_payload(request))
    # No await between here and the decision: the bucket update is atomic.
    decision = get_rate_limiter().check(game.id, user_id, game.settings)
    headers = decision.headers()
    # Error handlers re-attach these to responses built after this point
    request.state.rate_limit_headers = headers
    if not decision.allowed:
        raise RateLimitedError(decision.retry_after_seconds or 1, headers=headers)
    response.headers.update(headers)
    return decision
