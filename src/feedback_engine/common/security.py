"""Authentication dependencies for game-scoped and dashboard-scoped routes."""

import hmac
import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Header
from sqlalchemy.exc import SQLAlchemyError

from feedback_engine.common.config import DEFAULT_ACCOUNT_ID, FeedbackSettings
from feedback_engine.common.exceptions import (
    AuthBackendError,
    InvalidApiKeyError,
    MissingApiKeyError,
    UnauthorizedError,
)
from feedback_engine.games.schemas import GameSettings

logger = logging.getLogger(__name__)

DEV_GAME_NAME = "Development Game"


@dataclass
class GameContext:
    """Resolved game available to game-scoped handlers."""
    id: str
    name: str
    settings: GameSettings = field(default_factory=GameSettings)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()
        return token or None
    return None


def extract_game_credential(
    authorization: Optional[str], x_api_key: Optional[str]
) -> Optional[str]:
    """Bearer token first, then the dedicated API-key header."""
    token = extract_bearer_token(authorization)
    if token:
        return token
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def _dev_game(settings: FeedbackSettings, raw_key: str) -> Optional[GameContext]:
    """Development bypass; only reachable without persistent storage."""
    if settings.storage_configured:
        return None
    if not (settings.dev_api_key and settings.dev_game_id):
        return None
    if hmac.compare_digest(raw_key.encode(), settings.dev_api_key.encode()):
        return GameContext(id=settings.dev_game_id, name=DEV_GAME_NAME)
    return None


async def resolve_game(raw_key: str) -> GameContext:
    """Map a raw credential to its game or raise.

    Unknown and revoked keys raise the same InvalidApiKeyError so callers
    cannot tell which keys exist.
    """
    from feedback_engine.common.config import get_settings
    from feedback_engine.deps import get_db, get_game_service

    settings = get_settings()
    svc = get_game_service()
    db = get_db()
    try:
        async with db.get_session() as session:
            game = await svc.resolve_by_raw_key(session, raw_key)
            if game is not None:
                return GameContext(
                    id=game.id,
                    name=game.name,
                    settings=GameSettings.from_stored(game.settings),
                )
    except SQLAlchemyError:
        logger.exception("Failed to validate API key")
        raise AuthBackendError()

    dev_game = _dev_game(settings, raw_key)
    if dev_game is not None:
        return dev_game
    raise InvalidApiKeyError()


async def require_game_auth(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
) -> GameContext:
    """FastAPI dependency that resolves the calling game from its API key."""
    raw_key = extract_game_credential(authorization, x_api_key)
    if raw_key is None:
        raise MissingApiKeyError()
    return await resolve_game(raw_key)


def resolve_dashboard_account(
    settings: FeedbackSettings, authorization: Optional[str]
) -> str:
    """Return the account id for a dashboard caller.

    With no dashboard token configured the gate is open and everyone is
    DEFAULT_ACCOUNT_ID.
    """
    if settings.dashboard_open:
        return DEFAULT_ACCOUNT_ID

    token = extract_bearer_token(authorization)
    if not token or not hmac.compare_digest(
        token.encode(), settings.dashboard_token.encode()
    ):
        raise UnauthorizedError()
    return settings.dashboard_account_id or DEFAULT_ACCOUNT_ID


async def require_dashboard_account(
    authorization: Optional[str] = Header(None),
) -> str:
    """FastAPI dependency that resolves the dashboard account id."""
    from feedback_engine.common.config import get_settings

    return resolve_dashboard_account(get_settings(), authorization)
