"""Dependency injection singletons for Feedback-Engine."""

from feedback_engine.common.config import get_settings
from feedback_engine.common.database import DatabaseManager
from feedback_engine.accounts.service import AccountService
from feedback_engine.beta.service import BetaAccessService
from feedback_engine.feedback.service import FeedbackService
from feedback_engine.games.service import GameService
from feedback_engine.ratelimit.limiter import FixedWindowRateLimiter

_db: DatabaseManager | None = None
_games: GameService | None = None
_feedback: FeedbackService | None = None
_beta: BetaAccessService | None = None
_accounts: AccountService | None = None
_rate_limiter: FixedWindowRateLimiter | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_game_service() -> GameService:
    global _games
    if _games is None:
        _games = GameService()
    return _games


def get_feedback_service() -> FeedbackService:
    global _feedback
    if _feedback is None:
        _feedback = FeedbackService()
    return _feedback


def get_beta_access_service() -> BetaAccessService:
    global _beta
    if _beta is None:
        _beta = BetaAccessService(get_settings())
    return _beta


def get_account_service() -> AccountService:
    global _accounts
    if _accounts is None:
        _accounts = AccountService()
    return _accounts


def get_rate_limiter() -> FixedWindowRateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = FixedWindowRateLimiter(get_settings())
    return _rate_limiter


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _games, _feedback, _beta, _accounts, _rate_limiter
    _db = None
    _games = None
    _feedback = None
    _beta = None
    _accounts = None
    _rate_limiter = None
