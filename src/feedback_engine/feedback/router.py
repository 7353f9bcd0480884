"""Feedback submission router: game API key and rate limit required."""

from fastapi import APIRouter, Depends

from feedback_engine.common.exceptions import InvalidRequestError
from feedback_engine.common.security import GameContext, require_game_auth
from feedback_engine.feedback.schemas import FeedbackCreate, FeedbackCreateResponse
from feedback_engine.feedback.service import feature_toggle_error
from feedback_engine.ratelimit.dependencies import enforce_rate_limit

router = APIRouter()


def _get_service():
    from feedback_engine.deps import get_feedback_service
    return get_feedback_service()


def _get_db():
    from feedback_engine.deps import get_db
    return get_db()


@router.post("/feedback", response_model=FeedbackCreateResponse, status_code=201)
async def submit_feedback(
    body: FeedbackCreate,
    game: GameContext = Depends(require_game_auth),
    _=Depends(enforce_rate_limit),
):
    error = feature_toggle_error(game.settings, body)
    if error:
        raise InvalidRequestError(error)

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        record = await svc.create_feedback(session, game.id, body)
        return FeedbackCreateResponse(id=record.id)
