"""Dashboard API router: games, feedback triage and analytics.

Every route requires the dashboard gate. A game that does not belong to the
caller's account is reported as not found rather than forbidden.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from feedback_engine.common.exceptions import InvalidRequestError, NotFoundError
from feedback_engine.common.security import require_dashboard_account
from feedback_engine.feedback.schemas import (
    FEEDBACK_STATUSES,
    BulkDeleteRequest,
    BulkDeleteResponse,
    FeedbackListResponse,
    FeedbackResponse,
    FeedbackStats,
    FeedbackUpdate,
)
from feedback_engine.feedback.service import DEFAULT_PAGE_SIZE
from feedback_engine.games.models import GameModel
from feedback_engine.games.schemas import (
    ApiKeyResponse,
    GameCreate,
    GameCreateResponse,
    GameListResponse,
    GameResponse,
    GameSettings,
    GameStatsSummary,
    GameUpdate,
)

router = APIRouter(prefix="/games", tags=["games"])


def _get_service():
    from feedback_engine.deps import get_game_service
    return get_game_service()


def _get_feedback_service():
    from feedback_engine.deps import get_feedback_service
    return get_feedback_service()


def _get_beta_service():
    from feedback_engine.deps import get_beta_access_service
    return get_beta_access_service()


def _get_db():
    from feedback_engine.deps import get_db
    return get_db()


def _get_settings():
    from feedback_engine.common.config import get_settings
    return get_settings()


def _game_response(game: GameModel, stats: GameStatsSummary | None = None) -> GameResponse:
    return GameResponse(
        id=game.id,
        name=game.name,
        settings=GameSettings.from_stored(game.settings),
        stats=stats,
    )


def _feedback_response(record) -> FeedbackResponse:
    return FeedbackResponse(
        id=record.id,
        game_id=record.game_id,
        type=record.type,
        identity_option=record.identity_option,
        status=record.status,
        body=record.body,
        category=record.category,
        tags=record.tags or [],
        severity=record.severity,
        identity=record.identity,
        metadata=record.metadata_,
        developer_notes=record.developer_notes,
        created_at=record.created_at,
    )


def _int_query(value: Optional[str], default: int) -> int:
    """Lenient integer query param; unparseable or zero falls back to the default."""
    try:
        parsed = int(value) if value is not None else 0
    except ValueError:
        return default
    return parsed or default


async def _owned_game(session, game_id: str, account_id: str) -> GameModel:
    game = await _get_service().get_for_account(session, game_id, account_id)
    if game is None:
        raise NotFoundError("game_not_found")
    return game


# ── Games ──


@router.get("", response_model=GameListResponse, response_model_exclude_none=True)
async def list_games(
    stats: Optional[str] = Query(None),
    account_id: str = Depends(require_dashboard_account),
):
    svc = _get_service()
    feedback_svc = _get_feedback_service()
    db = _get_db()
    async with db.get_session() as session:
        games = await svc.list_by_account(session, account_id)
        if stats != "1":
            return GameListResponse(games=[_game_response(g) for g in games])

        items = []
        for game in games:
            game_stats = await feedback_svc.get_stats(session, game.id)
            items.append(
                _game_response(
                    game,
                    GameStatsSummary(
                        open_count=game_stats.open_count,
                        bug_pct=game_stats.bug_pct,
                        reports7d=sum(day.count for day in game_stats.last7_days),
                    ),
                )
            )
        return GameListResponse(games=items)


@router.post(
    "",
    response_model=GameCreateResponse,
    status_code=201,
    response_model_exclude_none=True,
)
async def create_game(
    body: GameCreate,
    account_id: str = Depends(require_dashboard_account),
):
    name = body.name.strip() if body.name else ""
    if not name:
        raise InvalidRequestError("name_required")

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        # Consuming the beta key shares the transaction with the insert, so a
        # failed creation does not spend a use.
        if _get_settings().beta_access_required:
            await _get_beta_service().redeem(session, body.beta_access_key)
        game, raw_key = await svc.create_game(session, account_id, name)
        return GameCreateResponse(game=_game_response(game), api_key=raw_key)


@router.patch("/{game_id}", response_model=GameResponse, response_model_exclude_none=True)
async def update_game(
    game_id: str,
    body: GameUpdate,
    account_id: str = Depends(require_dashboard_account),
):
    name = body.name.strip() if body.name is not None else None
    if name == "":
        raise InvalidRequestError("name_required")

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        game = await svc.update_game(
            session, game_id, account_id, name=name, settings=body.settings
        )
        if game is None:
            raise NotFoundError("game_not_found")
        return _game_response(game)


@router.post("/{game_id}/api-key/rotate", response_model=ApiKeyResponse)
async def rotate_api_key(
    game_id: str,
    account_id: str = Depends(require_dashboard_account),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await _owned_game(session, game_id, account_id)
        raw_key = await svc.rotate_api_key(session, game_id)
        return ApiKeyResponse(api_key=raw_key)


# ── Feedback triage ──


@router.get("/{game_id}/feedback", response_model=FeedbackListResponse)
async def list_feedback(
    game_id: str,
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    account_id: str = Depends(require_dashboard_account),
):
    feedback_svc = _get_feedback_service()
    db = _get_db()
    async with db.get_session() as session:
        await _owned_game(session, game_id, account_id)
        records = await feedback_svc.list_feedback(
            session,
            game_id,
            status=status,
            type=type,
            limit=_int_query(limit, DEFAULT_PAGE_SIZE),
            offset=_int_query(offset, 0),
        )
        return FeedbackListResponse(feedback=[_feedback_response(r) for r in records])


@router.patch("/{game_id}/feedback/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback(
    game_id: str,
    feedback_id: str,
    body: FeedbackUpdate,
    account_id: str = Depends(require_dashboard_account),
):
    if body.status is not None and body.status not in FEEDBACK_STATUSES:
        raise InvalidRequestError("invalid_status")

    updates = {}
    if "developer_notes" in body.model_fields_set:
        updates["developer_notes"] = body.developer_notes

    feedback_svc = _get_feedback_service()
    db = _get_db()
    async with db.get_session() as session:
        await _owned_game(session, game_id, account_id)
        record = await feedback_svc.update_feedback(
            session, game_id, feedback_id, status=body.status, **updates
        )
        if record is None:
            raise NotFoundError("feedback_not_found")
        return _feedback_response(record)


@router.delete("/{game_id}/feedback/{feedback_id}", status_code=204)
async def delete_feedback(
    game_id: str,
    feedback_id: str,
    account_id: str = Depends(require_dashboard_account),
):
    feedback_svc = _get_feedback_service()
    db = _get_db()
    async with db.get_session() as session:
        await _owned_game(session, game_id, account_id)
        deleted = await feedback_svc.delete_feedback(session, game_id, feedback_id)
        if not deleted:
            raise NotFoundError("feedback_not_found")
    return Response(status_code=204)


@router.post("/{game_id}/feedback/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_feedback(
    game_id: str,
    body: BulkDeleteRequest,
    account_id: str = Depends(require_dashboard_account),
):
    ids = [i for i in body.ids if isinstance(i, str)]
    feedback_svc = _get_feedback_service()
    db = _get_db()
    async with db.get_session() as session:
        await _owned_game(session, game_id, account_id)
        deleted = await feedback_svc.delete_bulk(session, game_id, ids)
        return BulkDeleteResponse(deleted=deleted)


@router.get("/{game_id}/analytics", response_model=FeedbackStats)
async def game_analytics(
    game_id: str,
    account_id: str = Depends(require_dashboard_account),
):
    feedback_svc = _get_feedback_service()
    db = _get_db()
    async with db.get_session() as session:
        await _owned_game(session, game_id, account_id)
        return await feedback_svc.get_stats(session, game_id)
