"""Feedback service: store, triage and summarise player feedback."""

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.common.models import as_utc
from feedback_engine.feedback.models import FeedbackModel
from feedback_engine.feedback.schemas import (
    OPEN_STATUSES,
    DailyCount,
    FeedbackCreate,
    FeedbackStats,
)
from feedback_engine.games.schemas import GameSettings

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
_UNSET = object()


def feature_toggle_error(settings: GameSettings | None, payload: FeedbackCreate) -> str | None:
    """Return an error code if the payload uses a feature the game disabled."""
    features = settings.features if settings else None
    if features is None:
        return None
    if payload.category and features.categories is False:
        return "categories_disabled"
    if payload.severity and features.severity is False:
        return "severity_disabled"
    if payload.metadata and payload.metadata.get("attachments") and features.attachments is False:
        return "attachments_disabled"
    return None


class FeedbackService:
    """Feedback persistence and aggregate statistics."""

    async def create_feedback(
        self, session: AsyncSession, game_id: str, payload: FeedbackCreate
    ) -> FeedbackModel:
        record = FeedbackModel(
            game_id=game_id,
            type=payload.type,
            identity_option=payload.identity_option,
            status="new",
            body=payload.body,
            category=payload.category,
            tags=payload.tags or [],
            severity=payload.severity,
            identity=(
                payload.identity.model_dump(by_alias=True, exclude_none=True)
                if payload.identity
                else None
            ),
            metadata_=payload.metadata,
        )
        session.add(record)
        await session.flush()
        return record

    async def list_feedback(
        self,
        session: AsyncSession,
        game_id: str,
        status: str | None = None,
        type: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[FeedbackModel]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        query = select(FeedbackModel).where(FeedbackModel.game_id == game_id)
        if status:
            query = query.where(FeedbackModel.status == status)
        if type:
            query = query.where(FeedbackModel.type == type)
        query = query.order_by(FeedbackModel.created_at.desc()).limit(limit).offset(max(0, offset))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_feedback(
        self, session: AsyncSession, game_id: str, feedback_id: str
    ) -> FeedbackModel | None:
        result = await session.execute(
            select(FeedbackModel).where(
                FeedbackModel.id == feedback_id,
                FeedbackModel.game_id == game_id,
            )
        )
        return result.scalar_one_or_none()

    async def update_feedback(
        self,
        session: AsyncSession,
        game_id: str,
        feedback_id: str,
        status: str | None = None,
        developer_notes=_UNSET,
    ) -> FeedbackModel | None:
        """Update triage fields. ``developer_notes=None`` clears the notes."""
        record = await self.get_feedback(session, game_id, feedback_id)
        if record is None:
            return None
        if status is not None:
            record.status = status
        if developer_notes is not _UNSET:
            record.developer_notes = developer_notes
        await session.flush()
        return record

    async def delete_feedback(
        self, session: AsyncSession, game_id: str, feedback_id: str
    ) -> bool:
        record = await self.get_feedback(session, game_id, feedback_id)
        if record is None:
            return False
        await session.delete(record)
        await session.flush()
        return True

    async def delete_bulk(
        self, session: AsyncSession, game_id: str, ids: list[str]
    ) -> int:
        if not ids:
            return 0
        result = await session.execute(
            delete(FeedbackModel)
            .where(FeedbackModel.game_id == game_id, FeedbackModel.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def get_stats(
        self, session: AsyncSession, game_id: str, today: date | None = None
    ) -> FeedbackStats:
        """Totals by status and type plus a 7-day submission histogram."""
        today = today or datetime.now(timezone.utc).date()

        status_rows = await session.execute(
            select(FeedbackModel.status, func.count(FeedbackModel.id))
            .where(FeedbackModel.game_id == game_id)
            .group_by(FeedbackModel.status)
        )
        by_status = {status: count for status, count in status_rows}

        type_rows = await session.execute(
            select(FeedbackModel.type, func.count(FeedbackModel.id))
            .where(FeedbackModel.game_id == game_id)
            .group_by(FeedbackModel.type)
        )
        by_type = {ftype: count for ftype, count in type_rows}

        first_day = today - timedelta(days=6)
        window_start = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)
        recent = await session.execute(
            select(FeedbackModel.created_at).where(
                FeedbackModel.game_id == game_id,
                FeedbackModel.created_at >= window_start,
            )
        )
        per_day: dict[date, int] = {}
        for (created_at,) in recent:
            day = as_utc(created_at).date()
            per_day[day] = per_day.get(day, 0) + 1

        total = sum(by_status.values())
        bug_count = by_type.get("bug_report", 0)
        return FeedbackStats(
            total=total,
            open_count=sum(by_status.get(s, 0) for s in OPEN_STATUSES),
            resolved_count=by_status.get("resolved", 0),
            bug_pct=round(bug_count / total * 100) if total else 0,
            by_status=by_status,
            by_type=by_type,
            last7_days=[
                DailyCount(
                    date=(first_day + timedelta(days=i)).isoformat(),
                    count=per_day.get(first_day + timedelta(days=i), 0),
                )
                for i in range(7)
            ],
        )
