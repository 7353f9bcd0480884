"""Beta access gate: validate, consume and mint invitation keys.

Validation and consumption are separate calls. ``consume`` re-checks the
remaining uses inside a single conditional UPDATE, so a key validated by two
callers at once can still only be spent as many times as it allows.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.beta.models import BetaAccessKeyModel
from feedback_engine.common.config import FeedbackSettings
from feedback_engine.common.exceptions import BetaAccessRequiredError
from feedback_engine.common.models import utcnow
from feedback_engine.keygen.generator import (
    BETA_KEY_PREFIX,
    display_prefix,
    generate_beta_key,
    key_hash,
    looks_like_beta_key,
)

logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = "This beta key has no remaining uses."


class BetaAccessService:
    """Beta key operations. Without persistent storage the gate stays closed."""

    def __init__(self, settings: FeedbackSettings):
        self.settings = settings

    async def validate(self, session: AsyncSession, raw_key: str | None) -> str | None:
        """Return the key id if the key exists, is unexpired and has uses left."""
        if not looks_like_beta_key(raw_key):
            return None
        if not self.settings.storage_configured:
            return None

        result = await session.execute(
            select(BetaAccessKeyModel).where(
                BetaAccessKeyModel.key_hash == key_hash(raw_key),
                BetaAccessKeyModel.expires_at > utcnow(),
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None
        if record.uses_count >= record.max_uses:
            return None
        return record.id

    async def consume(self, session: AsyncSession, key_id: str) -> bool:
        """Spend one use. False when a concurrent caller exhausted the key first."""
        if not self.settings.storage_configured:
            return False

        result = await session.execute(
            update(BetaAccessKeyModel)
            .where(
                BetaAccessKeyModel.id == key_id,
                BetaAccessKeyModel.uses_count < BetaAccessKeyModel.max_uses,
            )
            .values(uses_count=BetaAccessKeyModel.uses_count + 1)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def redeem(self, session: AsyncSession, raw_key: str | None) -> str:
        """Validate then consume, raising BetaAccessRequiredError on any failure.

        Storage errors close the gate rather than letting the caller through.
        """
        try:
            key_id = await self.validate(session, (raw_key or "").strip())
            if key_id is None:
                raise BetaAccessRequiredError()
            if not await self.consume(session, key_id):
                raise BetaAccessRequiredError(EXHAUSTED_MESSAGE)
        except SQLAlchemyError:
            logger.exception("Beta key check failed; treating key as invalid")
            raise BetaAccessRequiredError()
        return key_id

    async def create_key(
        self,
        session: AsyncSession,
        max_uses: int,
        expires_at: datetime,
    ) -> tuple[BetaAccessKeyModel, str]:
        """Mint a key. Returns (model, raw_key); the raw key is never stored."""
        if not self.settings.storage_configured:
            raise RuntimeError("FEEDBACK_DB_URL is required to create beta keys")
        if max_uses < 1:
            raise ValueError("max_uses must be at least 1")
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        raw_key = generate_beta_key()
        record = BetaAccessKeyModel(
            key_hash=key_hash(raw_key),
            key_prefix=display_prefix(raw_key, BETA_KEY_PREFIX),
            max_uses=max_uses,
            uses_count=0,
            expires_at=expires_at.astimezone(timezone.utc),
        )
        session.add(record)
        await session.flush()
        return record, raw_key

    async def get_by_id(
        self, session: AsyncSession, key_id: str
    ) -> BetaAccessKeyModel | None:
        return await session.get(BetaAccessKeyModel, key_id)

    async def list_keys(self, session: AsyncSession) -> list[BetaAccessKeyModel]:
        result = await session.execute(
            select(BetaAccessKeyModel).order_by(BetaAccessKeyModel.created_at.desc())
        )
        return list(result.scalars().all())
