"""Game (tenant) service: creation, ownership lookups and API key resolution."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.common.models import utcnow
from feedback_engine.games.models import GameApiKeyModel, GameModel
from feedback_engine.games.schemas import GameSettings
from feedback_engine.keygen.generator import (
    API_KEY_PREFIX,
    display_prefix,
    generate_api_key,
    key_hash,
)


class GameService:
    """Game management operations."""

    async def create_game(
        self,
        session: AsyncSession,
        account_id: str,
        name: str,
        settings: GameSettings | None = None,
    ) -> tuple[GameModel, str]:
        """Create a game and its first API key. Returns (model, raw_api_key)."""
        game = GameModel(
            account_id=account_id,
            name=name,
            settings=(settings or GameSettings()).to_stored(),
        )
        session.add(game)
        await session.flush()
        raw_api_key = await self._issue_api_key(session, game.id)
        return game, raw_api_key

    async def _issue_api_key(self, session: AsyncSession, game_id: str) -> str:
        raw_api_key = generate_api_key()
        session.add(
            GameApiKeyModel(
                game_id=game_id,
                key_hash=key_hash(raw_api_key),
                key_prefix=display_prefix(raw_api_key, API_KEY_PREFIX),
            )
        )
        await session.flush()
        return raw_api_key

    async def rotate_api_key(self, session: AsyncSession, game_id: str) -> str:
        """Revoke every active key of a game and issue a new one."""
        await session.execute(
            update(GameApiKeyModel)
            .where(
                GameApiKeyModel.game_id == game_id,
                GameApiKeyModel.revoked_at.is_(None),
            )
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return await self._issue_api_key(session, game_id)

    async def resolve_by_raw_key(
        self, session: AsyncSession, raw_api_key: str
    ) -> GameModel | None:
        """Resolve a game from a raw API key by hashing and looking up.

        Revoked keys resolve to nothing.
        """
        if not raw_api_key:
            return None
        result = await session.execute(
            select(GameModel)
            .join(GameApiKeyModel, GameApiKeyModel.game_id == GameModel.id)
            .where(
                GameApiKeyModel.key_hash == key_hash(raw_api_key),
                GameApiKeyModel.revoked_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def list_by_account(
        self, session: AsyncSession, account_id: str
    ) -> list[GameModel]:
        result = await session.execute(
            select(GameModel)
            .where(GameModel.account_id == account_id)
            .order_by(GameModel.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_for_account(
        self, session: AsyncSession, game_id: str, account_id: str
    ) -> GameModel | None:
        """Ownership-scoped lookup; a game owned by someone else is not found."""
        result = await session.execute(
            select(GameModel).where(
                GameModel.id == game_id,
                GameModel.account_id == account_id,
            )
        )
        return result.scalar_one_or_none()

    async def update_game(
        self,
        session: AsyncSession,
        game_id: str,
        account_id: str,
        name: str | None = None,
        settings: GameSettings | None = None,
    ) -> GameModel | None:
        game = await self.get_for_account(session, game_id, account_id)
        if game is None:
            return None
        if name is not None:
            game.name = name.strip()
        if settings is not None:
            game.settings = settings.to_stored()
        await session.flush()
        return game
