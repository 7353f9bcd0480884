"""Tests for game service: creation, key resolution, rotation and ownership."""

import pytest
from sqlalchemy import select

from feedback_engine.common.config import FeedbackSettings
from feedback_engine.common.database import DatabaseManager
from feedback_engine.games.models import GameApiKeyModel
from feedback_engine.games.schemas import FeatureToggles, GameSettings, RateLimitOverride
from feedback_engine.games.service import GameService
from feedback_engine.keygen.generator import key_hash


def make_settings(**overrides) -> FeedbackSettings:
    defaults = {"db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return FeedbackSettings(**defaults)


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def svc():
    return GameService()


class TestGameCreate:
    async def test_create_game(self, db, svc):
        async with db.get_session() as session:
            game, raw_key = await svc.create_game(session, "acct-1", "Obby Run")
            assert game.id is not None
            assert game.name == "Obby Run"
            assert game.account_id == "acct-1"
            assert raw_key.startswith("fb_")

    async def test_only_hash_is_stored(self, db, svc):
        async with db.get_session() as session:
            game, raw_key = await svc.create_game(session, "acct-1", "G")

        async with db.get_session() as session:
            result = await session.execute(
                select(GameApiKeyModel).where(GameApiKeyModel.game_id == game.id)
            )
            record = result.scalar_one()
            assert record.key_hash == key_hash(raw_key)
            assert record.key_hash != raw_key
            assert raw_key.startswith(record.key_prefix)
            assert len(record.key_prefix) < len(raw_key)

    async def test_settings_stored_camel_case(self, db, svc):
        settings = GameSettings(rate_limit=RateLimitOverride(window_ms=1000, max=3))
        async with db.get_session() as session:
            game, _ = await svc.create_game(session, "acct-1", "G", settings=settings)
            assert game.settings == {"rateLimit": {"windowMs": 1000, "max": 3}}


class TestKeyResolution:
    async def test_resolves_own_game(self, db, svc):
        async with db.get_session() as session:
            game, raw_key = await svc.create_game(session, "acct-1", "G")

        async with db.get_session() as session:
            resolved = await svc.resolve_by_raw_key(session, raw_key)
            assert resolved is not None
            assert resolved.id == game.id

    async def test_unknown_key(self, db, svc):
        async with db.get_session() as session:
            await svc.create_game(session, "acct-1", "G")
            assert await svc.resolve_by_raw_key(session, "fb_" + "0" * 32) is None

    async def test_empty_key(self, db, svc):
        async with db.get_session() as session:
            assert await svc.resolve_by_raw_key(session, "") is None

    async def test_hash_is_not_a_credential(self, db, svc):
        async with db.get_session() as session:
            _, raw_key = await svc.create_game(session, "acct-1", "G")
            assert await svc.resolve_by_raw_key(session, key_hash(raw_key)) is None


class TestRotation:
    async def test_rotate_revokes_old_key(self, db, svc):
        async with db.get_session() as session:
            game, old_key = await svc.create_game(session, "acct-1", "G")

        async with db.get_session() as session:
            new_key = await svc.rotate_api_key(session, game.id)
            assert new_key != old_key

        async with db.get_session() as session:
            assert await svc.resolve_by_raw_key(session, old_key) is None
            resolved = await svc.resolve_by_raw_key(session, new_key)
            assert resolved.id == game.id

    async def test_rotate_twice(self, db, svc):
        async with db.get_session() as session:
            game, _ = await svc.create_game(session, "acct-1", "G")
            second = await svc.rotate_api_key(session, game.id)
            third = await svc.rotate_api_key(session, game.id)

        async with db.get_session() as session:
            assert await svc.resolve_by_raw_key(session, second) is None
            assert (await svc.resolve_by_raw_key(session, third)).id == game.id


class TestOwnership:
    async def test_list_scoped_to_account(self, db, svc):
        async with db.get_session() as session:
            await svc.create_game(session, "acct-1", "Mine")
            await svc.create_game(session, "acct-2", "Theirs")

        async with db.get_session() as session:
            games = await svc.list_by_account(session, "acct-1")
            assert [g.name for g in games] == ["Mine"]

    async def test_other_account_cannot_see_game(self, db, svc):
        async with db.get_session() as session:
            game, _ = await svc.create_game(session, "acct-1", "G")
            assert await svc.get_for_account(session, game.id, "acct-2") is None
            assert await svc.get_for_account(session, game.id, "acct-1") is not None

    async def test_update_name_and_settings(self, db, svc):
        async with db.get_session() as session:
            game, _ = await svc.create_game(session, "acct-1", "Old")

        settings = GameSettings(features=FeatureToggles(severity=False))
        async with db.get_session() as session:
            updated = await svc.update_game(
                session, game.id, "acct-1", name="  New  ", settings=settings,
            )
            assert updated.name == "New"
            assert updated.settings == {"features": {"severity": False}}

    async def test_update_foreign_game(self, db, svc):
        async with db.get_session() as session:
            game, _ = await svc.create_game(session, "acct-1", "G")
            assert await svc.update_game(session, game.id, "acct-2", name="X") is None
