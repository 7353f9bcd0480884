"""Tests for the beta access gate: validation, atomic consumption, minting."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from feedback_engine.beta.service import EXHAUSTED_MESSAGE, BetaAccessService
from feedback_engine.common.config import FeedbackSettings
from feedback_engine.common.database import DatabaseManager
from feedback_engine.common.exceptions import BetaAccessRequiredError
from feedback_engine.keygen.generator import generate_beta_key, key_hash


def make_settings(**overrides) -> FeedbackSettings:
    defaults = {"db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return FeedbackSettings(**defaults)


def in_days(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


@pytest.fixture
async def db(db_url):
    manager = DatabaseManager(make_settings(db_url=db_url))
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def svc(db_url):
    return BetaAccessService(make_settings(db_url=db_url))


async def mint(db, svc, max_uses=1, expires_at=None):
    async with db.get_session() as session:
        record, raw_key = await svc.create_key(
            session, max_uses, expires_at or in_days(30)
        )
    return record, raw_key


class TestCreateKey:
    async def test_only_hash_is_stored(self, db, svc):
        record, raw_key = await mint(db, svc, max_uses=3)
        assert raw_key.startswith("beta_")
        assert record.key_hash == key_hash(raw_key)
        assert record.key_prefix == raw_key[:13]
        assert record.uses_count == 0
        assert record.max_uses == 3

    async def test_max_uses_must_be_positive(self, db, svc):
        async with db.get_session() as session:
            with pytest.raises(ValueError):
                await svc.create_key(session, 0, in_days(1))

    async def test_requires_storage(self, db):
        svc = BetaAccessService(FeedbackSettings(db_url=""))
        async with db.get_session() as session:
            with pytest.raises(RuntimeError):
                await svc.create_key(session, 1, in_days(1))

    async def test_naive_expiry_treated_as_utc(self, db, svc):
        naive = in_days(1).replace(tzinfo=None)
        record, raw_key = await mint(db, svc, expires_at=naive)
        async with db.get_session() as session:
            assert await svc.validate(session, raw_key) == record.id


class TestValidate:
    async def test_valid_key(self, db, svc):
        record, raw_key = await mint(db, svc)
        async with db.get_session() as session:
            assert await svc.validate(session, raw_key) == record.id

    async def test_unknown_key(self, db, svc):
        await mint(db, svc)
        async with db.get_session() as session:
            assert await svc.validate(session, generate_beta_key()) is None

    async def test_malformed_key_never_hits_storage(self, svc):
        # No session at all: the structural filter must reject first
        assert await svc.validate(None, "beta_short") is None
        assert await svc.validate(None, "fb_" + "a" * 32) is None
        assert await svc.validate(None, None) is None

    async def test_expired_key(self, db, svc):
        _, raw_key = await mint(db, svc, expires_at=in_days(-1))
        async with db.get_session() as session:
            assert await svc.validate(session, raw_key) is None

    async def test_no_storage_means_closed(self, db, svc):
        _, raw_key = await mint(db, svc)
        closed = BetaAccessService(FeedbackSettings(db_url=""))
        async with db.get_session() as session:
            assert await closed.validate(session, raw_key) is None


class TestConsume:
    async def test_exhaustion(self, db, svc):
        record, raw_key = await mint(db, svc, max_uses=2)

        for _ in range(2):
            async with db.get_session() as session:
                key_id = await svc.validate(session, raw_key)
                assert key_id == record.id
                assert await svc.consume(session, key_id) is True

        async with db.get_session() as session:
            assert await svc.validate(session, raw_key) is None
            assert await svc.consume(session, record.id) is False

        async with db.get_session() as session:
            fresh = await svc.get_by_id(session, record.id)
            assert fresh.uses_count == 2

    async def test_unknown_id(self, db, svc):
        async with db.get_session() as session:
            assert await svc.consume(session, "no-such-key") is False

    async def test_no_storage_never_consumes(self, db, svc):
        record, _ = await mint(db, svc)
        closed = BetaAccessService(FeedbackSettings(db_url=""))
        async with db.get_session() as session:
            assert await closed.consume(session, record.id) is False

    async def test_concurrent_consume_single_use(self, db, svc):
        record, raw_key = await mint(db, svc, max_uses=1)

        async def attempt():
            async with db.get_session() as session:
                key_id = await svc.validate(session, raw_key)
                assert key_id == record.id
                return await svc.consume(session, key_id)

        results = await asyncio.gather(attempt(), attempt())
        assert sorted(results) == [False, True]

        async with db.get_session() as session:
            fresh = await svc.get_by_id(session, record.id)
            assert fresh.uses_count == 1


class TestRedeem:
    async def test_redeem_success(self, db, svc):
        record, raw_key = await mint(db, svc)
        async with db.get_session() as session:
            assert await svc.redeem(session, f"  {raw_key}  ") == record.id

    async def test_redeem_missing_key(self, db, svc):
        async with db.get_session() as session:
            with pytest.raises(BetaAccessRequiredError) as exc_info:
                await svc.redeem(session, None)
        assert exc_info.value.code == "beta_access_required"
        assert exc_info.value.status_code == 403

    async def test_redeem_exhausted_after_validate(self, db, svc, monkeypatch):
        record, raw_key = await mint(db, svc)

        async def lost_race(session, key_id):
            return False

        monkeypatch.setattr(svc, "consume", lost_race)
        async with db.get_session() as session:
            with pytest.raises(BetaAccessRequiredError) as exc_info:
                await svc.redeem(session, raw_key)
        assert exc_info.value.message == EXHAUSTED_MESSAGE

    async def test_storage_error_closes_gate(self, db, svc, monkeypatch):
        _, raw_key = await mint(db, svc)

        async def broken(session, raw):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(svc, "validate", broken)
        async with db.get_session() as session:
            with pytest.raises(BetaAccessRequiredError):
                await svc.redeem(session, raw_key)


class TestListKeys:
    async def test_list(self, db, svc):
        await mint(db, svc)
        await mint(db, svc, max_uses=5)
        async with db.get_session() as session:
            keys = await svc.list_keys(session)
        assert sorted(k.max_uses for k in keys) == [1, 5]
