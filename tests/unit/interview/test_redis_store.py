"""Tests for the Redis interview session store with a mocked client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from parley.errors import DatabaseError, TurnLeaseLostError
from parley.interview.stores import RedisInterviewSessionStore
from tests.factories import SessionFactory


@pytest.fixture
def pipe() -> MagicMock:
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    pipe.execute = AsyncMock(return_value=[True, 1])
    return pipe


@pytest.fixture
def release() -> AsyncMock:
    return AsyncMock(return_value=1)


@pytest.fixture
def fenced_save() -> AsyncMock:
    return AsyncMock(return_value=1)


@pytest.fixture
def client(pipe: MagicMock, release: AsyncMock, fenced_save: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.register_script = MagicMock(
        side_effect=lambda script: fenced_save if "SADD" in script else release
    )
    client.pipeline = MagicMock(return_value=pipe)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.smembers = AsyncMock(return_value=set())
    client.mget = AsyncMock(return_value=[])
    return client


@pytest.fixture
def store(client: MagicMock) -> RedisInterviewSessionStore:
    return RedisInterviewSessionStore(client, key_prefix="test")


class TestSessions:
    @pytest.mark.asyncio
    async def test_save_writes_json_and_campaign_index(self, store, pipe) -> None:
        session = SessionFactory.create()

        await store.save(session)

        pipe.set.assert_called_once_with(f"test:interview:{session.id}", session.model_dump_json())
        pipe.sadd.assert_called_once_with("test:interview:campaign:campaign-1", str(session.id))
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_decodes_session(self, store, client) -> None:
        session = SessionFactory.completed()
        client.get.return_value = session.model_dump_json().encode()

        loaded = await store.get(session.id)

        assert loaded == session

    @pytest.mark.asyncio
    async def test_get_missing(self, store) -> None:
        assert await store.get(SessionFactory.create().id) is None

    @pytest.mark.asyncio
    async def test_list_filters_and_orders(self, store, client) -> None:
        done = SessionFactory.completed()
        pending = SessionFactory.create()
        client.smembers.return_value = {str(done.id).encode(), str(pending.id).encode()}
        client.mget.return_value = [pending.model_dump_json(), None, done.model_dump_json()]

        everything = await store.list_by_campaign("campaign-1")
        completed = await store.list_by_campaign("campaign-1", completed_only=True)

        assert {s.id for s in everything} == {done.id, pending.id}
        assert [s.id for s in completed] == [done.id]

    @pytest.mark.asyncio
    async def test_list_empty_campaign_skips_mget(self, store, client) -> None:
        assert await store.list_by_campaign("campaign-x") == []
        client.mget.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_error_becomes_database_error(self, store, client) -> None:
        client.get.side_effect = redis.ConnectionError("refused")

        with pytest.raises(DatabaseError) as exc_info:
            await store.get(SessionFactory.create().id)

        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_save_error_becomes_database_error(self, store, pipe) -> None:
        pipe.execute.side_effect = redis.TimeoutError("slow")

        with pytest.raises(DatabaseError):
            await store.save(SessionFactory.create())


class TestTurnLock:
    @pytest.mark.asyncio
    async def test_acquire_uses_set_nx_px(self, store, client) -> None:
        session = SessionFactory.create()

        assert await store.acquire_turn(session.id, "token-1", 1.5)

        client.set.assert_awaited_once_with(
            f"test:interview:turn:{session.id}", "token-1", nx=True, px=1500
        )

    @pytest.mark.asyncio
    async def test_acquire_held_lock(self, store, client) -> None:
        client.set.return_value = None

        assert not await store.acquire_turn(SessionFactory.create().id, "token-2", 10)

    @pytest.mark.asyncio
    async def test_release_compares_token(self, store, release) -> None:
        session = SessionFactory.create()

        await store.release_turn(session.id, "token-1")

        release.assert_awaited_once_with(
            keys=[f"test:interview:turn:{session.id}"], args=["token-1"]
        )

    @pytest.mark.asyncio
    async def test_release_error_is_logged_not_raised(self, store, release) -> None:
        release.side_effect = redis.ConnectionError("gone")

        await store.release_turn(SessionFactory.create().id, "token-1")


class TestFencedSave:
    @pytest.mark.asyncio
    async def test_save_with_token_checks_lock_in_script(self, store, fenced_save, pipe) -> None:
        session = SessionFactory.create()

        await store.save(session, turn_token="token-1")

        fenced_save.assert_awaited_once_with(
            keys=[
                f"test:interview:turn:{session.id}",
                f"test:interview:{session.id}",
                "test:interview:campaign:campaign-1",
            ],
            args=["token-1", session.model_dump_json(), str(session.id)],
        )
        pipe.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_lock_raises(self, store, fenced_save) -> None:
        fenced_save.return_value = 0

        with pytest.raises(TurnLeaseLostError) as exc_info:
            await store.save(SessionFactory.create(), turn_token="expired")

        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_script_error_becomes_database_error(self, store, fenced_save) -> None:
        fenced_save.side_effect = redis.ConnectionError("refused")

        with pytest.raises(DatabaseError):
            await store.save(SessionFactory.create(), turn_token="token-1")
