"""Tests for the Redis synthesis job store with a mocked client."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import redis.asyncio as redis

from parley.errors import DatabaseError
from parley.providers.llm.tiers import ReportTier
from parley.synthesis import JobStatus, SynthesisJob
from parley.synthesis.stores import RedisSynthesisJobStore
from tests.factories.interview import EPOCH


def make_job(**overrides) -> SynthesisJob:
    values = {
        "campaign_id": "campaign-1",
        "tenant_id": "tenant-1",
        "tier": ReportTier.STANDARD,
        "model_id": "model-standard",
        "created_at": EPOCH,
    }
    values.update(overrides)
    return SynthesisJob(**values)


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
def client(pipe, release) -> MagicMock:
    client = MagicMock()
    client.register_script = MagicMock(return_value=release)
    client.pipeline = MagicMock(return_value=pipe)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.zrevrange = AsyncMock(return_value=[])
    client.mget = AsyncMock(return_value=[])
    return client


@pytest.fixture
def store(client) -> RedisSynthesisJobStore:
    return RedisSynthesisJobStore(client, key_prefix="test")


class TestJobs:
    @pytest.mark.asyncio
    async def test_save_indexes_by_creation_time(self, store, pipe) -> None:
        job = make_job()

        await store.save(job)

        pipe.set.assert_called_once_with(f"test:synthesis:job:{job.id}", job.model_dump_json())
        pipe.zadd.assert_called_once_with(
            "test:synthesis:campaign:campaign-1", {str(job.id): EPOCH.timestamp()}
        )

    @pytest.mark.asyncio
    async def test_get_round_trips_json(self, store, client) -> None:
        job = make_job(status=JobStatus.SUCCEEDED, overall_score=3.25)
        client.get.return_value = job.model_dump_json().encode()

        assert await store.get(job.id) == job

    @pytest.mark.asyncio
    async def test_list_newest_first_with_status_filter(self, store, client) -> None:
        newer = make_job(status=JobStatus.FAILED, created_at=EPOCH + timedelta(hours=1))
        older = make_job(status=JobStatus.SUCCEEDED)
        client.zrevrange.return_value = [str(newer.id).encode(), str(older.id).encode()]
        client.mget.return_value = [newer.model_dump_json(), older.model_dump_json()]

        everything = await store.list_for_campaign("campaign-1")
        succeeded = await store.latest("campaign-1", status=JobStatus.SUCCEEDED)

        assert [j.id for j in everything] == [newer.id, older.id]
        assert succeeded.id == older.id
        client.mget.assert_awaited_with(
            [f"test:synthesis:job:{newer.id}", f"test:synthesis:job:{older.id}"]
        )

    @pytest.mark.asyncio
    async def test_latest_of_empty_campaign(self, store, client) -> None:
        assert await store.latest("campaign-1") is None
        client.mget.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_error_becomes_database_error(self, store, pipe) -> None:
        pipe.execute.side_effect = redis.ConnectionError("refused")

        with pytest.raises(DatabaseError):
            await store.save(make_job())


class TestRunningMarker:
    @pytest.mark.asyncio
    async def test_acquire_uses_set_nx_ex(self, store, client) -> None:
        job_id = uuid4()

        assert await store.acquire_running("campaign-1", job_id, 600)

        client.set.assert_awaited_once_with(
            "test:synthesis:running:campaign-1", str(job_id), nx=True, ex=600
        )

    @pytest.mark.asyncio
    async def test_acquire_when_held(self, store, client) -> None:
        client.set.return_value = None

        assert not await store.acquire_running("campaign-1", uuid4(), 600)

    @pytest.mark.asyncio
    async def test_running_job_id(self, store, client) -> None:
        job_id = uuid4()
        client.get.return_value = str(job_id).encode()

        assert await store.running_job_id("campaign-1") == job_id

    @pytest.mark.asyncio
    async def test_no_running_job(self, store) -> None:
        assert await store.running_job_id("campaign-1") is None

    @pytest.mark.asyncio
    async def test_release_compares_owner(self, store, release) -> None:
        job_id = uuid4()

        await store.release_running("campaign-1", job_id)

        release.assert_awaited_once_with(
            keys=["test:synthesis:running:campaign-1"], args=[str(job_id)]
        )

    @pytest.mark.asyncio
    async def test_release_error_raised(self, store, release) -> None:
        release.side_effect = redis.TimeoutError("slow")

        with pytest.raises(DatabaseError):
            await store.release_running("campaign-1", uuid4())
