"""Redis implementation of InterviewSessionStore.

Key structure:
- {prefix}:interview:{session_id} - session JSON
- {prefix}:interview:campaign:{campaign_id} - set of session ids
- {prefix}:interview:turn:{session_id} - turn lock holding the owner token
"""

from uuid import UUID

import redis.asyncio as redis

from parley.errors import DatabaseError, TurnLeaseLostError
from parley.interview.models import InterviewSession
from parley.interview.store import InterviewSessionStore
from parley.observability.logging import get_logger

logger = get_logger(__name__)

# Delete the lock only if the caller still owns it
RELEASE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
  return redis.call('DEL', KEYS[1])
end
return 0
"""

# Write the session only while the caller still owns the turn lock
FENCED_SAVE_SCRIPT = """
if redis.call('GET', KEYS[1]) ~= ARGV[1] then
  return 0
end
redis.call('SET', KEYS[2], ARGV[2])
redis.call('SADD', KEYS[3], ARGV[3])
return 1
"""


class RedisInterviewSessionStore(InterviewSessionStore):
    """Session store backed by Redis JSON strings and campaign index sets."""

    def __init__(self, client: redis.Redis, key_prefix: str = "parley") -> None:
        self._client = client
        self._prefix = key_prefix
        self._release = client.register_script(RELEASE_SCRIPT)
        self._fenced_save = client.register_script(FENCED_SAVE_SCRIPT)

    def _key(self, session_id: UUID) -> str:
        return f"{self._prefix}:interview:{session_id}"

    def _campaign_key(self, campaign_id: str) -> str:
        return f"{self._prefix}:interview:campaign:{campaign_id}"

    def _turn_key(self, session_id: UUID) -> str:
        return f"{self._prefix}:interview:turn:{session_id}"

    async def get(self, session_id: UUID) -> InterviewSession | None:
        try:
            data = await self._client.get(self._key(session_id))
        except redis.RedisError as e:
            logger.error("redis_get_error", session_id=str(session_id), error=str(e))
            raise DatabaseError("get interview session", cause=e) from e
        return InterviewSession.model_validate_json(data) if data else None

    async def save(self, session: InterviewSession, *, turn_token: str | None = None) -> None:
        if turn_token is not None:
            await self._save_fenced(session, turn_token)
            return
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(self._key(session.id), session.model_dump_json())
                pipe.sadd(self._campaign_key(session.campaign_id), str(session.id))
                await pipe.execute()
        except redis.RedisError as e:
            logger.error("redis_save_error", session_id=str(session.id), error=str(e))
            raise DatabaseError("save interview session", cause=e) from e

    async def _save_fenced(self, session: InterviewSession, turn_token: str) -> None:
        try:
            written = await self._fenced_save(
                keys=[
                    self._turn_key(session.id),
                    self._key(session.id),
                    self._campaign_key(session.campaign_id),
                ],
                args=[turn_token, session.model_dump_json(), str(session.id)],
            )
        except redis.RedisError as e:
            logger.error("redis_save_error", session_id=str(session.id), error=str(e))
            raise DatabaseError("save interview session", cause=e) from e
        if not written:
            logger.warning("turn_lease_lost", session_id=str(session.id))
            raise TurnLeaseLostError(
                f"Turn lock for session {session.id} was lost before saving",
                details={"session_id": str(session.id)},
            )

    async def list_by_campaign(
        self,
        campaign_id: str,
        *,
        completed_only: bool = False,
    ) -> list[InterviewSession]:
        try:
            ids = await self._client.smembers(self._campaign_key(campaign_id))
            if not ids:
                return []
            keys = [
                f"{self._prefix}:interview:{i.decode() if isinstance(i, bytes) else i}"
                for i in ids
            ]
            rows = await self._client.mget(keys)
        except redis.RedisError as e:
            raise DatabaseError("list interview sessions", cause=e) from e

        sessions = [InterviewSession.model_validate_json(row) for row in rows if row]
        if completed_only:
            sessions = [s for s in sessions if s.completed]
        sessions.sort(key=lambda s: s.created_at)
        return sessions

    async def acquire_turn(self, session_id: UUID, token: str, ttl_seconds: float) -> bool:
        try:
            acquired = await self._client.set(
                self._turn_key(session_id), token, nx=True, px=int(ttl_seconds * 1000)
            )
        except redis.RedisError as e:
            raise DatabaseError("acquire turn lock", cause=e) from e
        return bool(acquired)

    async def release_turn(self, session_id: UUID, token: str) -> None:
        try:
            await self._release(keys=[self._turn_key(session_id)], args=[token])
        except redis.RedisError as e:
            logger.warning("turn_lock_release_failed", session_id=str(session_id), error=str(e))
