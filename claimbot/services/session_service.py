import json
from dataclasses import dataclass, field
from typing import Any

from redis.exceptions import RedisError

from claimbot.logging_config import get_logger
from claimbot.services.errors import StoreUnavailableError
from claimbot.services.state_machine import INITIAL_STATE, ConversationState, parse_state

logger = get_logger("session")

DEFAULT_TTL_SECONDS = 86400


@dataclass
class ConversationSession:
    state: ConversationState = INITIAL_STATE
    data: dict[str, Any] = field(default_factory=dict)


def session_key(sender: str) -> str:
    return f"session:{sender}"


class SessionStore:
    def __init__(self, redis_client, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    async def load(self, sender: str) -> ConversationSession:
        """Return the stored session, or a fresh START session when none is readable."""
        try:
            raw = await self._redis.get(session_key(sender))
        except RedisError as exc:
            logger.error("Session store unavailable", extra={"context": {"error": str(exc)}})
            raise StoreUnavailableError("session") from exc

        if raw is None:
            return ConversationSession()

        try:
            record = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable session record", extra={"context": {"sender": sender}})
            return ConversationSession()

        state = parse_state(record.get("state")) if isinstance(record, dict) else None
        if state is None:
            logger.warning(
                "Discarding session with unknown state",
                extra={"context": {"sender": sender, "state": str(record)[:100]}},
            )
            return ConversationSession()

        data = record.get("data")
        return ConversationSession(state=state, data=data if isinstance(data, dict) else {})

    async def save(self, sender: str, state: ConversationState, data: dict[str, Any]) -> None:
        record = json.dumps({"state": state.value, "data": data or {}}, ensure_ascii=False, default=str)
        try:
            await self._redis.setex(session_key(sender), self._ttl_seconds, record)
        except RedisError as exc:
            raise StoreUnavailableError("session") from exc

    async def delete(self, sender: str) -> None:
        try:
            await self._redis.delete(session_key(sender))
        except RedisError as exc:
            raise StoreUnavailableError("session") from exc
