from typing import Optional

from redis.exceptions import RedisError

from claimbot.logging_config import get_logger
from claimbot.services.errors import StoreUnavailableError

logger = get_logger("idempotency")

IN_FLIGHT_MARKER = "processing"
DEFAULT_TTL_SECONDS = 86400


def idempotency_key(message_id: str) -> str:
    return f"idempotent:{message_id}"


def _require_message_id(message_id: str) -> str:
    if not message_id or not message_id.strip():
        raise ValueError("message_id must be a non-empty string")
    return message_id.strip()


class IdempotencyGuard:
    """
    Suppresses redelivered transport messages.

    A message id is claimed with one atomic SET NX before any business logic
    runs. Once the pipeline completes, the claim is overwritten with the
    rendered response so a redelivery is answered with the same bytes.
    Store errors fail closed.
    """

    def __init__(self, redis_client, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    async def claim(self, message_id: str) -> bool:
        key = idempotency_key(_require_message_id(message_id))
        try:
            was_set = await self._redis.set(key, IN_FLIGHT_MARKER, ex=self._ttl_seconds, nx=True)
        except RedisError as exc:
            logger.error("Idempotency store unavailable", extra={"context": {"error": str(exc)}})
            raise StoreUnavailableError("idempotency") from exc
        return bool(was_set)

    async def has_been_processed(self, message_id: str) -> bool:
        key = idempotency_key(_require_message_id(message_id))
        try:
            return await self._redis.get(key) is not None
        except RedisError as exc:
            raise StoreUnavailableError("idempotency") from exc

    async def cached_response(self, message_id: str) -> Optional[str]:
        """Stored response envelope, or None while the message is still in flight."""
        key = idempotency_key(_require_message_id(message_id))
        try:
            value = await self._redis.get(key)
        except RedisError as exc:
            raise StoreUnavailableError("idempotency") from exc
        if value is None or value == IN_FLIGHT_MARKER:
            return None
        return value

    async def mark_processed(self, message_id: str, response: str) -> None:
        key = idempotency_key(_require_message_id(message_id))
        try:
            await self._redis.set(key, response, ex=self._ttl_seconds)
        except RedisError as exc:
            raise StoreUnavailableError("idempotency") from exc

    async def release(self, message_id: str) -> None:
        key = idempotency_key(_require_message_id(message_id))
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            # The claim expires with its TTL; a retry inside that window is treated as a duplicate.
            logger.warning(
                "Failed to release idempotency claim",
                extra={"context": {"message_sid": message_id, "error": str(exc)}},
            )
