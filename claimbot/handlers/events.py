import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from claimbot.services.state_machine import HandlerContext, OutboxEventDraft


def as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _trace(ctx: HandlerContext) -> dict[str, str]:
    return {
        "correlation_id": ctx.external.correlation_id,
        "causation_id": ctx.external.message_sid,
    }


def user_event(ctx: HandlerContext, event_type: str, user, **fields: Any) -> OutboxEventDraft:
    return OutboxEventDraft(
        aggregate_id=user.id,
        aggregate_type="user",
        event_type=event_type,
        payload={
            "user_id": str(user.id),
            "phone_number": user.phone_number,
            **fields,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **_trace(ctx),
        },
    )


def journey_event(ctx: HandlerContext, event_type: str, journey_id: uuid.UUID, **fields: Any) -> OutboxEventDraft:
    return OutboxEventDraft(
        aggregate_id=journey_id,
        aggregate_type="journey",
        event_type=event_type,
        payload={
            "journey_id": str(journey_id),
            **fields,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **_trace(ctx),
        },
    )
