from claimbot.models.outbox_event import AGGREGATE_TYPES, OutboxEvent
from claimbot.models.user import User

__all__ = [
    "AGGREGATE_TYPES",
    "OutboxEvent",
    "User",
]
