import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Index, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from claimbot.database import Base

AGGREGATE_TYPES = ("user", "journey", "claim")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutboxEvent(Base):
    __tablename__ = "outbox_events"
    __table_args__ = (
        CheckConstraint(
            "aggregate_type IN ('user', 'journey', 'claim')",
            name="outbox_events_aggregate_check",
        ),
        Index("idx_outbox_events_created", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    aggregate_id = Column(Uuid(as_uuid=True), nullable=False)
    aggregate_type = Column(String(100), nullable=False)  # user, journey, claim
    event_type = Column(String(100), nullable=False)  # user.registered, journey.created, ...
    payload = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    published_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
