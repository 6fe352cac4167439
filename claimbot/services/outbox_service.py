from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from claimbot.models import AGGREGATE_TYPES, OutboxEvent


def append_event(
    db: Session,
    *,
    aggregate_id: uuid.UUID,
    aggregate_type: str,
    event_type: str,
    payload: dict[str, Any],
) -> OutboxEvent:
    """Stage an event in the caller's transaction. The caller commits or rolls back."""
    if aggregate_type not in AGGREGATE_TYPES:
        raise ValueError(f"Unknown aggregate type: {aggregate_type}")
    if not event_type:
        raise ValueError("event_type is required")

    event = OutboxEvent(
        id=uuid.uuid4(),
        aggregate_id=aggregate_id if isinstance(aggregate_id, uuid.UUID) else uuid.UUID(str(aggregate_id)),
        aggregate_type=aggregate_type,
        event_type=event_type,
        payload=payload,
        created_at=datetime.now(timezone.utc),
    )
    db.add(event)
    db.flush()
    return event


def list_unpublished(db: Session, *, limit: int = 100) -> list[OutboxEvent]:
    return (
        db.query(OutboxEvent)
        .filter(OutboxEvent.published_at.is_(None))
        .order_by(OutboxEvent.created_at.asc())
        .limit(limit)
        .all()
    )


def mark_published(db: Session, *, event_id: uuid.UUID) -> None:
    """Set published_at once. A second call for the same event changes nothing."""
    db.query(OutboxEvent).filter(
        OutboxEvent.id == event_id,
        OutboxEvent.published_at.is_(None),
    ).update({OutboxEvent.published_at: datetime.now(timezone.utc)}, synchronize_session=False)
    db.commit()


def get_event(db: Session, *, event_id: uuid.UUID) -> OutboxEvent | None:
    return db.query(OutboxEvent).filter(OutboxEvent.id == event_id).first()
