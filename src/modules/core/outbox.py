"""Transactional outbox: store aggregate events, relay them to the bus.

``store_events`` must run inside the same ``transaction.atomic()`` block as
the business write so that events exist if and only if the write commits.
``relay_pending`` is called from the ``core.publish_outbox_events`` Celery
task and delivers stored rows to the in-process event bus.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import Q

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 100
MAX_DELIVERY_ATTEMPTS = 5


def store_events(events: Iterable[DomainEvent], topic: str) -> List[OutboxEvent]:
    rows = [
        OutboxEvent(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event(event),
            topic=topic,
        )
        for event in events
    ]
    if rows:
        OutboxEvent.objects.bulk_create(rows)
    return rows


def store_aggregate_events(entity: Any, topic: str) -> int:
    """Move the domain events collected on *entity* into the outbox."""
    events = entity.domain_events if hasattr(entity, "domain_events") else []
    store_events(events, topic)
    if hasattr(entity, "clear_domain_events"):
        entity.clear_domain_events()
    return len(events)


def serialize_event(event: DomainEvent) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def deserialize_event(row: OutboxEvent) -> DomainEvent:
    """Rebuild the concrete ``DomainEvent`` stored in *row*."""
    event_class = DomainEvent.from_name(row.event_type)
    payload = row.payload
    return event_class(
        aggregate_id=UUID(payload["aggregate_id"]),
        data=payload.get("data", {}),
        event_id=UUID(payload["event_id"]),
        occurred_on=datetime.fromisoformat(payload["occurred_on"]),
    )


def relay_pending(
    batch_size: int = DEFAULT_BATCH_SIZE, bus: Optional[Any] = None
) -> Dict[str, int]:
    """Deliver up to *batch_size* undelivered rows, oldest first.

    Each row is handled in its own transaction and locked with
    ``skip_locked`` so concurrent relays never deliver the same row twice.
    """
    bus = bus or event_bus
    published = failed = 0

    candidate_ids = list(
        OutboxEvent.objects.filter(
            Q(status=EventStatus.PENDING)
            | Q(status=EventStatus.FAILED, retry_count__lt=MAX_DELIVERY_ATTEMPTS)
        )
        .order_by("created_at", "id")
        .values_list("id", flat=True)[:batch_size]
    )

    for event_id in candidate_ids:
        with transaction.atomic():
            row = (
                OutboxEvent.objects.select_for_update(skip_locked=True)
                .filter(id=event_id)
                .exclude(status=EventStatus.PUBLISHED)
                .first()
            )
            if row is None:
                continue
            log = logger.bind(
                outbox_id=str(row.id),
                event_type=row.event_type,
                aggregate_id=row.aggregate_id,
            )
            try:
                bus.publish(deserialize_event(row))
            except Exception as exc:  # noqa: BLE001 - recorded on the row for retry
                row.mark_as_failed(str(exc))
                log.warning("outbox.delivery_failed", error=str(exc))
                failed += 1
            else:
                row.mark_as_published()
                log.info("outbox.published")
                published += 1

    return {"published": published, "failed": failed}


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
