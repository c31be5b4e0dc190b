"""Asynchronous tasks for the core module."""

import structlog
from celery import shared_task

from modules.core.outbox import DEFAULT_BATCH_SIZE, relay_pending

logger = structlog.get_logger(__name__)


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = DEFAULT_BATCH_SIZE):
    """Drain pending outbox rows to the in-process event bus."""
    result = relay_pending(batch_size=batch_size)
    logger.info("outbox.relay_completed", **result)
    return result
