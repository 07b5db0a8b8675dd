"""Outbox relay task."""

import structlog
from celery import shared_task
from django.db import transaction

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = OUTBOX_BATCH_SIZE) -> dict:
    """Dispatch pending outbox events to the in-memory bus.

    Each event is handled in its own transaction; a handler failure marks
    that row ``FAILED`` and the batch continues.
    """
    published = failed = 0
    pending = list(
        OutboxEvent.objects.filter(status=EventStatus.PENDING).order_by("created_at")[
            :batch_size
        ]
    )
    for outbox_event in pending:
        log = logger.bind(
            outbox_event_id=str(outbox_event.id),
            event_type=outbox_event.event_type,
            aggregate_id=outbox_event.aggregate_id,
        )
        try:
            with transaction.atomic():
                event = DomainEvent.from_payload(
                    outbox_event.event_type, outbox_event.payload
                )
                event_bus.publish(event)
                outbox_event.mark_as_published()
        except Exception as exc:
            log.exception("outbox.publish_failed")
            outbox_event.mark_as_failed(f"{type(exc).__name__}: {exc}")
            failed += 1
        else:
            published += 1

    logger.info("outbox.batch_processed", published=published, failed=failed)
    return {"published": published, "failed": failed}
