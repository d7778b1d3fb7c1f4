"""Best-effort, append-only recording of order lifecycle events.

The order itself is the source of truth: a failure to append an event is logged
and swallowed, and never rolls back the state change it describes.
"""

import typing as t
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import Sum

from .models import LifecycleEvent, LifecycleEventQuerySet

logger = structlog.get_logger(__name__)

_ERROR_MAX_LENGTH = 255


class LifecycleEventRecorder:
    """Appends lifecycle events and answers the ledger's read queries."""

    def record(self, event_type: str, **payload: t.Any) -> LifecycleEvent | None:
        """Append one event. Returns ``None`` when the write failed."""
        if payload.get("error"):
            payload["error"] = str(payload["error"])[:_ERROR_MAX_LENGTH]
        try:
            # savepoint: a failed insert must not poison the caller's transaction
            with transaction.atomic():
                event = LifecycleEvent(event_type=event_type, **payload)
                event.save()
        except Exception:
            logger.exception(
                "lifecycle_event_record_failed",
                event_type=event_type,
                order_id=str(payload.get("order_id")),
                venue_id=str(payload.get("venue_id")),
            )
            return None
        logger.info(
            "lifecycle_event_recorded",
            event_id=str(event.id),
            event_type=event_type,
            order_id=str(event.order_id),
            is_redeemed=event.is_redeemed,
            verification_attempts=event.verification_attempts,
        )
        return event

    def record_many(self, event_type: str, payloads: Iterable[dict[str, t.Any]]) -> int:
        """Append one event per payload in a single insert. Returns the number written."""
        events = [LifecycleEvent(event_type=event_type, **payload) for payload in payloads]
        if not events:
            return 0
        try:
            with transaction.atomic():
                LifecycleEvent.objects.bulk_create(events)
        except Exception:
            logger.exception("lifecycle_events_record_failed", event_type=event_type, count=len(events))
            return 0
        logger.info("lifecycle_events_recorded", event_type=event_type, count=len(events))
        return len(events)

    def next_verification_attempt(self, order_id: UUID) -> int:
        """1-based number of the next verification attempt for an order."""
        return self.by_order(order_id, LifecycleEvent.EventType.VERIFICATION).count() + 1

    # --- reads ---

    def by_venue(
        self,
        venue_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: str | None = None,
    ) -> LifecycleEventQuerySet:
        """Events of a venue in ``[start, end)``, oldest first."""
        qs = LifecycleEvent.objects.for_venue(venue_id).between(start, end)
        if event_type:
            qs = qs.filter(event_type=event_type)
        return qs.order_by("timestamp")

    def by_verifier_role(
        self,
        role: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> LifecycleEventQuerySet:
        """Verification events performed by actors holding ``role``, oldest first."""
        return LifecycleEvent.objects.filter(verified_by=role).between(start, end).order_by("timestamp")

    def by_order(self, order_id: UUID, event_type: str | None = None) -> LifecycleEventQuerySet:
        """Events of one order, optionally of a single type, oldest first."""
        qs = LifecycleEvent.objects.filter(order_id=order_id)
        if event_type:
            qs = qs.filter(event_type=event_type)
        return qs.order_by("timestamp")

    def revenue_total(
        self,
        venue_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: str = LifecycleEvent.EventType.CREATION,
    ) -> Decimal:
        """Sum of ``total`` over one event type of a venue in ``[start, end)``.

        Creation events give booked revenue, verification events redeemed revenue.
        Failed attempts carry no total and drop out of the sum.
        """
        qs = self.by_venue(venue_id, start, end, event_type).filter(total__isnull=False)
        if event_type == LifecycleEvent.EventType.VERIFICATION:
            qs = qs.filter(is_redeemed=True)
        return qs.aggregate(revenue=Sum("total"))["revenue"] or Decimal("0")
