import typing as t
import uuid

from django.db import models
from django.utils import timezone

from .exceptions import ImmutableEventError


class LifecycleEventQuerySet(models.QuerySet["LifecycleEvent"]):
    """Append-only queryset: rows can be inserted and read, never updated or deleted."""

    def update(self, **kwargs: t.Any) -> int:
        raise ImmutableEventError("Lifecycle events cannot be updated.")

    def delete(self) -> tuple[int, dict[str, int]]:
        raise ImmutableEventError("Lifecycle events cannot be deleted.")

    def for_venue(self, venue_id: uuid.UUID) -> t.Self:
        return self.filter(venue_id=venue_id)

    def between(self, start: t.Any = None, end: t.Any = None) -> t.Self:
        """Events with ``start <= timestamp < end``; either bound may be omitted."""
        qs = self
        if start is not None:
            qs = qs.filter(timestamp__gte=start)
        if end is not None:
            qs = qs.filter(timestamp__lt=end)
        return qs


class LifecycleEvent(models.Model):
    """Immutable audit record of a state-affecting action on an order.

    Revenue fields are filled on the creation of an order and again on its
    successful redemption. The two describe the same money: booked revenue is
    summed over ``creation`` events, redeemed revenue over successful
    ``verification`` events, and a rollup never mixes the two types. Failed
    verification attempts carry an attempt number and the error, but no revenue.
    """

    class OrderType(models.TextChoices):
        PASS = "pass", "Pass"
        DRINK = "drink", "Drink"

    class EventType(models.TextChoices):
        CREATION = "creation", "Creation"
        STATUS_CHANGE = "status_change", "Status change"
        VERIFICATION = "verification", "Verification"
        COMPLETION = "completion", "Completion"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_id = models.UUIDField()
    order_type = models.CharField(max_length=10, choices=OrderType.choices, default=OrderType.PASS)
    venue_id = models.UUIDField()
    event_type = models.CharField(max_length=20, choices=EventType.choices)
    timestamp = models.DateTimeField(default=timezone.now)
    processing_time_ms = models.PositiveIntegerField(null=True, blank=True)

    # revenue
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    service_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    total = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, blank=True)

    items = models.JSONField(default=list, blank=True, help_text="Item or tier snapshot at the time of the event")

    # verification
    verification_method = models.CharField(max_length=20, blank=True)
    verified_by = models.CharField(max_length=32, blank=True, help_text="Role label of the verifying actor")
    verifier_id = models.UUIDField(null=True, blank=True)
    verification_attempts = models.PositiveIntegerField(null=True, blank=True)
    is_redeemed = models.BooleanField(null=True, blank=True)
    error = models.CharField(max_length=255, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    objects = LifecycleEventQuerySet.as_manager()

    class Meta:
        ordering = ["timestamp"]
        indexes = [
            models.Index(fields=["venue_id", "timestamp"], name="ledger_venue_time_idx"),
            models.Index(fields=["verified_by", "timestamp"], name="ledger_verifier_time_idx"),
            models.Index(fields=["order_id", "event_type"], name="ledger_order_event_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_type} {self.order_id}: {self.event_type} at {self.timestamp:%Y-%m-%d %H:%M:%S}"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Insert only."""
        if not self._state.adding:
            raise ImmutableEventError("Lifecycle events cannot be updated.")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args: t.Any, **kwargs: t.Any) -> tuple[int, dict[str, int]]:
        raise ImmutableEventError("Lifecycle events cannot be deleted.")
