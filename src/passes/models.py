import typing as t
from datetime import datetime

from django.conf import settings
from django.db import models
from django.utils import timezone

from common.models import TimeStampedModel


class Venue(TimeStampedModel):
    """Read model of a venue. Venue management happens elsewhere."""

    name = models.CharField(max_length=255)
    verifier_role = models.CharField(
        max_length=32,
        default=settings.DEFAULT_VERIFIER_ROLE,
        help_text="Role allowed to verify passes at the door. Role migrations apply.",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class PassOffering(TimeStampedModel):
    """A pass type a venue sells, e.g. cover, line skip or vip."""

    venue = models.ForeignKey(Venue, on_delete=models.CASCADE, related_name="offerings")
    pass_type = models.CharField(max_length=32)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    is_available = models.BooleanField(default=True)
    restrictions = models.JSONField(default=dict, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["venue", "pass_type"], name="unique_pass_type_per_venue"),
        ]

    def __str__(self) -> str:
        return f"{self.venue} - {self.pass_type}"


class PassQuerySet(models.QuerySet["Pass"]):
    def usable(self, now: datetime | None = None) -> t.Self:
        """Active, unredeemed and inside the validity window."""
        return self.filter(
            status=Pass.Status.ACTIVE,
            is_redeemed=False,
            expiry_date__gt=now or timezone.now(),
        )

    def overdue(self, now: datetime | None = None) -> t.Self:
        """Still marked active but past their expiry date."""
        return self.filter(
            status=Pass.Status.ACTIVE,
            is_redeemed=False,
            expiry_date__lte=now or timezone.now(),
        )

    def with_venue(self) -> t.Self:
        return self.select_related("venue")


class PassManager(models.Manager["Pass"]):
    def get_queryset(self) -> PassQuerySet:
        """Get base queryset."""
        return PassQuerySet(self.model, using=self._db)

    def usable(self, now: datetime | None = None) -> PassQuerySet:
        return self.get_queryset().usable(now)

    def overdue(self, now: datetime | None = None) -> PassQuerySet:
        return self.get_queryset().overdue(now)

    def with_venue(self) -> PassQuerySet:
        return self.get_queryset().with_venue()


class Pass(TimeStampedModel):
    """A purchased, time-bounded admission pass.

    ``status`` only moves forward (active to redeemed or expired) and ``is_redeemed``
    flips once. Both are written by a single conditional update, never by ``save()``.
    """

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        REDEEMED = "redeemed", "Redeemed"
        EXPIRED = "expired", "Expired"

    class VerificationMethod(models.TextChoices):
        DIRECT = "direct", "Direct"
        MANUAL = "manual", "Manual"
        CODE = "code", "Verification code"

    venue = models.ForeignKey(Venue, on_delete=models.PROTECT, related_name="passes")
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="passes")
    pass_type = models.CharField(max_length=32)
    purchase_price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    purchase_date = models.DateTimeField(default=timezone.now)
    expiry_date = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)

    is_redeemed = models.BooleanField(default=False)
    redeemed_at = models.DateTimeField(null=True, blank=True, editable=False)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verified_passes",
        editable=False,
    )
    verification_method = models.CharField(max_length=20, choices=VerificationMethod.choices, blank=True)
    verification_code = models.CharField(max_length=32, blank=True)

    objects = PassManager()

    class Meta:
        ordering = ["-purchase_date"]
        indexes = [
            models.Index(fields=["actor", "status"], name="pass_actor_status_idx"),
            models.Index(fields=["venue", "status"], name="pass_venue_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.pass_type} pass {self.id} ({self.status})"

    def effective_status(self, now: datetime | None = None) -> str:
        """Status as of ``now``: an active pass past its expiry date reads as expired.

        A redemption that was written before expiry always wins.
        """
        if self.status == self.Status.ACTIVE and not self.is_redeemed and self.expiry_date <= (now or timezone.now()):
            return self.Status.EXPIRED
        return self.status

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.effective_status(now) == self.Status.EXPIRED


class PassStatusChange(models.Model):
    """Ordered status history of a pass."""

    admission_pass = models.ForeignKey(Pass, on_delete=models.CASCADE, related_name="status_history")
    status = models.CharField(max_length=20, choices=Pass.Status.choices)
    timestamp = models.DateTimeField(default=timezone.now)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    note = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["timestamp", "id"]

    def __str__(self) -> str:
        return f"{self.admission_pass_id}: {self.status} at {self.timestamp:%Y-%m-%d %H:%M}"
