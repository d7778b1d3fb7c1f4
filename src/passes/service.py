"""Pass lifecycle: purchase, validation, redemption and expiry.

Redemption is a single conditional UPDATE keyed on the unredeemed, active and
unexpired precondition. The row count decides the winner among concurrent
callers; nothing is read first and written later.
"""

import secrets
import string
import time
import typing as t
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.models import Actor
from accounts.roles import RoleResolver, build_role_resolver
from common.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from flags.registry import FeatureFlagRegistry, get_registry
from ledger.models import LifecycleEvent
from ledger.recorder import LifecycleEventRecorder

from . import tasks
from .models import Pass, PassOffering, PassQuerySet, PassStatusChange, Venue

logger = structlog.get_logger(__name__)

_CENTS = Decimal("0.01")


@dataclass
class Availability:
    is_available: bool
    price: Decimal
    currency: str
    restrictions: dict[str, t.Any] = field(default_factory=dict)


def generate_verification_code(length: int | None = None) -> str:
    """Random numeric door code."""
    length = length or settings.PASS_VERIFICATION_CODE_LENGTH
    return "".join(secrets.choice(string.digits) for _ in range(length))


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class PassCoordinator:
    """Owns the pass state machine: active, then redeemed or expired."""

    def __init__(
        self,
        registry: FeatureFlagRegistry,
        resolver: RoleResolver,
        recorder: LifecycleEventRecorder,
    ) -> None:
        """Wire the coordinator to its collaborators."""
        self.registry = registry
        self.resolver = resolver
        self.recorder = recorder

    # --- purchase ---

    def purchase(
        self,
        actor: Actor,
        venue_id: UUID,
        pass_type: str,
        price: Decimal | None = None,
    ) -> Pass:
        """Create an active pass for an available offering and record its creation.

        ``price`` is what the payment collaborator charged; it must match the offering.

        Raises:
            NotFoundError: the venue does not exist.
            ValidationError: the pass type is not on sale or the price does not match.
        """
        started = time.perf_counter()
        offering = (
            PassOffering.objects.select_related("venue")
            .filter(venue_id=venue_id, pass_type=pass_type, is_available=True)
            .first()
        )
        if offering is None:
            if not Venue.objects.filter(pk=venue_id).exists():
                raise NotFoundError("VenueNotFound", f"Venue {venue_id} does not exist.")
            logger.warning("pass_purchase_unavailable", venue_id=str(venue_id), pass_type=pass_type)
            raise ValidationError("PassNotAvailable", f"{pass_type} passes are not available at this venue.")
        if price is not None and Decimal(price) != offering.price:
            raise ValidationError("PriceMismatch", f"Expected {offering.price}, got {price}.")

        now = timezone.now()
        with transaction.atomic():
            admission_pass = Pass.objects.create(
                venue=offering.venue,
                actor=actor,
                pass_type=pass_type,
                purchase_price=offering.price,
                currency=offering.currency,
                purchase_date=now,
                expiry_date=now + timedelta(hours=settings.PASS_VALIDITY_HOURS),
                verification_code=generate_verification_code(),
            )
            PassStatusChange.objects.create(
                admission_pass=admission_pass, status=Pass.Status.ACTIVE, timestamp=now, updated_by=actor
            )
            self._notify_venue(admission_pass, "pass_purchased")

        service_fee = (offering.price * settings.PASS_SERVICE_FEE_PERCENT / 100).quantize(_CENTS)
        self.recorder.record(
            LifecycleEvent.EventType.CREATION,
            order_id=admission_pass.id,
            order_type=LifecycleEvent.OrderType.PASS,
            venue_id=offering.venue_id,
            timestamp=now,
            processing_time_ms=_elapsed_ms(started),
            subtotal=offering.price,
            service_fee=service_fee,
            tip_amount=Decimal("0.00"),
            total=offering.price + service_fee,
            currency=offering.currency,
            items=[self._tier_snapshot(offering)],
            metadata={"actor_id": str(actor.id)},
        )
        logger.info(
            "pass_purchased",
            pass_id=str(admission_pass.id),
            venue_id=str(offering.venue_id),
            actor_id=str(actor.id),
            pass_type=pass_type,
            price=str(offering.price),
        )
        return admission_pass

    # --- reads ---

    def validate(self, pass_id: UUID, venue_id: UUID) -> Pass:
        """Return the pass if it can be used at ``venue_id`` right now.

        Raises:
            NotFoundError: unknown pass.
            ValidationError: wrong venue, or the pass is no longer active.
            ExpiredError: the validity window has passed.
        """
        admission_pass = Pass.objects.with_venue().filter(pk=pass_id).first()
        if admission_pass is None:
            raise NotFoundError("PassNotFound", f"Pass {pass_id} does not exist.")
        if str(admission_pass.venue_id) != str(venue_id):
            raise ValidationError("VenueMismatch", "This pass is not valid at this venue.")
        status = admission_pass.effective_status()
        if status == Pass.Status.EXPIRED:
            raise ExpiredError("Expired", "This pass has expired.")
        if status != Pass.Status.ACTIVE:
            raise ValidationError("PassNotActive", f"This pass is {status}.")
        return admission_pass

    def check_availability(self, venue_id: UUID, pass_type: str) -> Availability:
        """Whether a venue sells a pass type, at which price and with which restrictions."""
        offering = PassOffering.objects.filter(venue_id=venue_id, pass_type=pass_type).first()
        if offering is None:
            if not Venue.objects.filter(pk=venue_id).exists():
                raise NotFoundError("VenueNotFound", f"Venue {venue_id} does not exist.")
            raise NotFoundError("PassTypeNotFound", f"{pass_type} is not offered by this venue.")
        return Availability(
            is_available=offering.is_available,
            price=offering.price,
            currency=offering.currency,
            restrictions=dict(offering.restrictions or {}),
        )

    def list_actor_passes(self, actor_id: UUID) -> PassQuerySet:
        """The actor's currently usable passes, newest first."""
        return Pass.objects.usable().with_venue().filter(actor_id=actor_id).order_by("-purchase_date")

    def list_venue_passes(self, venue_id: UUID) -> PassQuerySet:
        """Passes currently usable at the venue, newest first."""
        return Pass.objects.usable().with_venue().filter(venue_id=venue_id).order_by("-purchase_date")

    # --- redemption ---

    def redeem(
        self,
        pass_id: UUID,
        *,
        verified_by: Actor | None = None,
        method: str = Pass.VerificationMethod.DIRECT,
    ) -> Pass:
        """Redeem the pass exactly once.

        Raises:
            ConflictError: the pass was already redeemed, possibly by a concurrent caller.
            ExpiredError: the validity window has passed.
            NotFoundError: unknown pass.
        """
        started = time.perf_counter()
        try:
            admission_pass = self._redeem_once(pass_id, verified_by=verified_by, method=method)
        except (ConflictError, ExpiredError) as e:
            self._record_failed_attempt(pass_id, verified_by, method, e, started)
            raise

        self.recorder.record(
            LifecycleEvent.EventType.VERIFICATION,
            order_id=admission_pass.id,
            order_type=LifecycleEvent.OrderType.PASS,
            venue_id=admission_pass.venue_id,
            timestamp=admission_pass.redeemed_at,
            processing_time_ms=_elapsed_ms(started),
            subtotal=admission_pass.purchase_price,
            total=admission_pass.purchase_price,
            currency=admission_pass.currency,
            items=[{"pass_type": admission_pass.pass_type}],
            verification_method=method,
            verified_by=verified_by.role if verified_by else "",
            verifier_id=verified_by.id if verified_by else None,
            verification_attempts=self.recorder.next_verification_attempt(admission_pass.id),
            is_redeemed=True,
        )
        logger.info(
            "pass_redeemed",
            pass_id=str(admission_pass.id),
            venue_id=str(admission_pass.venue_id),
            verified_by=str(verified_by.id) if verified_by else None,
            method=method,
        )
        return admission_pass

    def _redeem_once(self, pass_id: UUID, *, verified_by: Actor | None, method: str) -> Pass:
        now = timezone.now()
        with transaction.atomic():
            updated = Pass.objects.filter(
                pk=pass_id,
                is_redeemed=False,
                status=Pass.Status.ACTIVE,
                expiry_date__gt=now,
            ).update(
                is_redeemed=True,
                status=Pass.Status.REDEEMED,
                redeemed_at=now,
                verified_by=verified_by,
                verification_method=method,
                updated_at=now,
            )
            if updated == 0:
                self._raise_redeem_failure(pass_id, now)
            PassStatusChange.objects.create(
                admission_pass_id=pass_id,
                status=Pass.Status.REDEEMED,
                timestamp=now,
                updated_by=verified_by,
                note=f"Verified ({method})",
            )
            admission_pass = Pass.objects.with_venue().get(pk=pass_id)
            self._notify_venue(admission_pass, "pass_redeemed")
        return admission_pass

    @staticmethod
    def _raise_redeem_failure(pass_id: UUID, now: datetime) -> t.NoReturn:
        """Explain why the conditional update matched no row. Never used to decide the outcome."""
        current = Pass.objects.filter(pk=pass_id).first()
        if current is None:
            raise NotFoundError("PassNotFound", f"Pass {pass_id} does not exist.")
        if current.is_redeemed:
            logger.warning("pass_redeem_conflict", pass_id=str(pass_id), redeemed_at=str(current.redeemed_at))
            raise ConflictError("AlreadyRedeemed", "This pass has already been redeemed.")
        if current.is_expired(now) or current.status == Pass.Status.EXPIRED:
            raise ExpiredError("Expired", "This pass has expired.")
        raise ConflictError("PassNotActive", f"This pass is {current.status}.")

    def verify_by_actor(self, pass_id: UUID, *, actor: Actor, verification_code: str | None = None) -> Pass:
        """Redeem a pass at the door on behalf of a verifying actor.

        The actor must hold the venue's verifier role or one of its rename synonyms.
        A supplied code must match the stored one exactly. Failures leave the pass
        untouched but are still recorded as verification attempts.

        Raises:
            AuthorizationError: the actor is not a verifier for this venue.
            ValidationError: the verification code does not match.
            ConflictError, ExpiredError, NotFoundError: see ``redeem``.
        """
        started = time.perf_counter()
        admission_pass = Pass.objects.with_venue().filter(pk=pass_id).first()
        if admission_pass is None:
            raise NotFoundError("PassNotFound", f"Pass {pass_id} does not exist.")

        method = Pass.VerificationMethod.MANUAL if verification_code is None else Pass.VerificationMethod.CODE
        verifier_roles = self.resolver.table.synonyms(admission_pass.venue.verifier_role)
        if not self.resolver.has_role(actor, verifier_roles):
            error = AuthorizationError("NotVerifier", "You are not allowed to verify passes at this venue.")
            logger.warning(
                "pass_verification_forbidden",
                pass_id=str(pass_id),
                actor_id=str(actor.id),
                actor_role=actor.role,
                verifier_role=admission_pass.venue.verifier_role,
            )
            self._record_failed_attempt(pass_id, actor, method, error, started, admission_pass=admission_pass)
            raise error

        if verification_code is not None and not secrets.compare_digest(
            verification_code.encode(), admission_pass.verification_code.encode()
        ):
            error = ValidationError("InvalidVerificationCode", "Invalid verification code.")
            logger.warning("pass_verification_code_mismatch", pass_id=str(pass_id), actor_id=str(actor.id))
            self._record_failed_attempt(pass_id, actor, method, error, started, admission_pass=admission_pass)
            raise error

        return self.redeem(pass_id, verified_by=actor, method=method)

    def _record_failed_attempt(
        self,
        pass_id: UUID,
        actor: Actor | None,
        method: str,
        error: DomainError,
        started: float,
        admission_pass: Pass | None = None,
    ) -> None:
        admission_pass = admission_pass or Pass.objects.filter(pk=pass_id).first()
        if admission_pass is None:
            return
        self.recorder.record(
            LifecycleEvent.EventType.VERIFICATION,
            order_id=admission_pass.id,
            order_type=LifecycleEvent.OrderType.PASS,
            venue_id=admission_pass.venue_id,
            processing_time_ms=_elapsed_ms(started),
            verification_method=method,
            verified_by=actor.role if actor else "",
            verifier_id=actor.id if actor else None,
            verification_attempts=self.recorder.next_verification_attempt(admission_pass.id),
            is_redeemed=False,
            error=error.reason,
        )

    # --- expiry ---

    def expire_overdue(self, now: datetime | None = None) -> int:
        """Mark overdue active passes expired and record one status change per pass.

        The update re-checks the overdue condition, so a pass redeemed between the
        lookup and the update is left alone.
        """
        now = now or timezone.now()
        with transaction.atomic():
            candidates = list(Pass.objects.overdue(now).values_list("id", flat=True))
            if not candidates:
                return 0
            Pass.objects.overdue(now).filter(pk__in=candidates).update(status=Pass.Status.EXPIRED, updated_at=now)
            expired = list(
                Pass.objects.filter(pk__in=candidates, status=Pass.Status.EXPIRED, updated_at=now).values_list(
                    "id", "venue_id"
                )
            )
            PassStatusChange.objects.bulk_create(
                [
                    PassStatusChange(
                        admission_pass_id=pass_id, status=Pass.Status.EXPIRED, timestamp=now, note="Expired"
                    )
                    for pass_id, _ in expired
                ]
            )

        self.recorder.record_many(
            LifecycleEvent.EventType.STATUS_CHANGE,
            (
                {
                    "order_id": pass_id,
                    "order_type": LifecycleEvent.OrderType.PASS,
                    "venue_id": venue_id,
                    "timestamp": now,
                    "metadata": {"from": Pass.Status.ACTIVE.value, "to": Pass.Status.EXPIRED.value},
                }
                for pass_id, venue_id in expired
            ),
        )
        logger.info("passes_expired", count=len(expired))
        return len(expired)

    # --- notifications ---

    @staticmethod
    def _tier_snapshot(offering: PassOffering) -> dict[str, t.Any]:
        return {
            "pass_type": offering.pass_type,
            "price": str(offering.price),
            "currency": offering.currency,
            "restrictions": offering.restrictions or {},
        }

    @staticmethod
    def _venue_update_payload(admission_pass: Pass, event: str) -> dict[str, t.Any]:
        return {
            "event": event,
            "pass_id": str(admission_pass.id),
            "venue_id": str(admission_pass.venue_id),
            "pass_type": admission_pass.pass_type,
            "status": admission_pass.status,
            "timestamp": timezone.now().isoformat(),
        }

    def _notify_venue(self, admission_pass: Pass, event: str) -> None:
        """Enqueue a venue update once the surrounding transaction commits."""
        venue_id = str(admission_pass.venue_id)
        if not self.registry.is_enabled(settings.VENUE_REALTIME_UPDATES_FLAG, {"venue_id": venue_id}):
            logger.debug("venue_update_disabled", venue_id=venue_id, update_event=event)
            return
        payload = self._venue_update_payload(admission_pass, event)

        def _enqueue() -> None:
            try:
                tasks.notify_venue_update.delay(payload)
            except Exception:
                self.registry.record_error(settings.VENUE_REALTIME_UPDATES_FLAG)
                logger.exception("venue_update_enqueue_failed", venue_id=venue_id, update_event=event)

        transaction.on_commit(_enqueue)


def build_pass_coordinator(registry: FeatureFlagRegistry | None = None) -> PassCoordinator:
    """Coordinator wired to the given registry (or the app's)."""
    registry = registry or get_registry()
    return PassCoordinator(registry, build_role_resolver(registry), LifecycleEventRecorder())
