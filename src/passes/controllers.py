from uuid import UUID

from django.db.models import QuerySet
from ninja_extra import api_controller, route, status
from ninja_jwt.authentication import JWTAuth

from accounts.permissions import HasRole
from common.controllers import ActorAwareController
from common.exceptions import AuthorizationError, NotFoundError
from common.schema import ErrorResponse

from . import schema
from .models import Pass
from .service import Availability, build_pass_coordinator

VENUE_STAFF_ROLES = ("owner", "admin", "staff", "bartender")


@api_controller("/passes", auth=JWTAuth(), tags=["Passes"])
class PassController(ActorAwareController):
    """Purchase, inspect and redeem admission passes."""

    @route.post(
        "/",
        url_name="purchase_pass",
        response={status.HTTP_201_CREATED: schema.OwnedPassSchema, 400: ErrorResponse, 404: ErrorResponse},
    )
    def purchase(self, payload: schema.PassPurchaseSchema) -> tuple[int, Pass]:
        """Buy a pass for the authenticated actor.

        Payment is captured by the payment provider beforehand; ``price`` is the amount it
        charged and must match the venue's current offering. The pass is valid for a fixed
        window from now and carries a door verification code.
        """
        admission_pass = build_pass_coordinator().purchase(
            self.actor(), payload.venue_id, payload.pass_type, payload.price
        )
        return status.HTTP_201_CREATED, Pass.objects.with_venue().get(pk=admission_pass.pk)

    @route.get("/", url_name="list_my_passes", response=list[schema.OwnedPassSchema])
    def list_mine(self) -> QuerySet[Pass]:
        """List the authenticated actor's currently usable passes, newest first."""
        return build_pass_coordinator().list_actor_passes(self.actor().id)

    @route.get(
        "/{pass_id}/validate",
        url_name="validate_pass",
        response={200: schema.PassSchema, 400: ErrorResponse, 404: ErrorResponse, 410: ErrorResponse},
    )
    def validate(self, pass_id: UUID, venue_id: UUID) -> Pass:
        """Check that a pass is active, unexpired and valid at the given venue. Changes nothing."""
        return build_pass_coordinator().validate(pass_id, venue_id)

    @route.post(
        "/{pass_id}/redeem",
        url_name="redeem_pass",
        response={
            200: schema.PassSchema,
            403: ErrorResponse,
            404: ErrorResponse,
            409: ErrorResponse,
            410: ErrorResponse,
        },
    )
    def redeem(self, pass_id: UUID) -> Pass:
        """Redeem one's own pass without a verifier, e.g. for client-side verification.

        A pass can be redeemed exactly once; a second attempt returns 409.
        """
        owner_id = Pass.objects.filter(pk=pass_id).values_list("actor_id", flat=True).first()
        if owner_id is None:
            raise NotFoundError("PassNotFound", f"Pass {pass_id} does not exist.")
        if owner_id != self.actor().id:
            raise AuthorizationError("NotPassHolder", "Only the pass holder can redeem this pass directly.")
        return build_pass_coordinator().redeem(pass_id)

    @route.post(
        "/{pass_id}/verify",
        url_name="verify_pass",
        response={
            200: schema.PassSchema,
            400: ErrorResponse,
            403: ErrorResponse,
            404: ErrorResponse,
            409: ErrorResponse,
            410: ErrorResponse,
        },
    )
    def verify(self, pass_id: UUID, payload: schema.PassVerifySchema) -> Pass:
        """Redeem a pass at the door as the venue's verifier.

        Requires the venue's verifier role. During a role rename both the legacy and the
        new label are accepted. A supplied verification code must match exactly.
        """
        return build_pass_coordinator().verify_by_actor(
            pass_id, actor=self.actor(), verification_code=payload.verification_code
        )


@api_controller("/venues", auth=JWTAuth(), tags=["Venues"])
class VenuePassController(ActorAwareController):
    """Venue-side read models for passes."""

    @route.get(
        "/{venue_id}/availability",
        url_name="check_pass_availability",
        response={200: schema.AvailabilitySchema, 404: ErrorResponse},
    )
    def availability(self, venue_id: UUID, pass_type: str) -> Availability:
        """Whether the venue sells a pass type, at which price and with which restrictions."""
        return build_pass_coordinator().check_availability(venue_id, pass_type)

    @route.get(
        "/{venue_id}/passes",
        url_name="list_venue_passes",
        response=list[schema.PassSchema],
        permissions=[HasRole(*VENUE_STAFF_ROLES)],
    )
    def list_passes(self, venue_id: UUID) -> QuerySet[Pass]:
        """List passes currently usable at the venue, newest first."""
        return build_pass_coordinator().list_venue_passes(venue_id)
