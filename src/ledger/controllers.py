from uuid import UUID

from ninja import Query
from ninja_extra import ControllerBase, api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_jwt.authentication import JWTAuth

from accounts.permissions import HasRole

from . import schema
from .models import LifecycleEvent, LifecycleEventQuerySet
from .recorder import LifecycleEventRecorder


@api_controller("/ledger", auth=JWTAuth(), permissions=[HasRole("owner", "admin")], tags=["Ledger"])
class LedgerController(ControllerBase):
    """Read access to the lifecycle event ledger for analytics and audit."""

    recorder = LifecycleEventRecorder()

    @route.get(
        "/venues/{venue_id}/events",
        url_name="list_venue_events",
        response=PaginatedResponseSchema[schema.LifecycleEventSchema],
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    def venue_events(
        self,
        venue_id: UUID,
        params: schema.VenueEventFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> LifecycleEventQuerySet:
        """List a venue's lifecycle events in a time window, oldest first.

        ``start`` is inclusive, ``end`` exclusive. Optionally filter by ``event_type``.
        """
        return self.recorder.by_venue(venue_id, params.start, params.end, params.event_type)

    @route.get(
        "/orders/{order_id}/events",
        url_name="list_order_events",
        response=list[schema.LifecycleEventSchema],
    )
    def order_events(
        self, order_id: UUID, event_type: LifecycleEvent.EventType | None = None
    ) -> LifecycleEventQuerySet:
        """List the lifecycle events of one order, optionally of a single type."""
        return self.recorder.by_order(order_id, event_type)

    @route.get(
        "/verifiers/{role}/events",
        url_name="list_verifier_events",
        response=PaginatedResponseSchema[schema.LifecycleEventSchema],
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    def verifier_events(
        self,
        role: str,
        params: schema.TimeWindowFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> LifecycleEventQuerySet:
        """List verification events performed by actors whose primary role was ``role``."""
        return self.recorder.by_verifier_role(role, params.start, params.end)
