import typing as t
from datetime import datetime
from decimal import Decimal

from ninja import Schema
from pydantic import UUID4

from .models import LifecycleEvent


class LifecycleEventSchema(Schema):
    id: UUID4
    order_id: UUID4
    order_type: LifecycleEvent.OrderType
    venue_id: UUID4
    event_type: LifecycleEvent.EventType
    timestamp: datetime
    processing_time_ms: int | None = None
    subtotal: Decimal | None = None
    service_fee: Decimal | None = None
    tip_amount: Decimal | None = None
    total: Decimal | None = None
    currency: str = ""
    items: list[dict[str, t.Any]]
    verification_method: str = ""
    verified_by: str = ""
    verification_attempts: int | None = None
    is_redeemed: bool | None = None
    error: str = ""


class TimeWindowFilterSchema(Schema):
    start: datetime | None = None
    end: datetime | None = None


class VenueEventFilterSchema(TimeWindowFilterSchema):
    event_type: LifecycleEvent.EventType | None = None
