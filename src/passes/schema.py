import typing as t
from datetime import datetime
from decimal import Decimal

from ninja import Schema
from pydantic import UUID4, Field

from common.schema import OneToSixtyFourString

from .models import Pass


class PassSchema(Schema):
    id: UUID4
    venue_id: UUID4
    venue_name: str
    pass_type: str
    purchase_price: Decimal
    currency: str
    purchase_date: datetime
    expiry_date: datetime
    status: Pass.Status
    effective_status: Pass.Status
    is_redeemed: bool
    redeemed_at: datetime | None = None
    verification_method: str = ""

    @staticmethod
    def resolve_venue_name(obj: Pass) -> str:
        """Resolve venue name from the selected venue."""
        return obj.venue.name

    @staticmethod
    def resolve_effective_status(obj: Pass) -> str:
        """Status as of now, with overdue active passes reading as expired."""
        return obj.effective_status()


class OwnedPassSchema(PassSchema):
    """A pass as its holder sees it, including the door code."""

    verification_code: str


class PassPurchaseSchema(Schema):
    venue_id: UUID4
    pass_type: OneToSixtyFourString
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)


class PassVerifySchema(Schema):
    verification_code: str | None = Field(None, max_length=32)


class AvailabilitySchema(Schema):
    is_available: bool
    price: Decimal
    currency: str
    restrictions: dict[str, t.Any]
