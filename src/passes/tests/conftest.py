import typing as t
from decimal import Decimal

import pytest

from accounts.models import Actor
from flags.registry import FeatureFlagRegistry
from passes.models import Pass, PassOffering, Venue
from passes.service import PassCoordinator, build_pass_coordinator


@pytest.fixture
def venue() -> Venue:
    return Venue.objects.create(name="Velvet Room", verifier_role="staff")


@pytest.fixture
def other_venue() -> Venue:
    return Venue.objects.create(name="Basement")


@pytest.fixture
def vip_offering(venue: Venue) -> PassOffering:
    return PassOffering.objects.create(
        venue=venue,
        pass_type="vip",
        price=Decimal("50.00"),
        currency="USD",
        restrictions={"min_age": 21},
    )


@pytest.fixture
def cover_offering(venue: Venue) -> PassOffering:
    return PassOffering.objects.create(venue=venue, pass_type="cover", price=Decimal("15.00"), is_available=False)


@pytest.fixture
def coordinator(registry: FeatureFlagRegistry) -> PassCoordinator:
    return build_pass_coordinator(registry)


@pytest.fixture
def vip_pass(coordinator: PassCoordinator, customer: Actor, venue: Venue, vip_offering: PassOffering) -> Pass:
    """An active vip pass bought by the customer."""
    return coordinator.purchase(customer, venue.id, "vip", Decimal("50.00"))


@pytest.fixture
def bartender(make_actor: t.Callable[..., Actor]) -> Actor:
    """A door verifier carrying the legacy label."""
    return make_actor(role="bartender")


@pytest.fixture
def staff(make_actor: t.Callable[..., Actor]) -> Actor:
    """A door verifier carrying the new label."""
    return make_actor(role="staff")


@pytest.fixture
def owner(make_actor: t.Callable[..., Actor]) -> Actor:
    return make_actor(role="owner")
