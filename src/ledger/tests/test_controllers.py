"""Tests for the ledger read endpoints."""

import typing as t
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from uuid import UUID, uuid4

import pytest
from django.test.client import Client
from django.urls import reverse

from accounts.models import Actor
from ledger.models import LifecycleEvent
from ledger.recorder import LifecycleEventRecorder

pytestmark = pytest.mark.django_db

T0 = datetime(2026, 6, 1, 22, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def venue_id() -> UUID:
    return uuid4()


@pytest.fixture
def owner_client(make_actor: t.Callable[..., Actor], client_for: t.Callable[[Actor], Client]) -> Client:
    return client_for(make_actor(role="owner"))


@pytest.fixture
def events(venue_id: UUID) -> list[LifecycleEvent]:
    """A purchase and a redemption of one order, an hour apart."""
    recorder = LifecycleEventRecorder()
    order_id = uuid4()
    creation = recorder.record(LifecycleEvent.EventType.CREATION, order_id=order_id, venue_id=venue_id, timestamp=T0)
    verification = recorder.record(
        LifecycleEvent.EventType.VERIFICATION,
        order_id=order_id,
        venue_id=venue_id,
        timestamp=T0 + timedelta(hours=1),
        verified_by="bartender",
        verification_method="manual",
        verification_attempts=1,
        is_redeemed=True,
    )
    assert creation is not None and verification is not None
    return [creation, verification]


def test_list_venue_events(owner_client: Client, venue_id: UUID, events: list[LifecycleEvent]) -> None:
    url = reverse("api:list_venue_events", kwargs={"venue_id": venue_id})

    response = owner_client.get(url)

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [e["event_type"] for e in data["results"]] == ["creation", "verification"]


def test_list_venue_events_window_and_type(
    admin_api_client: Client, venue_id: UUID, events: list[LifecycleEvent]
) -> None:
    url = reverse("api:list_venue_events", kwargs={"venue_id": venue_id})

    window = admin_api_client.get(url, {"start": (T0 + timedelta(minutes=30)).isoformat()})
    by_type = admin_api_client.get(url, {"event_type": "creation"})

    assert [e["id"] for e in window.json()["results"]] == [str(events[1].id)]
    assert [e["id"] for e in by_type.json()["results"]] == [str(events[0].id)]


def test_list_order_events(owner_client: Client, events: list[LifecycleEvent]) -> None:
    url = reverse("api:list_order_events", kwargs={"order_id": events[0].order_id})

    response = owner_client.get(url, {"event_type": "verification"})

    assert response.status_code == 200
    [event] = response.json()
    assert event["is_redeemed"] is True
    assert event["verification_attempts"] == 1


def test_list_verifier_events(owner_client: Client, events: list[LifecycleEvent]) -> None:
    url = reverse("api:list_verifier_events", kwargs={"role": "bartender"})

    response = owner_client.get(url)

    assert response.status_code == 200
    assert [e["id"] for e in response.json()["results"]] == [str(events[1].id)]


@pytest.mark.parametrize("role", ["customer", "staff", "bartender"])
def test_ledger_requires_owner_or_admin(
    role: str, venue_id: UUID, make_actor: t.Callable[..., Actor], client_for: t.Callable[[Actor], Client]
) -> None:
    url = reverse("api:list_venue_events", kwargs={"venue_id": venue_id})

    assert client_for(make_actor(role=role)).get(url).status_code == 403
