"""Tests for the pass and venue endpoints."""

import typing as t
from datetime import timedelta
from uuid import uuid4

import orjson
import pytest
from django.test.client import Client
from django.urls import reverse
from django.utils import timezone

from accounts.models import Actor
from ledger.models import LifecycleEvent
from passes.models import Pass, PassOffering, Venue

pytestmark = pytest.mark.django_db


def post_json(client: Client, url: str, payload: dict[str, t.Any]) -> t.Any:
    return client.post(url, data=orjson.dumps(payload), content_type="application/json")


class TestPurchasePass:
    def test_purchase(
        self, customer_api_client: Client, customer: Actor, venue: Venue, vip_offering: PassOffering
    ) -> None:
        response = post_json(
            customer_api_client,
            reverse("api:purchase_pass"),
            {"venue_id": str(venue.id), "pass_type": "vip", "price": "50.00"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["venue_name"] == "Velvet Room"
        assert data["status"] == "active"
        assert data["effective_status"] == "active"
        assert len(data["verification_code"]) == 6
        assert Pass.objects.get(pk=data["id"]).actor_id == customer.id

    def test_purchase_unavailable(self, customer_api_client: Client, venue: Venue) -> None:
        response = post_json(
            customer_api_client, reverse("api:purchase_pass"), {"venue_id": str(venue.id), "pass_type": "vip"}
        )

        assert response.status_code == 400
        assert response.json()["reason"] == "PassNotAvailable"

    def test_purchase_unknown_venue(self, customer_api_client: Client) -> None:
        response = post_json(
            customer_api_client, reverse("api:purchase_pass"), {"venue_id": str(uuid4()), "pass_type": "vip"}
        )

        assert response.status_code == 404
        assert response.json()["reason"] == "VenueNotFound"

    def test_purchase_requires_authentication(self, client: Client, venue: Venue) -> None:
        response = post_json(client, reverse("api:purchase_pass"), {"venue_id": str(venue.id), "pass_type": "vip"})

        assert response.status_code == 401


def test_list_my_passes(
    customer_api_client: Client,
    vip_pass: Pass,
    make_actor: t.Callable[..., Actor],
    client_for: t.Callable[[Actor], Client],
) -> None:
    response = customer_api_client.get(reverse("api:list_my_passes"))

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [str(vip_pass.id)]

    stranger = client_for(make_actor())
    assert stranger.get(reverse("api:list_my_passes")).json() == []


class TestValidatePass:
    def test_validate(self, customer_api_client: Client, vip_pass: Pass, venue: Venue) -> None:
        url = reverse("api:validate_pass", kwargs={"pass_id": vip_pass.id})

        response = customer_api_client.get(url, {"venue_id": str(venue.id)})

        assert response.status_code == 200
        assert response.json()["id"] == str(vip_pass.id)
        assert "verification_code" not in response.json()

    def test_validate_expired(self, customer_api_client: Client, vip_pass: Pass, venue: Venue) -> None:
        Pass.objects.filter(pk=vip_pass.pk).update(expiry_date=timezone.now() - timedelta(minutes=1))
        url = reverse("api:validate_pass", kwargs={"pass_id": vip_pass.id})

        response = customer_api_client.get(url, {"venue_id": str(venue.id)})

        assert response.status_code == 410
        assert response.json()["reason"] == "Expired"

    def test_validate_wrong_venue(self, customer_api_client: Client, vip_pass: Pass, other_venue: Venue) -> None:
        url = reverse("api:validate_pass", kwargs={"pass_id": vip_pass.id})

        response = customer_api_client.get(url, {"venue_id": str(other_venue.id)})

        assert response.status_code == 400
        assert response.json()["reason"] == "VenueMismatch"

    def test_validate_unknown(self, customer_api_client: Client, venue: Venue) -> None:
        url = reverse("api:validate_pass", kwargs={"pass_id": uuid4()})

        response = customer_api_client.get(url, {"venue_id": str(venue.id)})

        assert response.status_code == 404


class TestRedeemPass:
    def test_holder_redeems(self, customer_api_client: Client, vip_pass: Pass) -> None:
        url = reverse("api:redeem_pass", kwargs={"pass_id": vip_pass.id})

        response = customer_api_client.post(url)

        assert response.status_code == 200
        assert response.json()["status"] == "redeemed"
        assert response.json()["verification_method"] == "direct"

    def test_second_redeem_conflicts(self, customer_api_client: Client, vip_pass: Pass) -> None:
        url = reverse("api:redeem_pass", kwargs={"pass_id": vip_pass.id})
        customer_api_client.post(url)

        response = customer_api_client.post(url)

        assert response.status_code == 409
        assert response.json()["reason"] == "AlreadyRedeemed"

    def test_only_holder_can_redeem(
        self, vip_pass: Pass, make_actor: t.Callable[..., Actor], client_for: t.Callable[[Actor], Client]
    ) -> None:
        url = reverse("api:redeem_pass", kwargs={"pass_id": vip_pass.id})

        response = client_for(make_actor()).post(url)

        assert response.status_code == 403
        assert response.json()["reason"] == "NotPassHolder"
        vip_pass.refresh_from_db()
        assert not vip_pass.is_redeemed

    def test_redeem_unknown(self, customer_api_client: Client) -> None:
        response = customer_api_client.post(reverse("api:redeem_pass", kwargs={"pass_id": uuid4()}))

        assert response.status_code == 404


class TestVerifyPass:
    def test_staff_verifies_with_code(
        self, vip_pass: Pass, staff: Actor, client_for: t.Callable[[Actor], Client]
    ) -> None:
        url = reverse("api:verify_pass", kwargs={"pass_id": vip_pass.id})

        response = post_json(client_for(staff), url, {"verification_code": vip_pass.verification_code})

        assert response.status_code == 200
        assert response.json()["verification_method"] == "code"

    def test_bartender_verifies_before_flip(
        self, vip_pass: Pass, bartender: Actor, client_for: t.Callable[[Actor], Client]
    ) -> None:
        url = reverse("api:verify_pass", kwargs={"pass_id": vip_pass.id})

        response = post_json(client_for(bartender), url, {})

        assert response.status_code == 200
        assert response.json()["verification_method"] == "manual"

    def test_customer_cannot_verify(self, customer_api_client: Client, vip_pass: Pass) -> None:
        url = reverse("api:verify_pass", kwargs={"pass_id": vip_pass.id})

        response = post_json(customer_api_client, url, {})

        assert response.status_code == 403
        assert response.json()["reason"] == "NotVerifier"

    def test_wrong_code(self, vip_pass: Pass, staff: Actor, client_for: t.Callable[[Actor], Client]) -> None:
        url = reverse("api:verify_pass", kwargs={"pass_id": vip_pass.id})

        response = post_json(client_for(staff), url, {"verification_code": "nope"})

        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidVerificationCode"

    def test_second_verifier_gets_conflict(
        self, vip_pass: Pass, staff: Actor, bartender: Actor, client_for: t.Callable[[Actor], Client]
    ) -> None:
        url = reverse("api:verify_pass", kwargs={"pass_id": vip_pass.id})

        first = post_json(client_for(bartender), url, {})
        second = post_json(client_for(staff), url, {})

        assert (first.status_code, second.status_code) == (200, 409)
        redeemed_events = LifecycleEvent.objects.filter(order_id=vip_pass.id, is_redeemed=True)
        assert redeemed_events.count() == 1


class TestVenuePasses:
    def test_availability(self, customer_api_client: Client, venue: Venue, vip_offering: PassOffering) -> None:
        url = reverse("api:check_pass_availability", kwargs={"venue_id": venue.id})

        response = customer_api_client.get(url, {"pass_type": "vip"})

        assert response.status_code == 200
        assert response.json() == {
            "is_available": True,
            "price": "50.00",
            "currency": "USD",
            "restrictions": {"min_age": 21},
        }

    def test_availability_unknown_pass_type(self, customer_api_client: Client, venue: Venue) -> None:
        url = reverse("api:check_pass_availability", kwargs={"venue_id": venue.id})

        response = customer_api_client.get(url, {"pass_type": "vip"})

        assert response.status_code == 404
        assert response.json()["reason"] == "PassTypeNotFound"

    @pytest.mark.parametrize("role", ["owner", "staff", "bartender"])
    def test_list_venue_passes(
        self,
        vip_pass: Pass,
        venue: Venue,
        role: str,
        make_actor: t.Callable[..., Actor],
        client_for: t.Callable[[Actor], Client],
    ) -> None:
        url = reverse("api:list_venue_passes", kwargs={"venue_id": venue.id})

        response = client_for(make_actor(role=role)).get(url)

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [str(vip_pass.id)]

    def test_list_venue_passes_forbidden_for_customers(self, customer_api_client: Client, venue: Venue) -> None:
        url = reverse("api:list_venue_passes", kwargs={"venue_id": venue.id})

        assert customer_api_client.get(url).status_code == 403
