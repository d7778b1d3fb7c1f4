"""Tests for the /version and /healthcheck endpoints."""

import pytest
from django.conf import settings
from django.test.client import Client
from django.urls import reverse

pytestmark = pytest.mark.django_db


def test_version(client: Client) -> None:
    """Test that /version returns the app version without authentication."""
    response = client.get(reverse("api:version"))

    assert response.status_code == 200
    assert response.json() == {"version": settings.VERSION}


def test_healthcheck(client: Client) -> None:
    response = client.get(reverse("api:healthcheck"))

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
