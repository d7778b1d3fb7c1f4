"""Tests for the pass manager and queryset helpers."""

from datetime import timedelta

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.utils import timezone

from passes.models import Pass, Venue
from passes.service import PassCoordinator

pytestmark = pytest.mark.django_db


def test_with_venue_loads_the_venue_in_one_query(vip_pass: Pass, venue: Venue) -> None:
    with CaptureQueriesContext(connection) as queries:
        loaded = Pass.objects.with_venue().get(pk=vip_pass.pk)
        assert loaded.venue.name == venue.name

    assert len(queries) == 1


def test_usable_and_overdue_split_active_passes(vip_pass: Pass, coordinator: PassCoordinator) -> None:
    later = timezone.now() + timedelta(hours=25)

    assert list(Pass.objects.usable()) == [vip_pass]
    assert not Pass.objects.overdue().exists()
    assert not Pass.objects.usable(later).exists()
    assert list(Pass.objects.overdue(later)) == [vip_pass]

    coordinator.redeem(vip_pass.id)

    assert not Pass.objects.usable().exists()
    assert not Pass.objects.overdue(later).exists()


def test_effective_status(vip_pass: Pass) -> None:
    later = timezone.now() + timedelta(hours=25)

    assert vip_pass.effective_status() == Pass.Status.ACTIVE
    assert vip_pass.effective_status(later) == Pass.Status.EXPIRED
