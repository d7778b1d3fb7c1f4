"""Tests for actor writes going through the role vocabulary gate."""

import typing as t

import pytest

from accounts.models import Actor
from accounts.roles import build_role_resolver
from accounts.service.actor_service import ActorService
from common.exceptions import NotFoundError, ValidationError
from flags.registry import FeatureFlagRegistry

pytestmark = pytest.mark.django_db


def test_create_actor_defaults_to_baseline_role() -> None:
    actor = ActorService().create_actor(username="pat")

    assert actor.role == "customer"
    assert actor.roles == ["customer"]


def test_create_actor_keeps_baseline_in_role_set() -> None:
    actor = ActorService().create_actor(username="olga", role="owner", roles=["admin"])

    assert actor.roles == ["customer", "admin"]


def test_role_migration_flip_scenario(registry: FeatureFlagRegistry) -> None:
    """New name rejected while disabled, accepted after the flip, legacy actors keep access."""
    service = ActorService()
    legacy = service.create_actor(username="legacy-bartender", role="bartender")

    with pytest.raises(ValidationError) as exc_info:
        service.create_actor(username="new-staff", role="staff")
    assert exc_info.value.reason == "RoleNotAllowed"
    assert not Actor.objects.filter(username="new-staff").exists()

    registry.set_feature_state("role-migration", enabled=True, rollout_percentage=100)

    staff = service.create_actor(username="new-staff", role="staff")
    resolver = build_role_resolver()
    assert resolver.has_role(legacy, "staff")
    assert resolver.has_role(staff, "bartender")

    with pytest.raises(ValidationError):
        service.create_actor(username="late-bartender", role="bartender")


def test_update_roles(make_actor: t.Callable[..., Actor]) -> None:
    actor = make_actor()

    updated = ActorService().update_roles(actor.id, role="owner", roles=["admin"])

    actor.refresh_from_db()
    assert updated.role == actor.role == "owner"
    assert actor.roles == ["customer", "admin"]


def test_update_roles_keeps_role_set_when_omitted(make_actor: t.Callable[..., Actor]) -> None:
    actor = make_actor(roles=["customer", "admin"])

    ActorService().update_roles(actor.id, role="owner")

    actor.refresh_from_db()
    assert actor.roles == ["customer", "admin"]


def test_update_roles_allows_persisted_legacy_label(
    make_actor: t.Callable[..., Actor], registry: FeatureFlagRegistry
) -> None:
    """An actor persisted as bartender can still be edited after the flip."""
    actor = make_actor(role="bartender", roles=["customer"])
    registry.set_feature_state("role-migration", enabled=True, rollout_percentage=100)

    ActorService().update_roles(actor.id, role="bartender", roles=["owner"])

    actor.refresh_from_db()
    assert actor.roles == ["customer", "owner"]


def test_update_roles_rejects_disallowed_label(make_actor: t.Callable[..., Actor]) -> None:
    actor = make_actor()

    with pytest.raises(ValidationError):
        ActorService().update_roles(actor.id, role="staff")

    actor.refresh_from_db()
    assert actor.role == "customer"


def test_update_roles_unknown_actor() -> None:
    import uuid

    with pytest.raises(NotFoundError):
        ActorService().update_roles(uuid.uuid4(), role="owner")
