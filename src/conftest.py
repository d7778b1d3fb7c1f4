"""Project-wide fixtures: flag registry isolation, Celery eager mode and actors."""

import typing as t

import faker
import pytest
from django.apps import apps
from django.test.client import Client
from ninja_jwt.tokens import RefreshToken
from pytest import MonkeyPatch

from accounts.models import Actor
from flags.registry import FeatureFlagRegistry

fake = faker.Faker()


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without async complications.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture(autouse=True)
def registry(monkeypatch: MonkeyPatch) -> FeatureFlagRegistry:
    """A freshly seeded registry installed as the process registry for this test.

    Flag writes made by one test (directly or through the API) never leak into the next.
    """
    fresh = FeatureFlagRegistry.from_settings()
    monkeypatch.setattr(apps.get_app_config("flags"), "registry", fresh)
    return fresh


@pytest.fixture
def make_actor(django_user_model: t.Type[Actor]) -> t.Callable[..., Actor]:
    """Factory for actors that skips the vocabulary gate, like rows persisted before a flag flip."""

    def _make(role: str = "customer", roles: t.Iterable[str] = ("customer",), **kwargs: t.Any) -> Actor:
        return django_user_model.objects.create_user(
            username=kwargs.pop("username", fake.unique.user_name()),
            email=kwargs.pop("email", fake.email()),
            role=role,
            roles=list(roles),
            **kwargs,
        )

    return _make


@pytest.fixture
def admin_actor(make_actor: t.Callable[..., Actor]) -> Actor:
    """An actor holding the admin role."""
    return make_actor(role="admin")


@pytest.fixture
def customer(make_actor: t.Callable[..., Actor]) -> Actor:
    """A plain customer."""
    return make_actor()


def _client_for(actor: Actor) -> Client:
    """Django test client authenticated as ``actor`` with a bearer token."""
    refresh = RefreshToken.for_user(actor)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def admin_api_client(admin_actor: Actor) -> Client:
    """API client for an admin actor."""
    return _client_for(admin_actor)


@pytest.fixture
def customer_api_client(customer: Actor) -> Client:
    """API client for a customer."""
    return _client_for(customer)


@pytest.fixture
def client_for() -> t.Callable[[Actor], Client]:
    """Factory for API clients authenticated as a given actor."""
    return _client_for
