import typing as t
import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


def _default_roles() -> list[str]:
    return [settings.BASELINE_ROLE]


class ActorQuerySet(models.QuerySet["Actor"]):
    """Queryset for Actor."""

    def with_role(self, role: str) -> t.Self:
        """Actors whose primary role is ``role``. Additional roles are not indexed."""
        return self.filter(role=role)


class ActorManager(UserManager["Actor"]):
    def get_queryset(self) -> ActorQuerySet:
        """Get queryset for Actor."""
        return ActorQuerySet(self.model, using=self._db)

    def with_role(self, role: str) -> ActorQuerySet:
        return self.get_queryset().with_role(role)


class Actor(AbstractUser):
    """A pre-verified identity: credentials are checked by the external identity provider.

    ``role`` is the primary label, ``roles`` holds additional labels. Every actor carries
    the baseline label in ``roles`` by default.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.CharField(max_length=32, default=settings.BASELINE_ROLE, db_index=True, help_text="Primary role")
    roles = models.JSONField(default=_default_roles, blank=True, help_text="Additional role labels")

    objects = ActorManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"

    @property
    def role_set(self) -> frozenset[str]:
        """Additional role labels as a set."""
        return frozenset(self.roles or ())
