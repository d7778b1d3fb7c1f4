"""Actor creation and role assignment.

Every write of a role label goes through the vocabulary gate so that the legacy
and new names of a migrating role are never both assignable at the same time.
"""

import typing as t
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction

from accounts.models import Actor
from accounts.roles import RoleVocabularyGate, build_role_gate
from common.exceptions import NotFoundError

logger = structlog.get_logger(__name__)


class ActorService:
    """Writes actors after checking their role labels against the active vocabulary."""

    def __init__(self, gate: RoleVocabularyGate | None = None) -> None:
        """Use the given gate, or one wired to the app registry."""
        self.gate = gate or build_role_gate()

    @staticmethod
    def _with_baseline(roles: t.Iterable[str]) -> list[str]:
        return list(dict.fromkeys([settings.BASELINE_ROLE, *roles]))

    @transaction.atomic
    def create_actor(
        self,
        *,
        username: str,
        role: str = "",
        roles: t.Iterable[str] = (),
        email: str = "",
        **extra: t.Any,
    ) -> Actor:
        """Create an actor after the vocabulary gate accepted every label.

        Raises:
            ValidationError: an unknown label or one the active migration disallows.
        """
        role = role or settings.BASELINE_ROLE
        roles = list(roles)
        self.gate.validate(role, roles)
        actor = Actor.objects.create_user(
            username=username,
            email=email,
            role=role,
            roles=self._with_baseline(roles),
            **extra,
        )
        logger.info("actor_created", actor_id=str(actor.id), role=actor.role, roles=actor.roles)
        return actor

    @transaction.atomic
    def update_roles(self, actor_id: UUID, *, role: str, roles: t.Iterable[str] | None = None) -> Actor:
        """Replace an actor's primary role and, when given, its additional roles.

        Labels the actor already holds are not re-checked, so a legacy label persisted
        before a flag flip does not block unrelated edits.
        """
        actor = Actor.objects.select_for_update().filter(pk=actor_id).first()
        if actor is None:
            raise NotFoundError("ActorNotFound", f"Actor {actor_id} does not exist.")
        new_roles = list(actor.roles or ()) if roles is None else list(roles)
        self.gate.validate(role, new_roles, existing=[actor.role, *(actor.roles or ())])
        previous = actor.role
        actor.role = role
        actor.roles = self._with_baseline(new_roles)
        actor.save(update_fields=["role", "roles"])
        logger.info(
            "actor_roles_updated",
            actor_id=str(actor.id),
            previous_role=previous,
            role=actor.role,
            roles=actor.roles,
        )
        return actor
