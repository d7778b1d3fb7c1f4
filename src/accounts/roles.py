"""Role checks during a live role rename.

A rename is a ``RoleMigration`` row (legacy label, new label, controlling flag).
While the flag is enabled the two labels are equivalent for authorization in both
directions, and only the new label may be assigned. While it is disabled only the
legacy label may be assigned.
"""

import typing as t
from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from django.conf import settings

from common.exceptions import ValidationError
from flags.registry import FeatureFlagRegistry, get_registry

logger = structlog.get_logger(__name__)


class ActorLike(t.Protocol):
    role: str
    roles: t.Any


@dataclass(frozen=True)
class RoleMigration:
    flag_key: str
    legacy: str
    new: str

    @property
    def names(self) -> frozenset[str]:
        return frozenset({self.legacy, self.new})

    def counterpart(self, role: str) -> str | None:
        if role == self.legacy:
            return self.new
        if role == self.new:
            return self.legacy
        return None

    def accepted_name(self, enabled: bool) -> str:
        """The only assignable label for the given flag state."""
        return self.new if enabled else self.legacy


class RoleEquivalenceTable:
    """Bidirectional synonym table built from role migrations."""

    def __init__(self, migrations: Iterable[RoleMigration], base_roles: Iterable[str] = ()) -> None:
        """Index migrations by both of their labels."""
        self.migrations = tuple(migrations)
        self.base_roles = frozenset(base_roles)
        self._by_role: dict[str, list[RoleMigration]] = {}
        for migration in self.migrations:
            for name in migration.names:
                self._by_role.setdefault(name, []).append(migration)

    @classmethod
    def from_settings(cls) -> "RoleEquivalenceTable":
        """Build the table from ROLE_MIGRATIONS and ACTOR_ROLES."""
        return cls(
            (RoleMigration(**entry) for entry in settings.ROLE_MIGRATIONS),
            base_roles=settings.ACTOR_ROLES,
        )

    def migrations_for(self, role: str) -> list[RoleMigration]:
        return self._by_role.get(role, [])

    def synonyms(self, role: str) -> frozenset[str]:
        """The role and every label it is renamed from or to, regardless of flag state."""
        names = {role}
        for migration in self.migrations_for(role):
            names |= migration.names
        return frozenset(names)

    @property
    def vocabulary(self) -> frozenset[str]:
        """Every label that can ever be assigned."""
        return self.base_roles | frozenset(self._by_role)


class RoleResolver:
    """Decides whether an actor satisfies a requested role."""

    def __init__(
        self,
        registry: FeatureFlagRegistry,
        table: RoleEquivalenceTable,
        *,
        baseline_role: str | None = None,
    ) -> None:
        """Wire the resolver to a flag registry and a migration table."""
        self.registry = registry
        self.table = table
        self.baseline_role = baseline_role or settings.BASELINE_ROLE

    def is_migration_active(self, migration: RoleMigration) -> bool:
        # Flag-level switch, not bucketed: a vocabulary cannot be half renamed per actor.
        return self.registry.get_feature_state(migration.flag_key).enabled

    def equivalents(self, role: str) -> frozenset[str]:
        """The role plus the labels an enabled migration declares equivalent to it."""
        names = {role}
        for migration in self.table.migrations_for(role):
            if self.is_migration_active(migration):
                names |= migration.names
        return frozenset(names)

    def has_role(self, actor: ActorLike, role_or_roles: str | Iterable[str]) -> bool:
        """Whether the actor holds the role, or any of the roles when given a collection."""
        actor_roles = frozenset(actor.roles or ())
        if isinstance(role_or_roles, str):
            requested = role_or_roles
            result = (
                actor.role == requested or requested in actor_roles or actor.role in self.equivalents(requested)
            )
            logger.debug("role_check", actor_role=actor.role, requested=requested, result=result)
            return result

        requested_roles = frozenset(role_or_roles)
        expanded: frozenset[str] = frozenset().union(*(self.equivalents(role) for role in requested_roles))
        evidence = actor_roles - {self.baseline_role}
        result = actor.role in expanded or bool(evidence & expanded)
        logger.debug("role_check_any", actor_role=actor.role, requested=sorted(requested_roles), result=result)
        return result


class RoleVocabularyGate:
    """Write-time check keeping exactly one label of each migration assignable."""

    def __init__(self, registry: FeatureFlagRegistry, table: RoleEquivalenceTable) -> None:
        """Wire the gate to a flag registry and a migration table."""
        self.registry = registry
        self.table = table

    def validate(self, role: str, roles: Iterable[str] = (), *, existing: Iterable[str] = ()) -> None:
        """Reject unknown labels and labels of the vocabulary the flag currently disallows.

        Labels in ``existing`` are already persisted on the actor and are not re-checked.
        """
        already_held = frozenset(existing)
        for label in dict.fromkeys([role, *roles]):
            if label in already_held:
                continue
            if label not in self.table.vocabulary:
                raise ValidationError("UnknownRole", f"Invalid role: {label}")
            for migration in self.table.migrations_for(label):
                enabled = self.registry.get_feature_state(migration.flag_key).enabled
                accepted = migration.accepted_name(enabled)
                if label != accepted:
                    logger.warning(
                        "role_rejected_by_migration",
                        role=label,
                        accepted=accepted,
                        flag=migration.flag_key,
                        flag_enabled=enabled,
                    )
                    raise ValidationError(
                        "RoleNotAllowed",
                        f"Role {label} is not allowed while {migration.flag_key} is "
                        f"{'enabled' if enabled else 'disabled'}; use {accepted}.",
                    )


def build_role_resolver(registry: FeatureFlagRegistry | None = None) -> RoleResolver:
    """Resolver wired to the given registry (or the app's) and the configured migrations."""
    return RoleResolver(registry or get_registry(), RoleEquivalenceTable.from_settings())


def build_role_gate(registry: FeatureFlagRegistry | None = None) -> RoleVocabularyGate:
    """Vocabulary gate wired to the given registry (or the app's) and the configured migrations."""
    return RoleVocabularyGate(registry or get_registry(), RoleEquivalenceTable.from_settings())
