"""Closing out a role rename once its flag is fully rolled out."""

from dataclasses import dataclass

import structlog
from django.db import transaction

from accounts.models import Actor
from accounts.roles import RoleEquivalenceTable, RoleMigration
from common.exceptions import NotFoundError, ValidationError
from flags.registry import FeatureFlagRegistry, get_registry

logger = structlog.get_logger(__name__)


@dataclass
class RoleMigrationResult:
    flag_key: str
    legacy: str
    new: str
    primary_updated: int
    secondary_updated: int
    dry_run: bool


def _migration_for(flag_key: str, table: RoleEquivalenceTable) -> RoleMigration:
    for migration in table.migrations:
        if migration.flag_key == flag_key:
            return migration
    raise NotFoundError("UnknownRoleMigration", f"No role migration is controlled by {flag_key}.")


def complete_role_migration(
    flag_key: str,
    *,
    registry: FeatureFlagRegistry | None = None,
    table: RoleEquivalenceTable | None = None,
    dry_run: bool = False,
) -> RoleMigrationResult:
    """Rewrite persisted legacy labels to the new name.

    Only runs when the controlling flag is enabled at 100%, i.e. after the gate has
    stopped accepting the legacy name everywhere.

    Raises:
        NotFoundError: no migration is controlled by ``flag_key``.
        ValidationError: the flag is not fully rolled out.
    """
    registry = registry or get_registry()
    table = table or RoleEquivalenceTable.from_settings()
    migration = _migration_for(flag_key, table)
    state = registry.get_feature_state(flag_key)
    if not state.enabled or state.rollout_percentage < 100:
        logger.warning(
            "role_migration_refused",
            flag=flag_key,
            enabled=state.enabled,
            rollout_percentage=state.rollout_percentage,
        )
        raise ValidationError("MigrationIncomplete", f"{flag_key} must be enabled at 100% before completing it.")

    with transaction.atomic():
        primary = Actor.objects.with_role(migration.legacy)
        primary_updated = primary.count() if dry_run else primary.update(role=migration.new)

        # JSON containment lookups are not portable across backends, scan in Python.
        secondary_updated = 0
        for actor in Actor.objects.only("id", "roles").iterator():
            labels = list(actor.roles or ())
            if migration.legacy not in labels:
                continue
            secondary_updated += 1
            if not dry_run:
                renamed = (migration.new if label == migration.legacy else label for label in labels)
                actor.roles = list(dict.fromkeys(renamed))
                actor.save(update_fields=["roles"])

    logger.info(
        "role_migration_completed",
        flag=flag_key,
        legacy=migration.legacy,
        new=migration.new,
        primary_updated=primary_updated,
        secondary_updated=secondary_updated,
        dry_run=dry_run,
    )
    return RoleMigrationResult(
        flag_key=flag_key,
        legacy=migration.legacy,
        new=migration.new,
        primary_updated=primary_updated,
        secondary_updated=secondary_updated,
        dry_run=dry_run,
    )
