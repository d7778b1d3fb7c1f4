import typing as t

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from accounts.service.role_migration import complete_role_migration
from common.exceptions import DomainError


class Command(BaseCommand):
    """Rewrite persisted legacy role labels once their migration flag is fully rolled out.

    The flag state is read from this process's registry, which is seeded from
    FEATURE_FLAGS: set ROLE_MIGRATION_ENABLED (and the rollout) in the environment.
    """

    help = "Rewrite legacy role labels to their new name after a completed role migration"

    def add_arguments(self, parser: t.Any) -> None:
        """Add command arguments.

        Args:
            parser: The argument parser.
        """
        parser.add_argument(
            "--flag",
            default=settings.ROLE_MIGRATION_FLAG,
            help="Flag key controlling the migration",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only count the actors that would be rewritten",
        )

    def handle(self, *args: t.Any, **options: t.Any) -> None:
        """Execute the migration.

        Raises:
            CommandError: the flag is unknown or not fully rolled out.
        """
        try:
            result = complete_role_migration(options["flag"], dry_run=options["dry_run"])
        except DomainError as e:
            raise CommandError(f"{e.reason}: {e.message}") from e

        prefix = "[dry run] " if result.dry_run else ""
        self.stdout.write(
            self.style.SUCCESS(
                f"{prefix}{result.legacy} -> {result.new}: "
                f"{result.primary_updated} primary role(s), {result.secondary_updated} role set(s) rewritten."
            )
        )
