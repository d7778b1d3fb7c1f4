import typing as t

import orjson
from django.core.management.base import BaseCommand, CommandError

from flags.bucketing import bucket
from flags.registry import get_registry


class Command(BaseCommand):
    """Inspect the feature flags this process would start with.

    The registry is process-local: this command sees the flags seeded from settings,
    not runtime changes made on a running instance.
    """

    help = "List flags, show one flag, or compute the rollout bucket of a context"

    def add_arguments(self, parser: t.Any) -> None:
        """Add command arguments.

        Args:
            parser: The argument parser.
        """
        subparsers = parser.add_subparsers(dest="action", required=True)
        subparsers.add_parser("list", help="List all flags")
        show = subparsers.add_parser("show", help="Show one flag as JSON")
        show.add_argument("key")
        bucket_parser = subparsers.add_parser("bucket", help="Compute the rollout bucket of a context")
        bucket_parser.add_argument("key")
        bucket_parser.add_argument("context", nargs="?", default="{}", help="Context as a JSON object")

    def handle(self, *args: t.Any, **options: t.Any) -> None:
        """Dispatch to the requested action."""
        registry = get_registry()
        action = options["action"]

        if action == "list":
            for key, state in sorted(registry.list_features().items()):
                marker = self.style.SUCCESS("on ") if state.enabled else self.style.WARNING("off")
                self.stdout.write(f"{marker} {key:<32} {state.rollout_percentage:>3}%  {state.description}")
            return

        if action == "show":
            state = registry.get_feature_state(options["key"])
            if state.is_fallback:
                raise CommandError(f"Unknown flag: {options['key']}")
            self.stdout.write(orjson.dumps(state.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode())
            return

        try:
            context = orjson.loads(options["context"])
        except orjson.JSONDecodeError as e:
            raise CommandError(f"Context is not valid JSON: {e}") from e
        if not isinstance(context, dict):
            raise CommandError("Context must be a JSON object.")
        key = options["key"]
        value = bucket(key, context)
        state = registry.get_feature_state(key)
        in_rollout = state.enabled and value < state.rollout_percentage
        self.stdout.write(f"bucket={value} rollout={state.rollout_percentage}% enabled={in_rollout}")
