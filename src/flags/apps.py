import typing as t

from django.apps import AppConfig

if t.TYPE_CHECKING:
    from .registry import FeatureFlagRegistry


class FlagsConfig(AppConfig):
    """Configuration for the feature flags app.

    Owns the process-wide registry; everything else receives it explicitly.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "flags"
    verbose_name = "Feature Flags"
    registry: "FeatureFlagRegistry"

    def ready(self) -> None:
        """Seed the registry from settings once Django is loaded."""
        from .registry import FeatureFlagRegistry

        self.registry = FeatureFlagRegistry.from_settings()
